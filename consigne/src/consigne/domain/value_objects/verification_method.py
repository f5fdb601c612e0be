"""
Signup verification method enums.
"""

from enum import Enum


class VerificationMethod(str, Enum):
    """Secret the user chose to guard their identity with."""

    PHONE = "phone"
    PIN = "pin"
    BIOMETRIC = "biometric"


class BiometricType(str, Enum):
    """Recognized biometric subtypes."""

    FINGERPRINT = "fingerprint"
    FACEID = "faceid"
    VOICE = "voice"
    IRIS = "iris"
