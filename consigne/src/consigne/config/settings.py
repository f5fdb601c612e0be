"""
Application settings with environment-based configuration.

Priority (highest to lowest):
1. Environment variables (from .env.<env> or system)
2. Environment-specific YAML config file (development.yaml, test.yaml)
3. Default YAML config file (default.yaml)
4. Pydantic defaults
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BLOCKFROST_NETWORK_URLS = {
    "mainnet": "https://cardano-mainnet.blockfrost.io/api/v0",
    "preprod": "https://cardano-preprod.blockfrost.io/api/v0",
    "preview": "https://cardano-preview.blockfrost.io/api/v0",
}


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Secrets (commitment key, indexer project id, bridge token) should come
    from environment variables, not from YAML files.
    """

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )

    # Application
    APP_NAME: str = "Consigne"
    APP_VERSION: str = "0.1.0"
    ENV: str = Field(default="development", description="Environment name")

    # Protocol
    DEPOSIT_ADDRESS: str = Field(..., description="Protocol deposit script address")
    CARDANO_NETWORK: str = Field(default="preprod")
    DEPOSIT_AMOUNT_LOVELACE: int = Field(
        default=2_000_000, gt=0, description="Required deposit (2 ADA)"
    )
    REFUND_AMOUNT_LOVELACE: int = Field(
        default=2_000_000, gt=0, description="Refund amount (2 ADA)"
    )

    # Verification rules
    MAX_TX_AGE_SECONDS: int = Field(
        default=86400, gt=0, description="Oldest acceptable deposit (24 hours)"
    )
    MIN_CONFIRMATIONS: int = Field(default=1, ge=0)
    SCAN_WINDOW: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Recent sender transactions inspected per verification",
    )
    STRICT_SENDER_MATCH: bool = Field(
        default=False,
        description="Reject deposits whose first input is not the claimed sender",
    )

    # Signup input validation
    USER_ID_MIN_LENGTH: int = Field(default=3, ge=1)
    USER_ID_MAX_LENGTH: int = Field(default=50, ge=1)
    PHONE_MIN_LENGTH: int = Field(default=10, ge=1)

    # Commitments (from environment - REQUIRED)
    COMMITMENT_SECRET: str = Field(
        ..., min_length=16, description="HMAC key for commitment tokens"
    )

    # Ledger indexer
    BLOCKFROST_URL: Optional[str] = Field(
        default=None, description="Indexer base URL (derived from network if unset)"
    )
    BLOCKFROST_PROJECT_ID: Optional[str] = Field(default=None)
    LEDGER_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    LEDGER_CONNECT_TIMEOUT_SECONDS: float = Field(default=3.0, gt=0)
    LEDGER_MAX_RETRIES: int = Field(
        default=3, ge=1, description="Attempts per indexer read"
    )
    LEDGER_REQUESTS_PER_SECOND: float = Field(
        default=8.0, gt=0, description="Indexer rate limit"
    )
    LEDGER_BURST: int = Field(default=10, ge=1, description="Indexer burst size")

    # Wallet bridge (refund submission)
    WALLET_BRIDGE_URL: Optional[str] = Field(
        default=None,
        description="Refund bridge URL; unset selects the simulated submitter",
    )
    WALLET_BRIDGE_TOKEN: Optional[str] = Field(default=None)
    WALLET_BRIDGE_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    CB_FAILURE_THRESHOLD: int = Field(
        default=5,
        description="Circuit breaker failure threshold",
    )
    CB_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        description="Circuit breaker open state timeout",
    )

    # Database (unset selects the in-memory store)
    DATABASE_URL: Optional[str] = Field(default=None)
    DATABASE_ECHO: bool = Field(default=False)

    # Reconciliation scheduling
    AUTO_VERIFY_DELAY_SECONDS: float = Field(
        default=1.0, ge=0, description="Pause between sweep items"
    )
    MONITOR_POLL_INTERVAL_SECONDS: float = Field(default=30.0, gt=0)
    AUTO_REFUND_ENABLED: bool = Field(default=False)
    QUOTA_COOLDOWN_SECONDS: float = Field(
        default=300.0, ge=0, description="Pause after indexer quota errors"
    )
    REFUND_CLAIM_TTL_SECONDS: int = Field(
        default=600, gt=0, description="Age after which a refund claim is stale"
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_JSON: bool = Field(default=True)

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Invalid LOG_LEVEL. Must be one of: {allowed}")
        return v_upper

    @field_validator("CARDANO_NETWORK")
    @classmethod
    def validate_cardano_network(cls, v: str) -> str:
        """Validate Cardano network."""
        allowed = list(BLOCKFROST_NETWORK_URLS)
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"Invalid CARDANO_NETWORK. Must be one of: {allowed}")
        return v_lower

    @property
    def ledger_base_url(self) -> str:
        """Indexer base URL, explicit or derived from network."""
        url = self.BLOCKFROST_URL or BLOCKFROST_NETWORK_URLS[self.CARDANO_NETWORK]
        return url.rstrip("/")


def load_config(
    config_file: Optional[str] = None,
    env_file: Optional[str] = None,
    env: Optional[str] = None,
) -> Settings:
    """
    Load configuration from YAML files and environment variables.

    Priority: ENV vars > environment-specific YAML > default YAML > defaults

    Args:
        config_file: Optional YAML config filename override
        env_file: Optional .env filename (e.g., ".env.development")
        env: Optional environment name override (e.g., "development", "test")

    Returns:
        Settings instance

    Raises:
        ValidationError: If required fields are missing
    """
    current_file = Path(__file__).resolve()
    project_root = current_file.parent.parent.parent.parent
    config_dir = project_root / "config"

    environment = env or os.getenv("ENV", "development")

    env_map = {
        "production": (".env.production", "production.yaml"),
        "development": (".env.development", "development.yaml"),
        "test": (".env.test", "test.yaml"),
    }

    if env_file is None:
        default_env_file, default_config_file = env_map.get(
            environment, (".env.development", "development.yaml")
        )
        env_file = default_env_file
        if config_file is None:
            config_file = default_config_file

    env_file_path = project_root / env_file
    if env_file_path.exists():
        load_dotenv(env_file_path, override=True)

    default_config_path = config_dir / "default.yaml"
    merged_config = {}

    if default_config_path.exists():
        with open(default_config_path, "r") as f:
            loaded = yaml.safe_load(f)
            if loaded:
                merged_config = loaded

    if config_file:
        env_config_path = config_dir / config_file
        if env_config_path.exists():
            with open(env_config_path, "r") as f:
                loaded = yaml.safe_load(f)
                if loaded:
                    merged_config.update(loaded)

    # Init kwargs outrank the environment in pydantic-settings
    yaml_values = {
        key: value for key, value in merged_config.items() if key not in os.environ
    }
    yaml_values.setdefault("ENV", environment)

    return Settings(**yaml_values)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or initialize global settings singleton."""
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def override_settings(new_settings: Settings) -> None:
    """Override global settings (for testing)."""
    global _settings
    _settings = new_settings


def reset_settings() -> None:
    """Reset settings to force re-initialization (for testing)."""
    global _settings
    _settings = None
