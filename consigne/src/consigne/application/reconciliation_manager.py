"""
Reconciliation manager.

Owns the lifecycle of deposit records: signup recording, verification
(initial, retry, batch sweep), refund issuance and signup completion.
All state transitions and idempotency checks live here.
"""

import asyncio
import hashlib
import logging
import re
import weakref
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional, Tuple, Union

from consigne.application.dto.reconciliation_dto import (
    RefundResult,
    SignupResult,
    SweepReport,
    VerificationOutcome,
)
from consigne.domain.entities.deposit_record import DepositRecord
from consigne.domain.entities.ledger_transaction import (
    LedgerTransaction,
    TransactionStatus,
    TransactionType,
)
from consigne.domain.exceptions import (
    AlreadyRefundedError,
    ConsigneException,
    DepositNotVerifiedError,
    DuplicateEntityError,
    EntityNotFoundError,
    LedgerQuotaExceededError,
    MissingSenderWalletError,
    RefundInProgressError,
    SignupAlreadyCompletedError,
    ValidationError,
)
from consigne.domain.repositories.i_deposit_repository import IDepositRepository
from consigne.domain.repositories.i_ledger_transaction_repository import (
    ILedgerTransactionRepository,
)
from consigne.domain.services.i_refund_submitter import IRefundSubmitter
from consigne.domain.services.transaction_verifier import TransactionVerifier
from consigne.domain.value_objects.commitment import Commitment
from consigne.domain.value_objects.verification_method import (
    BiometricType,
    VerificationMethod,
)
from consigne.domain.value_objects.verification_result import (
    Invalid,
    InvalidReason,
    Valid,
    VerificationResult,
)
from consigne.infrastructure.monitoring import metrics
from consigne.infrastructure.monitoring.logger import set_correlation_id

logger = logging.getLogger(__name__)

USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9][0-9 ()\-]*$")
PIN_PATTERN = re.compile(r"^[0-9]{4}$")


class ReconciliationManager:
    """
    Reconcile off-chain deposit records with the ledger.

    Business rules:
    - One record per user address and per user id
    - Every verification attempt is counted, whatever its outcome
    - A deposit transaction is attributed to at most one record
    - Refunds are checked for idempotency before any ledger work and
      serialized per record (in-process lock + conditional store writes)
    - A failed refund submission leaves the record retryable
    """

    def __init__(
        self,
        deposit_repository: IDepositRepository,
        transaction_repository: ILedgerTransactionRepository,
        verifier: TransactionVerifier,
        refund_submitter: IRefundSubmitter,
        commitment_secret: str,
        deposit_amount: int = 2_000_000,
        refund_amount: int = 2_000_000,
        user_id_min_length: int = 3,
        user_id_max_length: int = 50,
        phone_min_length: int = 10,
        auto_verify_delay_seconds: float = 1.0,
        refund_claim_ttl_seconds: int = 600,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize manager with dependencies.

        Args:
            deposit_repository: Deposit record store
            transaction_repository: Ledger transaction journal
            verifier: Deposit transaction verifier
            refund_submitter: Refund payment submitter
            commitment_secret: Key for commitment tokens
            deposit_amount: Required deposit in lovelace
            refund_amount: Refund in lovelace
            user_id_min_length: Shortest accepted user id
            user_id_max_length: Longest accepted user id
            phone_min_length: Shortest accepted phone number
            auto_verify_delay_seconds: Pause between sweep items
            refund_claim_ttl_seconds: Age after which a refund claim is stale
            sleep: Awaitable sleep used between sweep items
        """
        if not commitment_secret:
            raise ValueError("Commitment secret is required")

        self.deposit_repository = deposit_repository
        self.transaction_repository = transaction_repository
        self.verifier = verifier
        self.refund_submitter = refund_submitter
        self.commitment_secret = commitment_secret
        self.deposit_amount = deposit_amount
        self.refund_amount = refund_amount
        self.user_id_min_length = user_id_min_length
        self.user_id_max_length = user_id_max_length
        self.phone_min_length = phone_min_length
        self.auto_verify_delay_seconds = auto_verify_delay_seconds
        self.refund_claim_ttl = timedelta(seconds=refund_claim_ttl_seconds)
        self._sleep = sleep
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    @property
    def deposit_address(self) -> str:
        """Protocol address users pay their deposit into."""
        return self.verifier.deposit_address

    # ================================================================
    # Signup
    # ================================================================

    async def record_signup(
        self,
        user_address: str,
        user_id: str,
        phone_number: str,
        sender_wallet_address: Optional[str] = None,
        pin: Optional[str] = None,
        biometric_data: Optional[str] = None,
        verification_method: Union[
            VerificationMethod, str
        ] = VerificationMethod.PHONE,
        biometric_type: Union[BiometricType, str, None] = None,
    ) -> SignupResult:
        """
        Record a pending signup and verify its deposit if possible.

        All inputs are validated before anything is written. Without a
        sender wallet the record stays unverified and the caller gets the
        deposit address to pay into. Indexer quota exhaustion defers
        verification to a later retry or sweep.

        Returns:
            SignupResult (success=True once the record exists)

        Raises:
            ValidationError: If any input is malformed
            DuplicateEntityError: If a record exists for address or user id
        """
        set_correlation_id()
        method, bio_type = self._validate_signup(
            user_address,
            user_id,
            phone_number,
            pin,
            biometric_data,
            verification_method,
            biometric_type,
        )

        if await self.deposit_repository.get_by_user_address(user_address):
            raise DuplicateEntityError("DepositRecord", f"user_address {user_address}")

        if await self.deposit_repository.get_by_user_id(user_id):
            raise DuplicateEntityError("DepositRecord", f"user_id {user_id}")

        secret = self.commitment_secret
        record = DepositRecord(
            user_address=user_address,
            user_id=user_id,
            phone_commitment=Commitment.derive(secret, "phone", phone_number),
            auth_commitment=Commitment.derive(
                secret,
                phone_number,
                user_address,
                nonce=Commitment.random_nonce(),
            ),
            expected_amount=self.deposit_amount,
            sender_wallet_address=sender_wallet_address or None,
            verification_method=method,
            pin_commitment=(
                Commitment.derive(secret, "pin", user_address, pin) if pin else None
            ),
            biometric_commitment=(
                Commitment.derive(secret, "biometric", bio_type.value, biometric_data)
                if biometric_data and bio_type
                else None
            ),
            biometric_type=bio_type,
        )
        record = await self.deposit_repository.create(record)
        logger.info(
            f"Signup recorded for user {user_id}",
            extra={"user_address": user_address, "method": method.value},
        )

        if not record.sender_wallet_address:
            return SignupResult(
                success=True,
                message=(
                    "Signup recorded successfully. "
                    "Please send deposit to complete verification."
                ),
                verified=False,
                deposit_address=self.deposit_address,
            )

        try:
            async with self._lock_for(user_address):
                _, result = await self._verify_record(record)
        except LedgerQuotaExceededError as e:
            logger.warning(
                f"Signup recorded for user {user_id} but verification deferred: "
                f"{e.message}",
                extra={"user_address": user_address},
            )
            return SignupResult(
                success=True,
                message=(
                    "Signup recorded but the ledger indexer is unavailable. "
                    "Verification will be retried."
                ),
                verified=False,
                deposit_address=self.deposit_address,
                reason=InvalidReason.LEDGER_UNAVAILABLE.value,
            )

        if isinstance(result, Valid):
            return SignupResult(
                success=True,
                message="Signup recorded and transaction verified successfully",
                verified=True,
                deposit_address=self.deposit_address,
                deposit_tx_id=result.details.tx_id,
            )

        return SignupResult(
            success=True,
            message=(
                "Signup recorded but transaction verification failed: "
                f"{result.message}"
            ),
            verified=False,
            deposit_address=self.deposit_address,
            reason=result.reason.value,
        )

    def _validate_signup(
        self,
        user_address: str,
        user_id: str,
        phone_number: str,
        pin: Optional[str],
        biometric_data: Optional[str],
        verification_method: Union[VerificationMethod, str],
        biometric_type: Union[BiometricType, str, None],
    ) -> tuple[VerificationMethod, Optional[BiometricType]]:
        """Validate signup input; no state is touched."""
        if not user_address:
            raise ValidationError("user_address", "User address is required")

        if not user_id or not (
            self.user_id_min_length <= len(user_id) <= self.user_id_max_length
        ):
            raise ValidationError(
                "user_id",
                f"User ID must be between {self.user_id_min_length} and "
                f"{self.user_id_max_length} characters",
            )

        if not USER_ID_PATTERN.match(user_id):
            raise ValidationError(
                "user_id",
                "User ID may only contain letters, digits and underscores",
            )

        if not phone_number or len(phone_number) < self.phone_min_length:
            raise ValidationError(
                "phone_number",
                f"Phone number must be at least {self.phone_min_length} characters",
            )

        if not PHONE_PATTERN.match(phone_number):
            raise ValidationError("phone_number", "Phone number is malformed")

        try:
            method = VerificationMethod(verification_method)
        except ValueError:
            raise ValidationError(
                "verification_method",
                f"Unknown verification method: {verification_method}",
            )

        bio_type = None
        if biometric_type is not None:
            try:
                bio_type = BiometricType(biometric_type)
            except ValueError:
                raise ValidationError(
                    "biometric_type", f"Unknown biometric type: {biometric_type}"
                )

        if method == VerificationMethod.PIN and not pin:
            raise ValidationError("pin", "PIN is required for PIN verification")

        if pin is not None and not PIN_PATTERN.match(pin):
            raise ValidationError("pin", "PIN must be exactly 4 digits")

        if method == VerificationMethod.BIOMETRIC:
            if not biometric_data:
                raise ValidationError(
                    "biometric_data",
                    "Biometric data is required for biometric verification",
                )
            if bio_type is None:
                raise ValidationError(
                    "biometric_type",
                    "Biometric type is required for biometric verification",
                )

        return method, bio_type

    # ================================================================
    # Verification
    # ================================================================

    async def retry_verification(
        self,
        user_address: str,
        sender_wallet_address: Optional[str] = None,
        tx_id: Optional[str] = None,
        force: bool = False,
    ) -> VerificationOutcome:
        """
        Re-run verification for a record.

        A supplied wallet is stored on the record first. A supplied tx id is
        checked directly instead of scanning the wallet. A verified record is
        only re-verified when ``force`` or ``tx_id`` is given; the deposit
        reference of a refunded record is final.

        Returns:
            VerificationOutcome

        Raises:
            EntityNotFoundError: If no record exists
            MissingSenderWalletError: If neither wallet nor tx id is known
        """
        set_correlation_id()
        async with self._lock_for(user_address):
            record = await self._require(user_address)

            if sender_wallet_address:
                record.attach_sender_wallet(sender_wallet_address)

            if record.refunded or (record.verified and not (force or tx_id)):
                if sender_wallet_address:
                    await self.deposit_repository.update(record)
                return VerificationOutcome(
                    success=True,
                    message=(
                        "Deposit already refunded"
                        if record.refunded
                        else "User is already verified"
                    ),
                    verified=True,
                    deposit_tx_id=record.deposit_tx_id,
                    verification_attempts=record.verification_attempts,
                )

            if not tx_id and not record.sender_wallet_address:
                raise MissingSenderWalletError(user_address)

            record, result = await self._verify_record(record, tx_id=tx_id)

        if isinstance(result, Valid):
            return VerificationOutcome(
                success=True,
                message="Verification successful",
                verified=True,
                deposit_tx_id=record.deposit_tx_id,
                verification_attempts=record.verification_attempts,
            )

        return VerificationOutcome(
            success=False,
            message=f"Verification failed: {result.message}",
            verified=record.verified,
            deposit_tx_id=record.deposit_tx_id,
            verification_attempts=record.verification_attempts,
            reason=result.reason.value,
        )

    async def auto_verify_all(self) -> SweepReport:
        """
        Verify every unverified record that has a sender wallet.

        Records are processed one at a time with a pause between ledger
        calls. A failure on one record is counted and the sweep moves on;
        only quota exhaustion aborts the sweep.

        Returns:
            SweepReport with per-outcome counts

        Raises:
            LedgerQuotaExceededError: If the indexer refuses further calls
        """
        set_correlation_id()
        report = SweepReport()
        records = await self.deposit_repository.list_unverified()
        report.scanned = len(records)
        logger.info(f"Auto-verification started: {len(records)} unverified deposits")

        processed = 0
        for candidate in records:
            if not candidate.sender_wallet_address:
                report.skipped += 1
                continue

            if processed and self.auto_verify_delay_seconds > 0:
                await self._sleep(self.auto_verify_delay_seconds)
            processed += 1

            try:
                async with self._lock_for(candidate.user_address):
                    record = await self.deposit_repository.get_by_user_address(
                        candidate.user_address
                    )
                    if record is None or record.verified:
                        report.skipped += 1
                        continue
                    _, result = await self._verify_record(record)
            except LedgerQuotaExceededError:
                metrics.sweep_runs_total.labels(status="quota_exceeded").inc()
                logger.warning(
                    "Auto-verification aborted: ledger quota exceeded",
                    extra={"report": report.to_dict()},
                )
                raise
            except ConsigneException as e:
                report.failed += 1
                report.errors.append(f"{candidate.user_address}: {e.message}")
                logger.error(
                    f"Auto-verification error for user {candidate.user_id}: "
                    f"{e.message}"
                )
                continue

            if isinstance(result, Valid):
                report.verified += 1
            else:
                report.failed += 1

        metrics.sweep_runs_total.labels(status="completed").inc()
        logger.info(
            f"Auto-verification completed: {report.verified} verified, "
            f"{report.failed} failed, {report.skipped} skipped",
            extra={"report": report.to_dict()},
        )
        return report

    async def _verify_record(
        self,
        record: DepositRecord,
        tx_id: Optional[str] = None,
    ) -> Tuple[DepositRecord, VerificationResult]:
        """
        Run one verification attempt and persist its effects.

        Caller must hold the record lock. The returned record reflects what
        was stored, which differs from the one passed in when another record
        claimed the same deposit between the attribution check and the write.
        """
        record.record_attempt()
        try:
            if tx_id:
                result = await self.verifier.verify_by_tx_id(
                    tx_id, record.expected_amount, record.sender_wallet_address
                )
            else:
                result = await self.verifier.verify_by_wallet(
                    record.sender_wallet_address, record.expected_amount
                )
        except LedgerQuotaExceededError:
            await self.deposit_repository.update(record)
            metrics.verifications_total.labels(
                result="error", reason="quota_exceeded"
            ).inc()
            raise

        if isinstance(result, Valid):
            owner = await self.deposit_repository.get_by_deposit_tx_id(
                result.details.tx_id
            )
            if owner is not None and owner.id != record.id:
                logger.warning(
                    f"Deposit {result.details.tx_id} already attributed to "
                    f"{owner.user_address}",
                    extra={"user_address": record.user_address},
                )
                result = Invalid(
                    InvalidReason.ALREADY_ATTRIBUTED,
                    f"Transaction {result.details.tx_id} is already attributed "
                    "to another signup",
                )

        if isinstance(result, Valid):
            claimed_tx = result.details.tx_id
            record.mark_verified(result.details)
            try:
                await self.deposit_repository.update(record)
            except DuplicateEntityError:
                logger.warning(
                    f"Deposit {claimed_tx} was attributed to another record "
                    "during verification",
                    extra={"user_address": record.user_address},
                )
                record = await self._require(record.user_address)
                record.record_attempt()
                result = Invalid(
                    InvalidReason.ALREADY_ATTRIBUTED,
                    f"Transaction {claimed_tx} is already attributed "
                    "to another signup",
                )

        if isinstance(result, Valid):
            await self._journal(
                LedgerTransaction(
                    tx_hash=result.details.tx_id,
                    transaction_type=TransactionType.DEPOSIT,
                    from_address=result.details.from_address,
                    to_address=result.details.to_address,
                    amount=result.details.amount,
                    status=TransactionStatus.CONFIRMED,
                    user_address=record.user_address,
                    confirmations=result.details.confirmations,
                    block_time=datetime.fromtimestamp(result.details.block_time),
                    confirmed_at=datetime.now(),
                )
            )
            metrics.verifications_total.labels(result="valid", reason="").inc()
            logger.info(
                f"Deposit verified for user {record.user_id}: "
                f"{result.details.tx_id}",
                extra={"attempts": record.verification_attempts},
            )
            return record, result

        await self.deposit_repository.update(record)
        metrics.verifications_total.labels(
            result="invalid", reason=result.reason.value
        ).inc()
        logger.info(
            f"Deposit verification failed for user {record.user_id}: "
            f"{result.message}",
            extra={
                "reason": result.reason.value,
                "attempts": record.verification_attempts,
            },
        )
        return record, result

    # ================================================================
    # Refund
    # ================================================================

    async def process_refund(
        self,
        user_address: str,
        refund_destination: Optional[str] = None,
    ) -> RefundResult:
        """
        Refund a verified deposit exactly once.

        The refunded flag is checked before any ledger work. An unverified
        record gets one inline verification attempt first. Destination
        defaults to the sender wallet, then the user address.

        Returns:
            RefundResult with the refund transaction id

        Raises:
            EntityNotFoundError: If no record exists
            AlreadyRefundedError: If the record is already refunded
            RefundInProgressError: If another refund holds the claim
            DepositNotVerifiedError: If the deposit cannot be verified
            RefundSubmissionError: If the refund could not be submitted
        """
        set_correlation_id()
        async with self._lock_for(user_address):
            record = await self._require(user_address)

            if record.refunded:
                metrics.refunds_total.labels(status="already_refunded").inc()
                raise AlreadyRefundedError(user_address, record.refund_tx_id)

            if not record.verified:
                if not record.sender_wallet_address:
                    raise DepositNotVerifiedError(
                        user_address, "no sender wallet address to verify against"
                    )
                record, result = await self._verify_record(record)
                if isinstance(result, Invalid):
                    raise DepositNotVerifiedError(user_address, result.message)

            claimed = await self.deposit_repository.claim_refund(
                user_address, datetime.now(), self.refund_claim_ttl
            )
            if not claimed:
                current = await self.deposit_repository.get_by_user_address(
                    user_address
                )
                if current is not None and current.refunded:
                    raise AlreadyRefundedError(user_address, current.refund_tx_id)
                raise RefundInProgressError(user_address)

            destination = (
                refund_destination or record.sender_wallet_address or user_address
            )
            logger.info(
                f"Processing refund to {destination}",
                extra={"user_address": user_address},
            )

            try:
                refund_tx_id = await self.refund_submitter.submit_refund(
                    destination_address=destination,
                    source_utxo=record.deposit_utxo,
                    amount=self.refund_amount,
                    idempotency_key=self.refund_idempotency_key(record),
                )
            except Exception as e:
                await self.deposit_repository.release_refund_claim(user_address)
                metrics.refunds_total.labels(status="failed").inc()
                logger.error(
                    f"Refund submission failed for {user_address}: {e}",
                    extra={"user_address": user_address},
                )
                raise

            marked = await self.deposit_repository.mark_refunded(
                user_address, refund_tx_id, datetime.now()
            )
            if not marked:
                logger.error(
                    f"Refund {refund_tx_id} submitted but record for "
                    f"{user_address} was not updated",
                )
                raise AlreadyRefundedError(user_address, refund_tx_id)

            record.mark_refunded(refund_tx_id)

        await self._journal(
            LedgerTransaction(
                tx_hash=refund_tx_id,
                transaction_type=TransactionType.REFUND,
                from_address=self.deposit_address,
                to_address=destination,
                amount=self.refund_amount,
                status=TransactionStatus.PENDING,
                user_address=user_address,
            )
        )
        metrics.refunds_total.labels(status="success").inc()
        logger.info(f"Refund processed successfully: {refund_tx_id}")

        return RefundResult(
            success=True,
            message="Refund processed successfully",
            refund_tx_id=refund_tx_id,
            destination_address=destination,
        )

    @staticmethod
    def refund_idempotency_key(record: DepositRecord) -> str:
        """Stable key for one record's refund of one deposit output."""
        source = str(record.deposit_utxo) if record.deposit_utxo else "-"
        payload = f"refund:{record.user_address}:{source}"
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    # ================================================================
    # Signup completion and lookups
    # ================================================================

    async def complete_signup(self, user_address: str) -> str:
        """
        Mark a verified signup as completed.

        Returns:
            Deposit transaction id backing the signup

        Raises:
            EntityNotFoundError: If no record exists
            DepositNotVerifiedError: If the deposit is not verified
            SignupAlreadyCompletedError: If already completed
        """
        set_correlation_id()
        async with self._lock_for(user_address):
            record = await self._require(user_address)

            if not record.verified:
                raise DepositNotVerifiedError(user_address)

            if record.signup_completed:
                raise SignupAlreadyCompletedError(user_address)

            record.complete_signup()
            await self.deposit_repository.update(record)

        await self._journal(
            LedgerTransaction(
                tx_hash=record.deposit_tx_id,
                transaction_type=TransactionType.SIGNUP,
                from_address=record.sender_wallet_address or user_address,
                to_address=self.deposit_address,
                amount=record.deposit_amount or record.expected_amount,
                status=TransactionStatus.CONFIRMED,
                user_address=user_address,
                confirmed_at=datetime.now(),
            )
        )
        logger.info(f"Signup completed for user {record.user_id}")
        return record.deposit_tx_id

    async def get_deposit(self, user_address: str) -> Optional[DepositRecord]:
        """Look up a record by user address."""
        return await self.deposit_repository.get_by_user_address(user_address)

    async def get_deposit_by_user_id(self, user_id: str) -> Optional[DepositRecord]:
        """Look up a record by user id."""
        return await self.deposit_repository.get_by_user_id(user_id)

    async def list_awaiting_refund(self) -> list[DepositRecord]:
        """Records that are verified but not refunded."""
        return await self.deposit_repository.list_awaiting_refund()

    # ================================================================
    # Helpers
    # ================================================================

    def _lock_for(self, user_address: str) -> asyncio.Lock:
        """Per-address lock, dropped once no holder or waiter references it."""
        lock = self._locks.get(user_address)
        if lock is None:
            lock = self._locks[user_address] = asyncio.Lock()
        return lock

    async def _require(self, user_address: str) -> DepositRecord:
        record = await self.deposit_repository.get_by_user_address(user_address)
        if record is None:
            raise EntityNotFoundError("DepositRecord", user_address)
        return record

    async def _journal(self, transaction: LedgerTransaction) -> None:
        """Journal a transaction once per (hash, type)."""
        existing = await self.transaction_repository.get_by_tx_hash(
            transaction.tx_hash, transaction.transaction_type
        )
        if existing is not None:
            logger.debug(
                f"Transaction {transaction.tx_hash} "
                f"({transaction.transaction_type.value}) already journaled"
            )
            return
        await self.transaction_repository.create(transaction)
