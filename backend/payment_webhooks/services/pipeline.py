"""Webhook ingestion pipeline.

verify -> validate -> idempotency check -> compute -> persist, with an audit
entry on receipt and exactly one more on the terminal outcome. Components
signal failure with their own exceptions; the pipeline catches them at each
stage and returns an IngestionOutcome, so callers branch on a kind instead of
catching exceptions.
"""
import enum
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from payment_webhooks.core.logging import webhook_logger as logger
from payment_webhooks.core.metrics import (
    webhooks_received_counter, webhook_outcomes_counter,
    webhook_processing_histogram, signature_failures_counter
)
from payment_webhooks.core.otel import get_tracer
from payment_webhooks.db.store import TransactionStore, UniquenessViolation
from payment_webhooks.models.audit_log import AuditStatus
from payment_webhooks.models.transaction import Transaction, TransactionStatus
from payment_webhooks.schemas.webhook import IncomingEvent
from payment_webhooks.services.audit import AuditRecorder
from payment_webhooks.services.fees import DerivedFields, FeeCalculator
from payment_webhooks.services.idempotency import DuplicateTransactionError, IdempotencyGuard
from payment_webhooks.services.signature import SignatureVerifier
from payment_webhooks.services.validation import PayloadValidator, ValidationFailure, as_decimal

tracer = get_tracer(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to process webhook"


class PipelineStage(str, enum.Enum):
    RECEIVED = "received"
    AUTHENTICATING = "authenticating"
    VALIDATING = "validating"
    CHECKING_IDEMPOTENCY = "checking_idempotency"
    COMPUTING = "computing"
    PERSISTING = "persisting"
    PROCESSED = "processed"
    FAILED = "failed"


class OutcomeKind(str, enum.Enum):
    PROCESSED = "processed"
    AUTHENTICATION_FAILURE = "authentication_failure"
    VALIDATION_FAILURE = "validation_failure"
    DUPLICATE_DETECTED = "duplicate_detected"
    PERSISTENCE_FAILURE = "persistence_failure"


@dataclass
class IngestionOutcome:
    kind: OutcomeKind
    stage: PipelineStage
    message: str
    field: Optional[str] = None
    transaction: Optional[Transaction] = None
    existing: Optional[Transaction] = None
    # Internal error text for the audit trail; never sent to the caller
    detail: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.kind is OutcomeKind.PROCESSED


def decode_body(raw_body: Union[bytes, str]) -> Any:
    """Decoded JSON body, or the body text when it is not valid JSON"""
    text = raw_body.decode("utf-8", errors="replace") if isinstance(raw_body, bytes) else raw_body
    try:
        return json.loads(text)
    except ValueError:
        return text


def build_transaction(event: IncomingEvent, derived: DerivedFields, processed_at: datetime) -> Transaction:
    """Transaction row for a validated event; codes are stored upper-cased"""
    data = event.data
    return Transaction(
        event_id=event.event_id,
        transaction_id=data.transaction_id,
        amount=data.amount,
        currency=data.currency.upper(),
        sender_id=data.sender.id,
        sender_name=data.sender.name,
        sender_email=data.sender.email,
        sender_country=data.sender.country.upper(),
        receiver_id=data.receiver.id,
        receiver_name=data.receiver.name,
        receiver_email=data.receiver.email,
        receiver_country=data.receiver.country.upper(),
        status=TransactionStatus(data.status),
        payment_method=data.payment_method,
        processing_fee=derived.processing_fee,
        net_amount=derived.net_amount,
        exchange_rate=None,
        transaction_metadata=data.metadata,
        processed_at=processed_at,
    )


class IngestionPipeline:
    """Processes one webhook delivery end to end.

    Holds no per-request state of its own; the store it is given is the only
    thing that should be request-scoped.
    """

    def __init__(
        self,
        verifier: SignatureVerifier,
        validator: PayloadValidator,
        calculator: FeeCalculator,
        guard: IdempotencyGuard,
        recorder: AuditRecorder,
        store: TransactionStore,
        now=lambda: datetime.now(timezone.utc),
    ):
        self.verifier = verifier
        self.validator = validator
        self.calculator = calculator
        self.guard = guard
        self.recorder = recorder
        self.store = store
        self._now = now

    def ingest(
        self,
        raw_body: Union[bytes, str],
        signature: Optional[str],
        timestamp: Optional[str] = None,
    ) -> IngestionOutcome:
        """Run a delivery through every stage and return its outcome.

        Args:
            raw_body: Exact request body, as signed by the producer
            signature: X-Webhook-Signature header value
            timestamp: X-Webhook-Timestamp header value, if sent

        Returns:
            IngestionOutcome describing the terminal state
        """
        started = time.perf_counter()
        webhooks_received_counter.inc()

        with tracer.start_as_current_span("webhook.ingest") as span:
            payload = decode_body(raw_body)
            # Recorded before anything else so malformed and forged deliveries are captured too
            self.recorder.record(payload, AuditStatus.RECEIVED)

            outcome = self._process(payload, raw_body, signature, timestamp)

            if outcome.succeeded:
                self.recorder.record(payload, AuditStatus.PROCESSED)
            else:
                self.recorder.record(payload, AuditStatus.FAILED, outcome.detail or outcome.message)

            span.set_attribute("webhook.outcome", outcome.kind.value)
            span.set_attribute("webhook.stage", outcome.stage.value)

        webhook_outcomes_counter.labels(outcome=outcome.kind.value).inc()
        webhook_processing_histogram.observe(time.perf_counter() - started)
        return outcome

    def _process(self, payload: Any, raw_body, signature, timestamp) -> IngestionOutcome:
        stage = PipelineStage.AUTHENTICATING
        try:
            result = self.verifier.authenticate(raw_body, signature, timestamp)
            if not result.valid:
                signature_failures_counter.labels(mode=result.mode or "missing").inc()
                logger.warning(f"Webhook rejected: {result.reason}")
                return self._failure(OutcomeKind.AUTHENTICATION_FAILURE, stage, result.reason)

            stage = PipelineStage.VALIDATING
            try:
                self.validator.validate(payload)
            except ValidationFailure as e:
                logger.info(f"Webhook validation failed on {e.field}: {e.message}")
                return self._failure(OutcomeKind.VALIDATION_FAILURE, stage, e.message, field=e.field)

            event = IncomingEvent.model_validate({
                **payload,
                "data": {**payload["data"], "amount": as_decimal(payload["data"]["amount"])},
            })

            stage = PipelineStage.CHECKING_IDEMPOTENCY
            try:
                self.guard.check_duplicate(event.event_id, event.data.transaction_id)
            except DuplicateTransactionError as e:
                return self._duplicate(stage, e.existing_transaction)

            stage = PipelineStage.COMPUTING
            derived = self.calculator.calculate_derived_fields(event.data.amount)

            stage = PipelineStage.PERSISTING
            transaction = build_transaction(event, derived, processed_at=self._now())
            try:
                saved = self.store.insert_transaction(transaction)
            except UniquenessViolation as e:
                # A concurrent delivery won the insert race; report the record it stored
                existing = self.guard.find_existing(event.event_id, event.data.transaction_id)
                if existing is None:
                    logger.error(f"Unique constraint violated but no prior record found: {e}")
                    return self._failure(
                        OutcomeKind.PERSISTENCE_FAILURE, stage, GENERIC_FAILURE_MESSAGE, detail=str(e)
                    )
                return self._duplicate(stage, existing)
        except SQLAlchemyError as e:
            logger.error(f"Storage error while {stage.value}: {e}", exc_info=True)
            return self._failure(OutcomeKind.PERSISTENCE_FAILURE, stage, GENERIC_FAILURE_MESSAGE, detail=str(e))
        except Exception as e:
            logger.error(f"Unexpected error while {stage.value}: {e}", exc_info=True)
            return self._failure(OutcomeKind.PERSISTENCE_FAILURE, stage, GENERIC_FAILURE_MESSAGE, detail=str(e))

        logger.info(
            f"Processed webhook {event.event_id} ({event.event_type}): "
            f"transaction {saved.transaction_id} stored as {saved.id}"
        )
        return IngestionOutcome(
            kind=OutcomeKind.PROCESSED,
            stage=PipelineStage.PROCESSED,
            message="Webhook processed successfully",
            transaction=saved,
        )

    @staticmethod
    def _failure(
        kind: OutcomeKind,
        stage: PipelineStage,
        message: str,
        field: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> IngestionOutcome:
        return IngestionOutcome(kind=kind, stage=stage, message=message, field=field, detail=detail)

    @staticmethod
    def _duplicate(stage: PipelineStage, existing: Transaction) -> IngestionOutcome:
        logger.info(f"Webhook for transaction {existing.transaction_id} already processed")
        return IngestionOutcome(
            kind=OutcomeKind.DUPLICATE_DETECTED,
            stage=stage,
            message="Transaction already processed",
            existing=existing,
        )


@dataclass(frozen=True)
class PipelineComponents:
    """Stateless collaborators built once at startup and shared by every request"""
    verifier: SignatureVerifier
    validator: PayloadValidator
    calculator: FeeCalculator

    def pipeline_for(self, store: TransactionStore) -> IngestionPipeline:
        """Pipeline bound to one request's store"""
        return IngestionPipeline(
            verifier=self.verifier,
            validator=self.validator,
            calculator=self.calculator,
            guard=IdempotencyGuard(store),
            recorder=AuditRecorder(store),
            store=store,
        )


def build_components(app_settings) -> PipelineComponents:
    """Build the shared components; raises WebhookSecretMissingError without a secret"""
    return PipelineComponents(
        verifier=SignatureVerifier(
            secret=app_settings.WEBHOOK_SECRET,
            tolerance_seconds=app_settings.WEBHOOK_TIMESTAMP_TOLERANCE,
            require_timestamp=app_settings.REQUIRE_WEBHOOK_TIMESTAMP,
        ),
        validator=PayloadValidator(),
        calculator=FeeCalculator(),
    )
