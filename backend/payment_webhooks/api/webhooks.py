"""Payment webhook API routes"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from payment_webhooks.core.config import SIGNATURE_HEADER, TIMESTAMP_HEADER
from payment_webhooks.db.session import get_db
from payment_webhooks.db.store import SqlAlchemyTransactionStore
from payment_webhooks.schemas.webhook import (
    DuplicateResponse, ErrorResponse, ExistingTransaction, HealthResponse,
    ProcessedTransaction, ValidationErrorResponse, WebhookSuccessResponse
)
from payment_webhooks.services.pipeline import (
    GENERIC_FAILURE_MESSAGE, IngestionOutcome, IngestionPipeline, OutcomeKind
)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def get_pipeline(request: Request, db: Session = Depends(get_db)) -> IngestionPipeline:
    """Pipeline bound to this request's database session"""
    return request.app.state.components.pipeline_for(SqlAlchemyTransactionStore(db))


def outcome_response(outcome: IngestionOutcome) -> JSONResponse:
    """Map a pipeline outcome to the HTTP contract.

    Reads attributes of stored records, which may hit the database; call it on
    the same worker thread as the pipeline, never on the event loop.
    """
    if outcome.kind is OutcomeKind.PROCESSED:
        body = WebhookSuccessResponse(data=ProcessedTransaction.from_transaction(outcome.transaction))
        return JSONResponse(status_code=200, content=body.model_dump(mode="json"))

    if outcome.kind is OutcomeKind.AUTHENTICATION_FAILURE:
        body = ErrorResponse(error="Unauthorized", message=outcome.message)
        return JSONResponse(status_code=401, content=body.model_dump(mode="json"))

    if outcome.kind is OutcomeKind.DUPLICATE_DETECTED:
        body = DuplicateResponse(data=ExistingTransaction.from_transaction(outcome.existing))
        return JSONResponse(status_code=409, content=body.model_dump(mode="json"))

    if outcome.kind is OutcomeKind.VALIDATION_FAILURE:
        body = ValidationErrorResponse(message=outcome.message, field=outcome.field)
        return JSONResponse(status_code=400, content=body.model_dump(mode="json"))

    # Storage or unexpected failure: never leak internal detail
    body = ErrorResponse(error="Internal Server Error", message=GENERIC_FAILURE_MESSAGE)
    return JSONResponse(status_code=500, content=body.model_dump(mode="json"))


def ingest_and_respond(pipeline: IngestionPipeline, raw_body: bytes, signature, timestamp) -> JSONResponse:
    return outcome_response(pipeline.ingest(raw_body, signature, timestamp))


@router.post("/payment")
async def payment_webhook(request: Request, pipeline: IngestionPipeline = Depends(get_pipeline)):
    """Ingest a signed payment event.

    The body is read as raw bytes: the signature covers the exact bytes sent,
    so it must not be parsed and re-serialized before verification.
    """
    raw_body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)
    timestamp = request.headers.get(TIMESTAMP_HEADER)

    return await run_in_threadpool(ingest_and_respond, pipeline, raw_body, signature, timestamp)


@router.get("/health", response_model=HealthResponse)
def webhook_health():
    """Health check endpoint"""
    return HealthResponse(timestamp=datetime.now(timezone.utc))
