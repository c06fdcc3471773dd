# routers/router.py
"""
FastAPI Router for the Mechanical Turk triggers
"""

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Request,
    status
)
from fastapi.concurrency import run_in_threadpool

from core.auth import AuthenticatedPrincipal, verify_jwt_token
from core.aws_client import get_sqs_client
from core.config import settings
from core.exceptions import (
    BatchCreationError,
    ConfigError,
    InputKeyError,
    ParseError,
    RelayError,
    RemoteCallError,
    SetupError,
    TaskIntegratorError,
)
from core.logger import logger
from core.rate_limiter import limit_param, limiter
from integrations.config_store import load_turk_config
from integrations.sqs_client import QueueGateway
from schemas.request_models import (
    BalanceResponse,
    HealthResponse,
    IngestRequest,
    IngestResponse,
    RelayRequest,
    RelayResponse,
)
from services.pipelines import run_balance_check, run_ingest, run_relay


# ============================================================================
# ROUTER CONFIGURATION
# ============================================================================

router = APIRouter(
    prefix="/api/v1",
    tags=["Task Integrator"],
    responses={
        403: {"description": "Forbidden - Invalid JWT"},
        429: {"description": "Too Many Requests"},
        502: {"description": "Mechanical Turk or AWS call failed"}
    }
)


def _status_for(error: TaskIntegratorError) -> int:
    if isinstance(error, (InputKeyError, ParseError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, ConfigError):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(error, (RemoteCallError, SetupError, BatchCreationError, RelayError)):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _error_detail(error: TaskIntegratorError, operation: str) -> dict:
    detail = {"operation": operation, "error": type(error).__name__, "message": str(error)}
    if isinstance(error, BatchCreationError):
        detail["stranded_hit_ids"] = error.created_hit_ids
    if isinstance(error, RelayError) and error.result is not None:
        detail["published_message_ids"] = error.result.message_ids
    return detail


# ============================================================================
# HEALTH CHECK ENDPOINTS
# ============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Service Health Check",
    description="Validates the stack configuration and notification queue"
)
@limiter.limit(limit_param)
async def check_health(request: Request) -> HealthResponse:
    health_status = HealthResponse(
        status="healthy",
        message="Task integrator is operational"
    )

    try:
        config = await run_in_threadpool(load_turk_config, settings.STACK_NAME)
        health_status.config_status = "loaded"
    except Exception as e:
        logger.error(f"Config health check failed: {e}")
        health_status.config_status = f"error: {str(e)[:100]}"
        health_status.status = "degraded"
        return health_status

    try:
        queue = QueueGateway(get_sqs_client(), config.turk_notification_queue)
        await run_in_threadpool(queue.queue_arn)
        health_status.queue_status = "connected"
    except Exception as e:
        logger.error(f"SQS health check failed: {e}")
        health_status.queue_status = f"error: {str(e)[:100]}"
        health_status.status = "degraded"

    return health_status


# ============================================================================
# TRIGGER ENDPOINTS
# ============================================================================

@router.get(
    "/balance",
    response_model=BalanceResponse,
    status_code=status.HTTP_200_OK,
    summary="Requester Balance",
    description="Returns the Mechanical Turk account balance"
)
@limiter.limit(limit_param)
async def balance_endpoint(
    request: Request,
    principal: AuthenticatedPrincipal = Depends(verify_jwt_token)
) -> BalanceResponse:
    try:
        message = await run_in_threadpool(run_balance_check, settings.STACK_NAME)
    except TaskIntegratorError as e:
        logger.exception(f"Balance check failed: {e}")
        raise HTTPException(status_code=_status_for(e), detail=_error_detail(e, "balance"))
    return BalanceResponse(message=message)


@router.post(
    "/ingest",
    response_model=IngestResponse,
    status_code=status.HTTP_200_OK,
    summary="Create HITs from CSV uploads",
    description="Accepts an S3 ObjectCreated notification and creates one HIT per CSV row"
)
@limiter.limit(limit_param)
async def ingest_endpoint(
    request: Request,
    body: IngestRequest,
    principal: AuthenticatedPrincipal = Depends(verify_jwt_token)
) -> IngestResponse:
    """
    Each record's key must be '{HITLayoutId}/{filename}' with a layout
    configured for the stack. HITs created before a failure are not rolled
    back; their ids are returned in the error detail.
    """
    try:
        hit_ids = await run_in_threadpool(run_ingest, settings.STACK_NAME, body.records())
    except TaskIntegratorError as e:
        logger.exception(f"Ingest failed: {e}")
        raise HTTPException(status_code=_status_for(e), detail=_error_detail(e, "ingest"))

    logger.info(f"Ingest processed: request_id={principal.request_id}, hits={len(hit_ids)}")
    return IngestResponse(message=f"{len(hit_ids)} HITs created.", hit_ids=hit_ids)


@router.post(
    "/relay",
    response_model=RelayResponse,
    status_code=status.HTTP_200_OK,
    summary="Relay MTurk notifications to SNS",
    description="Drains the notification queue for a bounded number of rounds"
)
@limiter.limit(limit_param)
async def relay_endpoint(
    request: Request,
    body: RelayRequest = None,
    principal: AuthenticatedPrincipal = Depends(verify_jwt_token)
) -> RelayResponse:
    deadline = body.deadline_seconds if body else None
    try:
        result = await run_in_threadpool(run_relay, settings.STACK_NAME, deadline)
    except TaskIntegratorError as e:
        logger.exception(f"Relay failed: {e}")
        raise HTTPException(status_code=_status_for(e), detail=_error_detail(e, "relay"))

    return RelayResponse(message=result.summary, message_ids=result.message_ids, rounds=result.rounds)
