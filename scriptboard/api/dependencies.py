"""Service wiring, caller identity and error mapping for the HTTP API."""

from typing import Optional

from fastapi import Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from scriptboard.core.config import settings
from scriptboard.core.errors import (
    AutoOptimizeExhausted,
    DurationMismatchError,
    InputValidationError,
    InvalidTransition,
    ModerationFailure,
    PersistenceError,
    PlaceholderThresholdError,
    ProjectNotFound,
    ProviderError,
    RetryExhausted,
    ScriptboardError,
    SegmentNotFound,
)
from scriptboard.core.logging_config import get_logger
from scriptboard.services.container import ServiceContainer
from scriptboard.utils.error_handler import error_payload

logger = get_logger(__name__)

# Most specific first
ERROR_STATUS: list[tuple[type[ScriptboardError], int]] = [
    (ProjectNotFound, status.HTTP_404_NOT_FOUND),
    (SegmentNotFound, status.HTTP_404_NOT_FOUND),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (DurationMismatchError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PlaceholderThresholdError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InputValidationError, status.HTTP_400_BAD_REQUEST),
    (ModerationFailure, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (AutoOptimizeExhausted, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (RetryExhausted, status.HTTP_502_BAD_GATEWAY),
    (ProviderError, status.HTTP_502_BAD_GATEWAY),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]

_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Get or create the process-wide service container."""
    global _container
    if _container is None:
        _container = ServiceContainer.build(settings, logger)
    return _container


def require_user_id(x_user_id: str = Header(default=None, alias="X-User-ID")) -> str:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-User-ID header required")
    return x_user_id


def status_for_error(error: ScriptboardError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def scriptboard_error_handler(request: Request, exc: ScriptboardError) -> JSONResponse:
    code = status_for_error(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {code}: {exc.reason}: {exc}")
    return JSONResponse(status_code=code, content=error_payload(exc))
