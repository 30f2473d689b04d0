"""Maps the bridge error taxonomy to HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from server.models.responses import ErrorResponse
from shared.exceptions import (
    AccessBridgeError,
    BackendUnavailableError,
    ConfigurationError,
    InvalidRelationError,
    InvalidRequestError,
    NotAuthorizedError,
    RequestTimeoutError,
)

# most specific first
ERROR_STATUS: list[tuple[type[AccessBridgeError], int]] = [
    (InvalidRelationError, 400),
    (InvalidRequestError, 400),
    (NotAuthorizedError, 403),
    (ConfigurationError, 500),
    (BackendUnavailableError, 503),
    (RequestTimeoutError, 504),
]


def get_status_code(exc: AccessBridgeError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 500


def error_body(exc: AccessBridgeError) -> dict:
    return ErrorResponse(error=exc.message, detail=exc.detail, type=type(exc).__name__).model_dump()


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AccessBridgeError)
    async def _handle_bridge_error(request: Request, exc: AccessBridgeError) -> JSONResponse:
        status_code = get_status_code(exc)
        logger = request.app.state.logging
        if isinstance(exc, NotAuthorizedError):
            logger.info("%s %s -> 403: %s", request.method, request.url.path, exc.message)
        elif status_code >= 500:
            logger.error("%s %s -> %d: %s (%s)", request.method, request.url.path, status_code, exc.message, exc.detail)
        else:
            logger.warning("%s %s -> %d: %s", request.method, request.url.path, status_code, exc.message)
        return JSONResponse(status_code=status_code, content=error_body(exc))
