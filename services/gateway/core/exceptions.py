"""
Custom exception classes.

Represent errors raised while loading routing configuration, forwarding
requests to backends and reading fallback content.
"""

import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base exception class for the gateway."""

    pass


class ConfigurationError(GatewayError):
    """Raised when the routing configuration is invalid. Fatal at startup."""

    def __init__(self, detail: str, source: str = ""):
        self.detail = detail
        self.source = source
        prefix = f"{source}: " if source else ""
        super().__init__(f"Invalid routing configuration: {prefix}{detail}")


class BackendUnavailableError(GatewayError):
    """Raised when a target group has no live target to serve a request."""

    def __init__(self, target_group: str):
        self.target_group = target_group
        super().__init__(f"No healthy targets in target group: {target_group}")


class BackendForwardError(GatewayError):
    """Raised when forwarding to a backend target fails."""

    def __init__(self, target_id: str, cause: Exception):
        self.target_id = target_id
        self.cause = cause
        super().__init__(f"Forwarding to target {target_id} failed: {cause}")


class BackendTimeoutError(BackendForwardError):
    """Raised when a backend target does not answer within the forward timeout."""

    def __init__(self, target_id: str, cause: Exception, timeout: float):
        self.timeout = timeout
        super().__init__(target_id, cause)


class StorageReadError(GatewayError):
    """Base class for fallback content read failures."""

    def __init__(self, message: str, container_id: str = "", object_key: str = ""):
        self.message = message
        self.container_id = container_id
        self.object_key = object_key
        super().__init__(message)


class ObjectNotFoundError(StorageReadError):
    """The container or the object does not exist."""

    pass


class AccessDeniedError(StorageReadError):
    """The gateway is not allowed to read the object."""

    pass


class TransientStorageError(StorageReadError):
    """Network or service error; a later request may succeed."""

    pass


class StorageTimeoutError(TransientStorageError):
    """The read did not finish within the storage timeout."""

    pass


# ===========================================
# Exception Handlers
# ===========================================


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unhandled exceptions.
    """
    logger.error(
        f"Global exception handler caught: {exc}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal Server Error"},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for HTTPException.
    """
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for validation errors.
    """
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"message": "Validation Error", "detail": str(exc.errors())},
    )
