from fastapi import Request
from fastapi.responses import JSONResponse
import logging
from typing import Dict, Any
from app.core.logging import log_request_context

logger = logging.getLogger(__name__)

class APIError(Exception):
    """Base API exception"""

    def __init__(self, message: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ValidationError(APIError):
    """Validation related errors"""

    def __init__(self, message: str = "Validation failed", details: Dict[str, Any] = None):
        super().__init__(message, 400, details)

class NotFoundError(APIError):
    """Referenced team, invitation or key does not exist"""

    def __init__(self, message: str = "Not found", details: Dict[str, Any] = None):
        super().__init__(message, 404, details)

class InvalidKeyError(APIError):
    """Access key does not exist"""

    def __init__(self, message: str = "Invalid Key", details: Dict[str, Any] = None):
        super().__init__(message, 400, details)

class KeyAlreadyUsedError(APIError):
    """Single-use access key was already consumed"""

    def __init__(self, message: str = "Key already used", details: Dict[str, Any] = None):
        super().__init__(message, 400, details)

class NoAvailableTeamsError(APIError):
    """Every pooled team is full or unusable"""

    def __init__(self, message: str = "No available teams at the moment", details: Dict[str, Any] = None):
        super().__init__(message, 400, details)

class RemoteError(APIError):
    """
    Failure reported by the remote team service.

    `status` is the upstream HTTP status (0 when the request never got a
    response) and `body` the upstream response text, both kept verbatim.
    """

    def __init__(self, status: int, body: str = "", action: str = "Request"):
        self.status = status
        self.body = body or ""
        self.action = action
        message = f"{action} failed: {status} - {self.body}" if self.body else f"{action} failed: {status}"
        super().__init__(message, 502, {"upstream_status": status})

    @property
    def is_auth_expired(self) -> bool:
        return False

class AuthExpiredError(RemoteError):
    """Remote service rejected the team credential"""

    def __init__(self, body: str = "", action: str = "Request"):
        super().__init__(401, body, action)

    @property
    def is_auth_expired(self) -> bool:
        return True

def remote_error_from_status(status: int, body: str, action: str) -> RemoteError:
    """Build the structured error kind for a non-success upstream status"""
    if status == 401:
        return AuthExpiredError(body, action)
    return RemoteError(status, body, action)

async def api_exception_handler(request: Request, exc: APIError):
    """Handle custom API exceptions with logging"""

    context = log_request_context(str(request.url.path), request.method)
    context.update({
        "error_type": exc.__class__.__name__,
        "status_code": exc.status_code,
    })

    if exc.status_code >= 500:
        logger.error(f"API Error: {exc.message}", extra={"context": context})
    else:
        logger.warning(f"API Error: {exc.message}", extra={"context": context})

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "success": False,
            "message": exc.message,
            "details": exc.details,
            "timestamp": context["timestamp"]
        }
    )

async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions"""

    context = log_request_context(str(request.url.path), request.method)
    context["error_type"] = exc.__class__.__name__

    logger.error(f"Unexpected error: {str(exc)}", extra={"context": context}, exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "success": False,
            "message": "Internal server error",
            "timestamp": context["timestamp"]
        }
    )
