# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""
Error taxonomy and the single translator that turns every exception into the
response envelope ``{success: false, message, errors?}``.

Services and dependency gates raise the :class:`AppError` subclasses below;
they never build HTTP responses themselves.  ``register_exception_handlers``
installs the handlers on the FastAPI app, including the mapping of storage
errors (unique key, missing row) onto the same taxonomy so that the HTTP
contract does not depend on the database engine.
"""

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException


class AppError(Exception):
    """Base class for every error the API reports to its clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        errors: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.errors = errors
        self.headers = headers
        super().__init__(self.message)


# -- Authentication & authorization ----------------------------------------


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized access"

    def __init__(self, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(message, **kwargs)


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access forbidden"


class InvalidCredentials(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid email or password"


class AccountInactive(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Account is inactive or suspended"


# -- Validation ------------------------------------------------------------


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


# -- Resources -------------------------------------------------------------


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class AlreadyExists(AppError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} already exists")


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource conflict"


# -- Server ----------------------------------------------------------------


class InternalError(AppError):
    default_message = "Internal server error"


class ConfigError(AppError):
    """Raised while loading settings; aborts the process at boot."""

    default_message = "Configuration error"


# ---------------------------------------------------------------------------
# Envelope helpers
# ---------------------------------------------------------------------------


def error_response(
    status_code: int,
    message: str,
    errors: Optional[List[Dict[str, Any]]] = None,
    headers: Optional[Dict[str, str]] = None,
    debug: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    if debug:
        body["debug"] = debug
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


def _field_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    """Flatten pydantic errors into ``[{field, message}]`` pairs."""
    result = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "cookie", "header")]
        result.append({
            "field": ".".join(loc) or "body",
            "message": err.get("msg", "Invalid value"),
        })
    return result


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def register_exception_handlers(app: FastAPI, debug: bool = False) -> None:
    """
    Install the centralised translator.  With ``debug`` set (development
    environment only) 5xx envelopes carry the exception type and text.
    """
    # Local import keeps core.errors free of a logger dependency at import
    from core.logger import logger

    def _debug(exc: Exception) -> Optional[Dict[str, Any]]:
        if not debug:
            return None
        return {"type": type(exc).__name__, "detail": str(exc)}

    @app.exception_handler(AppError)
    async def _handle_app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
        else:
            logger.warning(
                "%s %s rejected | status=%d message=%s",
                request.method, request.url.path, exc.status_code, exc.message,
            )
        return error_response(
            exc.status_code,
            exc.message,
            errors=exc.errors,
            headers=exc.headers,
            debug=_debug(exc) if exc.status_code >= 500 else None,
        )

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation(request: Request, exc: RequestValidationError):
        errors = _field_errors(exc)
        logger.warning(
            "%s %s validation error | fields=%s",
            request.method, request.url.path, ",".join(e["field"] for e in errors),
        )
        return error_response(status.HTTP_400_BAD_REQUEST, "Validation error", errors=errors)

    @app.exception_handler(StarletteHTTPException)
    async def _handle_http_exception(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(IntegrityError)
    async def _handle_integrity(request: Request, exc: IntegrityError):
        logger.warning("%s %s integrity error: %s", request.method, request.url.path, exc.orig)
        return error_response(
            status.HTTP_409_CONFLICT,
            "A record with this information already exists",
            debug=_debug(exc),
        )

    @app.exception_handler(NoResultFound)
    async def _handle_no_result(request: Request, exc: NoResultFound):
        return error_response(status.HTTP_404_NOT_FOUND, "Record not found", debug=_debug(exc))

    @app.exception_handler(SQLAlchemyError)
    async def _handle_database(request: Request, exc: SQLAlchemyError):
        logger.error("%s %s database error", request.method, request.url.path, exc_info=exc)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Database operation failed",
            debug=_debug(exc),
        )

    @app.exception_handler(Exception)
    async def _handle_unexpected(request: Request, exc: Exception):
        logger.error("%s %s unhandled exception", request.method, request.url.path, exc_info=exc)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            debug=_debug(exc),
        )
