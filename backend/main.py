# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""
FastAPI application factory.

Responsibilities
----------------
* Build the shared services (session factory, token codec, password hasher,
  mailer, phone-code verifier) once and hang them on ``app.state``.
* Register CORS and request-logging middleware.
* Mount the feature routers (auth, users, admin) under ``API_PREFIX``.
* Install the exception handlers that produce the response envelope.
* Expose a /health endpoint for container liveness checks.

Run with:  uvicorn main:app  (from backend/)
"""

import time
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session, sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware

from admin.router import router as admin_router
from auth.router import router as auth_router
from auth.service import PhoneCodeVerifier
from core.config import Settings, settings as default_settings
from core.errors import register_exception_handlers
from core.logger import logger
from core.mailer import Mailer
from core.security import PasswordHasher, TokenCodec, TokenKind
from database import check_connection, create_session_factory, get_db
from users.router import router as users_router


# ---------------------------------------------------------------------------
# Request-logging middleware
# ---------------------------------------------------------------------------
# Logs every inbound request: method, path, client IP, status, latency.
# Bodies, cookies and the Authorization header are NOT echoed – only the URL
# and metadata are recorded.


class _RequestLogMiddleware(BaseHTTPMiddleware):
    """Log method, path, client IP, response status and latency (ms)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        client_ip = request.client.host if request.client else "unknown"

        logger.info(
            "%s %s | client=%s status=%d latency=%.1fms",
            request.method,
            request.url.path,
            client_ip,
            response.status_code,
            elapsed_ms,
        )
        return response


def _warn_on_lifetime_mismatch(settings: Settings, codec: TokenCodec) -> None:
    """The cookie, the refresh JWT and the ledger row should all expire together."""
    jwt_lifetime = codec.lifetime(TokenKind.REFRESH)
    ledger_lifetime = timedelta(days=settings.jwt_refresh_token_db_expires_days)
    cookie_lifetime = timedelta(days=settings.cookie_max_age_days)
    if not jwt_lifetime == ledger_lifetime == cookie_lifetime:
        logger.warning(
            "Refresh lifetimes disagree | jwt=%s ledger=%s cookie=%s",
            jwt_lifetime, ledger_lifetime, cookie_lifetime,
        )


@asynccontextmanager
async def _lifespan(app: FastAPI):
    logger.info("Hire Helping Hand API starting up | environment=%s", app.state.settings.environment)
    _warn_on_lifetime_mismatch(app.state.settings, app.state.token_codec)
    yield
    logger.info("Hire Helping Hand API shutting down")


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    mailer=None,
) -> FastAPI:
    """
    Build the application.  Tests pass their own *settings*, an in-memory
    *session_factory* and a recording *mailer*; production uses the defaults.
    """
    settings = settings or default_settings

    app = FastAPI(title="Hire Helping Hand API", version="1.0.0", lifespan=_lifespan)

    app.state.settings = settings
    app.state.session_factory = session_factory or create_session_factory(settings.database_url)
    app.state.token_codec = TokenCodec(settings)
    app.state.password_hasher = PasswordHasher(settings.bcrypt_salt_rounds)
    app.state.mailer = mailer or Mailer.from_settings(settings)
    app.state.phone_verifier = PhoneCodeVerifier(settings.phone_verification_code)

    # -----------------------------------------------------------------------
    # CORS
    # -----------------------------------------------------------------------
    # Browsers reject credentialed requests to a wildcard origin; set
    # CORS_ORIGIN to the exact frontend origin when CORS_CREDENTIALS=true.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(_RequestLogMiddleware)

    # -----------------------------------------------------------------------
    # Routers & errors
    # -----------------------------------------------------------------------
    prefix = settings.api_prefix.rstrip("/")
    app.include_router(auth_router, prefix=prefix)
    app.include_router(users_router, prefix=prefix)
    app.include_router(admin_router, prefix=prefix)

    register_exception_handlers(app, debug=settings.is_development)

    # -----------------------------------------------------------------------
    # Health check
    # -----------------------------------------------------------------------

    @app.get("/health")
    def health(db: Session = Depends(get_db)):
        if check_connection(db):
            return {"status": "ok", "database": "ok"}
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "degraded", "database": "unreachable"},
        )

    return app


app = create_app()
