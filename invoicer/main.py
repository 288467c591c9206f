# invoicer/main.py
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .auth import Authenticator
from .config import Settings
from .db import Database
from .errors import AppError, ValidationError
from .routers import checkout, clients, connect, health, jobs, payments, profile, stripe_webhook
from .store import SupabaseStore
from .stripe_gateway import StripeGateway

log = logging.getLogger("uvicorn.error")


def _error_response(settings: Settings, status_code: int, message: str, hint: Optional[str] = None) -> JSONResponse:
    body = {"success": False, "error": message}
    if hint:
        body["hint"] = hint
    if settings.error_response_style == "always_200":
        status_code = 200
    return JSONResponse(body, status_code=status_code)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await app.state.database.dispose()


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[SupabaseStore] = None,
    gateway: Optional[StripeGateway] = None,
    authenticator: Optional[Authenticator] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()

    app = FastAPI(title="Invoicer API", version=__version__, docs_url="/docs", redoc_url=None, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.gateway = gateway or StripeGateway(settings.stripe_secret_key)
    app.state.authenticator = authenticator or Authenticator(
        settings.supabase_url, settings.supabase_jwt_secret, settings.supabase_service_role_key
    )
    app.state.database = database or Database(settings.supabase_db_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            log.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return _error_response(settings, exc.status_code, exc.message, exc.hint)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:]) or 'body'}: {err['msg']}" for err in exc.errors()
        )
        return _error_response(settings, ValidationError.status_code, f"Invalid request: {problems}")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log.exception(f"Unhandled error in {request.method} {request.url.path}")
        return _error_response(settings, 500, "Internal server error", "Check the service logs for more information")

    @app.get("/", tags=["default"])
    def read_root():
        return {"ok": True, "service": "invoicer-api"}

    app.include_router(health.router)
    app.include_router(checkout.router)
    app.include_router(stripe_webhook.router)
    app.include_router(connect.router)
    app.include_router(profile.router)
    app.include_router(clients.router)
    app.include_router(jobs.router)
    app.include_router(payments.router)
    return app


load_dotenv()
app = create_app()

# ──────────────────────────────────────────────────────────────────────────────
# Local dev entrypoint
# ──────────────────────────────────────────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(
        "invoicer.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", "8000")),
        reload=True,
    )
