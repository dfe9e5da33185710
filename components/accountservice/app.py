from __future__ import annotations
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import AccountConfig
from .contracts import Clock
from .deps import build_services
from .errors import AccountServiceError, ValidationFailedError
from .observability import RequestContextMiddleware
from .routes import auth_router, health_router, users_router

APP_NAME = "accountservice"
APP_VERSION = "0.1.0"

log = logging.getLogger("accountservice.app")


async def account_error_handler(request: Request, exc: AccountServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        messages.append(f"{'.'.join(loc)}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(
        status_code=ValidationFailedError.status_code,
        content={
            "statusCode": ValidationFailedError.status_code,
            "message": messages,
            "error": ValidationFailedError.error,
        },
    )


def create_app(cfg: Optional[AccountConfig] = None, *, now: Optional[Clock] = None) -> FastAPI:
    cfg = cfg or AccountConfig()
    logging.getLogger("accountservice").setLevel(cfg.log_level.upper())
    if cfg.uses_dev_secrets():
        log.warning("using development token secrets; set JWT_SECRET and JWT_REFRESH_SECRET")
    if cfg.guard_mode == "mock":
        log.warning("access guard in mock mode; bearer tokens are not verified")

    app = FastAPI(title=APP_NAME, version=APP_VERSION)
    app.state.accounts = build_services(cfg, now=now)
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(AccountServiceError, account_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(users_router)

    return app
