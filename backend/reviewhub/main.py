from __future__ import annotations

import logging
import re

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.types import Receive, Scope, Send

from .routes_payload import router as payload_router
from .routes_widget_config import router as widget_config_router
from .routes_widgets import router as widgets_router
from .services.aggregation import DataIntegrityError
from .settings import get_settings

logger = logging.getLogger("app")

settings = get_settings()
app = FastAPI(title=settings.app_name)

PUBLIC_PAYLOAD_PATH = re.compile(r"/api/widgets/[^/]+/payload")


class AdminCORSMiddleware(CORSMiddleware):
    """CORS for the admin API. The public payload route answers any origin itself."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and PUBLIC_PAYLOAD_PATH.fullmatch(scope["path"]):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


app.add_middleware(
    AdminCORSMiddleware,
    allow_origins=settings.admin_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DataIntegrityError)
async def data_integrity_handler(request: Request, exc: DataIntegrityError):
    logger.error(f"[payload] Data integrity violation on {request.url.path}: {exc}")
    return PlainTextResponse("Internal Server Error", status_code=500)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url)
    return PlainTextResponse("Internal Server Error", status_code=500)


@app.get("/ping")
async def ping():
    return {"status": "ok", "environment": settings.environment}


app.include_router(widgets_router)
app.include_router(widget_config_router)
app.include_router(payload_router)


@app.on_event("shutdown")
async def shutdown_event():
    """Close pooled database connections."""
    from .db import engine
    await engine.dispose()
    logger.info("Database engine disposed on app shutdown")
