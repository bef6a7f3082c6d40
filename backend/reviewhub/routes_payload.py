"""
Public embed endpoint.

Missing and unpublished widgets get the same 404 body so embedding pages
cannot probe for drafts. Successful responses carry no per-caller data and
may be cached publicly for a short window.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from .services.aggregation import build_widget_payload
from .services.widget_store import WidgetStore, get_widget_store
from .settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["payload"])
StoreDep = Depends(get_widget_store)

NOT_FOUND_BODY = {"error": "Widget not found or not published"}
# Widget ids are Postgres INTEGER keys
MAX_WIDGET_ID = 2**31 - 1


def _cors_headers(request: Request) -> dict[str, str]:
    return {
        "Vary": "Origin",
        "Access-Control-Allow-Origin": request.headers.get("origin") or "*",
        "Access-Control-Allow-Methods": "GET, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


def _parse_widget_id(raw: str) -> int | None:
    """Canonical decimal ids only, so one widget has exactly one public URL."""
    if not (raw.isascii() and raw.isdigit()) or raw.startswith("0"):
        return None
    value = int(raw)
    return value if value <= MAX_WIDGET_ID else None


@router.get("/widgets/{widget_id}/payload")
async def get_widget_payload(widget_id: str, request: Request, store: WidgetStore = StoreDep):
    headers = _cors_headers(request)
    parsed_id = _parse_widget_id(widget_id)
    payload = await build_widget_payload(store, parsed_id) if parsed_id is not None else None
    if payload is None:
        logger.debug(f"[payload] widget {widget_id!r} not found or not published")
        return JSONResponse(NOT_FOUND_BODY, status_code=status.HTTP_404_NOT_FOUND, headers=headers)

    settings = get_settings()
    headers["Cache-Control"] = (
        f"public, s-maxage={settings.payload_cache_max_age_sec}, "
        f"stale-while-revalidate={settings.payload_stale_while_revalidate_sec}"
    )
    return JSONResponse(payload.model_dump(mode="json", by_alias=True), headers=headers)


@router.options("/widgets/{widget_id}/payload")
async def widget_payload_preflight(widget_id: str, request: Request):
    headers = _cors_headers(request)
    headers["Access-Control-Max-Age"] = "86400"
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=headers)
