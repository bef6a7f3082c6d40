from __future__ import annotations

from fastapi import APIRouter, Query, Request

from .schemas import WidgetTemplateRead
from .widget_config import create_default_widget_config, list_widget_templates, normalize_widget_config

router = APIRouter(prefix="/api", tags=["widget-config"])


@router.get("/widget-templates", response_model=list[WidgetTemplateRead])
async def list_templates():
    return list_widget_templates()


@router.get("/widget-config/default")
async def get_default_config(template: str | None = Query(None, description="Template key, e.g. grid or badge")):
    return create_default_widget_config(template)


@router.post("/widget-config/normalize")
async def normalize_config(request: Request):
    """Normalize a raw config body. Malformed input is corrected, never rejected."""
    return normalize_widget_config(await request.body())
