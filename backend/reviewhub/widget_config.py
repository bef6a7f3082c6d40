"""
Widget configuration document (version 1).

The document is a JSON tree with six sections: source, layout, header,
reviews, style, settings. Keys are camelCase on the wire.

normalize_widget_config() never rejects input. Each field that is missing,
mistyped or out of range falls back to its own default, so a broken
``layout.type`` does not reset ``layout.columns``, and a broken ``layout``
does not reset ``style``.

Templates are partial documents merged onto the baseline one section at a
time; nested sub-objects (``layout.autoplay``, ``layout.navigation``, ...)
are merged independently of their siblings.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

WIDGET_CONFIG_VERSION = 1

DEFAULT_ACCENT_COLOR = "#ee5f64"


class LayoutType(str, Enum):
    carousel = "carousel"
    grid = "grid"
    masonry = "masonry"
    list = "list"
    slider = "slider"
    badge = "badge"


class ReviewProvider(str, Enum):
    google = "google"
    facebook = "facebook"
    yelp = "yelp"


Number = StrictInt | StrictFloat


class _ConfigModel(BaseModel):
    """Lenient base: non-mappings become {}, invalid fields take their default."""

    model_config = ConfigDict(alias_generator=to_camel, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _coerce_mapping(cls, data: Any) -> Any:
        if isinstance(data, cls):
            return data
        if isinstance(data, Mapping):
            return dict(data)
        logger.debug(f"[config] {cls.__name__}: expected an object, got {type(data).__name__}; using defaults")
        return {}

    @field_validator("*", mode="wrap")
    @classmethod
    def _fallback_to_default(cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo) -> Any:
        try:
            return handler(value)
        except ValidationError:
            model_field = cls.model_fields[info.field_name]
            if model_field.is_required():
                raise
            logger.debug(f"[config] {cls.__name__}.{info.field_name}: invalid value {value!r}; using default")
            return model_field.get_default(call_default_factory=True)


def _valid_entries(value: Any, model: type[BaseModel]) -> list[Any]:
    """Keep the list entries that validate on their own, drop the rest."""
    if not isinstance(value, list):
        return []
    kept = []
    for item in value:
        try:
            model.model_validate(item)
        except ValidationError:
            logger.debug(f"[config] dropping invalid {model.__name__} entry {item!r}")
            continue
        kept.append(item)
    return kept


# ── source ───────────────────────────────────────────────────

class SourceLocationConfig(_ConfigModel):
    place_id: StrictStr
    label: StrictStr | None = None
    provider: ReviewProvider = ReviewProvider.google
    enabled: StrictBool = True


class SourceConfig(_ConfigModel):
    locations: list[SourceLocationConfig] = Field(default_factory=list)
    sync_enabled: StrictBool = True

    @field_validator("locations", mode="before")
    @classmethod
    def _drop_invalid_locations(cls, value: Any) -> list[Any]:
        return _valid_entries(value, SourceLocationConfig)


# ── layout ───────────────────────────────────────────────────

class AutoplayConfig(_ConfigModel):
    enabled: StrictBool = False
    interval: Annotated[StrictInt, Field(ge=1000, le=30000)] = 5000
    pause_on_hover: StrictBool = True


class NavigationConfig(_ConfigModel):
    arrows: StrictBool = True
    dots: StrictBool = True
    swipe: StrictBool = True


class LayoutConfig(_ConfigModel):
    type: LayoutType = LayoutType.carousel
    width: StrictInt | Literal["auto", "responsive"] = "responsive"
    columns: Annotated[StrictInt, Field(ge=1, le=6)] | Literal["auto"] = "auto"
    rows_desktop: Annotated[StrictInt, Field(ge=1, le=10)] = 1
    rows_mobile: Annotated[StrictInt, Field(ge=1, le=10)] = 1
    item_spacing: Annotated[StrictInt, Field(ge=0, le=100)] = 16
    scroll_mode: Literal["item", "page"] = "item"
    animation: Literal["slide", "fade"] = "slide"
    autoplay: AutoplayConfig = Field(default_factory=AutoplayConfig)
    navigation: NavigationConfig = Field(default_factory=NavigationConfig)


# ── header ───────────────────────────────────────────────────

class WriteReviewButtonConfig(_ConfigModel):
    enabled: StrictBool = True
    text: StrictStr = "Write a Review"
    url: StrictStr | None = None


class HeaderConfig(_ConfigModel):
    enabled: StrictBool = True
    title: StrictStr = "What Our Customers Say"
    show_rating_summary: StrictBool = True
    show_review_count: StrictBool = True
    write_review_button: WriteReviewButtonConfig = Field(default_factory=WriteReviewButtonConfig)


# ── reviews ──────────────────────────────────────────────────

class ReviewMatchFilter(_ConfigModel):
    type: Literal["author", "text", "tag"]
    value: StrictStr


class ReviewsConfig(_ConfigModel):
    min_rating: Annotated[StrictInt, Field(ge=1, le=5)] = 1
    max_reviews: Annotated[StrictInt, Field(ge=1, le=100)] | Literal["all"] = "all"
    show_without_text: StrictBool = False
    sort_by: Literal["newest", "highest", "lowest"] = "newest"
    include_filters: list[ReviewMatchFilter] = Field(default_factory=list)
    exclude_filters: list[ReviewMatchFilter] = Field(default_factory=list)

    @field_validator("include_filters", "exclude_filters", mode="before")
    @classmethod
    def _drop_invalid_filters(cls, value: Any) -> list[Any]:
        return _valid_entries(value, ReviewMatchFilter)


# ── style ────────────────────────────────────────────────────

class ElementStyleConfig(_ConfigModel):
    background_color: StrictStr | None = None
    text_color: StrictStr | None = None
    border_radius: Number | None = None
    border_color: StrictStr | None = None
    border_width: Number | None = None


class StarsStyleConfig(_ConfigModel):
    filled_color: StrictStr = "#fbbf24"
    empty_color: StrictStr = "#e5e7eb"


class LinksStyleConfig(_ConfigModel):
    color: StrictStr | None = None
    hover_color: StrictStr | None = None


class ElementsConfig(_ConfigModel):
    background: ElementStyleConfig = Field(default_factory=ElementStyleConfig)
    card: ElementStyleConfig = Field(default_factory=ElementStyleConfig)
    title: ElementStyleConfig = Field(default_factory=ElementStyleConfig)
    stars: StarsStyleConfig = Field(default_factory=StarsStyleConfig)
    button: ElementStyleConfig = Field(default_factory=ElementStyleConfig)
    links: LinksStyleConfig = Field(default_factory=LinksStyleConfig)


class StyleConfig(_ConfigModel):
    color_scheme: Literal["light", "dark"] = "light"
    accent_color: StrictStr = DEFAULT_ACCENT_COLOR
    font_family: StrictStr | None = None
    elements: ElementsConfig = Field(default_factory=ElementsConfig)
    custom_css: StrictStr = ""


# ── settings ─────────────────────────────────────────────────

class ExternalLinksConfig(_ConfigModel):
    enabled: StrictBool = True
    open_in_new_tab: StrictBool = True


class SchemaOrgConfig(_ConfigModel):
    enabled: StrictBool = True
    type: Literal["aggregate", "individual"] = "aggregate"


class SettingsConfig(_ConfigModel):
    language: StrictStr = "en"
    auto_translate: StrictBool = False
    external_links: ExternalLinksConfig = Field(default_factory=ExternalLinksConfig)
    rating_format: Literal["decimal", "integer"] = "decimal"
    schema_org: SchemaOrgConfig = Field(default_factory=SchemaOrgConfig, alias="schema")
    custom_js: StrictStr = ""


# ── document ─────────────────────────────────────────────────

class WidgetConfig(_ConfigModel):
    version: StrictInt = WIDGET_CONFIG_VERSION
    source: SourceConfig = Field(default_factory=SourceConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    header: HeaderConfig = Field(default_factory=HeaderConfig)
    reviews: ReviewsConfig = Field(default_factory=ReviewsConfig)
    style: StyleConfig = Field(default_factory=StyleConfig)
    settings: SettingsConfig = Field(default_factory=SettingsConfig)

    @field_validator("version", mode="wrap")
    @classmethod
    def _stamp_current_version(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> int:
        # No migrations exist yet: every input is read as a version 1 document.
        return WIDGET_CONFIG_VERSION


def normalize_widget_config(data: Any) -> dict[str, Any]:
    """Return the canonical version 1 document for arbitrary input.

    Accepts a decoded tree or raw JSON text. Input that is not an object
    (including undecodable text) yields the full default document.
    """
    if isinstance(data, (str, bytes, bytearray)):
        try:
            data = json.loads(data)
        except (ValueError, RecursionError):
            logger.debug("[config] config is not decodable JSON; using defaults")
            data = {}
    return WidgetConfig.model_validate(data).model_dump(mode="json", by_alias=True)


# ── templates ────────────────────────────────────────────────

@dataclass(frozen=True)
class WidgetTemplate:
    name: str
    description: str
    thumbnail: str
    config: dict[str, Any] = field(default_factory=dict)


def _layout_preset(
    layout_type: LayoutType,
    *,
    width: int | str = "responsive",
    columns: int | str,
    rows_desktop: int,
    rows_mobile: int,
    item_spacing: int,
    scroll_mode: str,
    animation: str,
    autoplay: bool,
    interval: int = 5000,
    arrows: bool,
    dots: bool,
    swipe: bool = True,
) -> dict[str, Any]:
    return {
        "type": layout_type.value,
        "width": width,
        "columns": columns,
        "rowsDesktop": rows_desktop,
        "rowsMobile": rows_mobile,
        "itemSpacing": item_spacing,
        "scrollMode": scroll_mode,
        "animation": animation,
        "autoplay": {"enabled": autoplay, "interval": interval, "pauseOnHover": True},
        "navigation": {"arrows": arrows, "dots": dots, "swipe": swipe},
    }


WIDGET_TEMPLATES: dict[str, WidgetTemplate] = {
    "carousel": WidgetTemplate(
        name="Carousel",
        description="Rotating reviews slider with navigation arrows",
        thumbnail="/assets/widget-templates/carousel.png",
        config={
            "layout": _layout_preset(
                LayoutType.carousel, columns="auto", rows_desktop=1, rows_mobile=1, item_spacing=16,
                scroll_mode="item", animation="slide", autoplay=True, arrows=True, dots=True,
            ),
        },
    ),
    "grid": WidgetTemplate(
        name="Grid",
        description="Display reviews in a responsive grid layout",
        thumbnail="/assets/widget-templates/grid.png",
        config={
            "layout": _layout_preset(
                LayoutType.grid, columns=3, rows_desktop=2, rows_mobile=1, item_spacing=16,
                scroll_mode="page", animation="slide", autoplay=False, arrows=True, dots=True,
            ),
        },
    ),
    "masonry": WidgetTemplate(
        name="Masonry",
        description="Pinterest-style staggered grid layout",
        thumbnail="/assets/widget-templates/masonry.png",
        config={
            "layout": _layout_preset(
                LayoutType.masonry, columns=4, rows_desktop=3, rows_mobile=2, item_spacing=16,
                scroll_mode="page", animation="fade", autoplay=False, arrows=False, dots=False,
            ),
        },
    ),
    "list": WidgetTemplate(
        name="List",
        description="Simple vertical list of reviews",
        thumbnail="/assets/widget-templates/list.png",
        config={
            "layout": _layout_preset(
                LayoutType.list, columns=1, rows_desktop=5, rows_mobile=3, item_spacing=12,
                scroll_mode="page", animation="slide", autoplay=False, arrows=False, dots=True,
            ),
        },
    ),
    "slider": WidgetTemplate(
        name="Slider",
        description="Full-width single review at a time",
        thumbnail="/assets/widget-templates/slider.png",
        config={
            "layout": _layout_preset(
                LayoutType.slider, columns=1, rows_desktop=1, rows_mobile=1, item_spacing=0,
                scroll_mode="item", animation="fade", autoplay=True, interval=4000, arrows=True, dots=True,
            ),
        },
    ),
    "badge": WidgetTemplate(
        name="Card Badge",
        description="Compact rating badge for headers or sidebars",
        thumbnail="/assets/widget-templates/badge.png",
        config={
            "layout": _layout_preset(
                LayoutType.badge, width=300, columns=1, rows_desktop=1, rows_mobile=1, item_spacing=0,
                scroll_mode="item", animation="fade", autoplay=False, arrows=False, dots=False, swipe=False,
            ),
            "header": {
                "enabled": True,
                "title": "",
                "showRatingSummary": True,
                "showReviewCount": True,
                "writeReviewButton": {"enabled": False, "text": "Write a Review", "url": None},
            },
        },
    ),
}


def _merge_objects(base: dict[str, Any], override: Any) -> dict[str, Any]:
    if not isinstance(override, Mapping):
        return dict(base)
    return {**base, **override}


def _merge_source(base: dict[str, Any], override: Any) -> dict[str, Any]:
    return _merge_objects(base, override)


def _merge_layout(base: dict[str, Any], override: Any) -> dict[str, Any]:
    merged = _merge_objects(base, override)
    override = override if isinstance(override, Mapping) else {}
    merged["autoplay"] = _merge_objects(base["autoplay"], override.get("autoplay"))
    merged["navigation"] = _merge_objects(base["navigation"], override.get("navigation"))
    return merged


def _merge_header(base: dict[str, Any], override: Any) -> dict[str, Any]:
    merged = _merge_objects(base, override)
    override = override if isinstance(override, Mapping) else {}
    merged["writeReviewButton"] = _merge_objects(base["writeReviewButton"], override.get("writeReviewButton"))
    return merged


def _merge_reviews(base: dict[str, Any], override: Any) -> dict[str, Any]:
    return _merge_objects(base, override)


def _merge_style(base: dict[str, Any], override: Any) -> dict[str, Any]:
    merged = _merge_objects(base, override)
    override = override if isinstance(override, Mapping) else {}
    elements = override.get("elements")
    elements = elements if isinstance(elements, Mapping) else {}
    merged["elements"] = {
        name: _merge_objects(element, elements.get(name)) for name, element in base["elements"].items()
    }
    return merged


def _merge_settings(base: dict[str, Any], override: Any) -> dict[str, Any]:
    merged = _merge_objects(base, override)
    override = override if isinstance(override, Mapping) else {}
    merged["externalLinks"] = _merge_objects(base["externalLinks"], override.get("externalLinks"))
    merged["schema"] = _merge_objects(base["schema"], override.get("schema"))
    return merged


_SECTION_MERGERS: dict[str, Callable[[dict[str, Any], Any], dict[str, Any]]] = {
    "source": _merge_source,
    "layout": _merge_layout,
    "header": _merge_header,
    "reviews": _merge_reviews,
    "style": _merge_style,
    "settings": _merge_settings,
}


def create_default_widget_config(template: str | None = None) -> dict[str, Any]:
    """Baseline document, optionally with a named template applied.

    Unknown template names return the baseline.
    """
    baseline = WidgetConfig().model_dump(mode="json", by_alias=True)
    preset = WIDGET_TEMPLATES.get(template) if template else None
    if preset is None:
        if template:
            logger.debug(f"[config] unknown template {template!r}; using baseline")
        return baseline

    document: dict[str, Any] = {"version": WIDGET_CONFIG_VERSION}
    for section, merge in _SECTION_MERGERS.items():
        document[section] = merge(baseline[section], preset.config.get(section))
    return normalize_widget_config(document)


def list_widget_templates() -> list[dict[str, str]]:
    return [
        {"key": key, "name": tpl.name, "description": tpl.description, "thumbnail": tpl.thumbnail}
        for key, tpl in WIDGET_TEMPLATES.items()
    ]
