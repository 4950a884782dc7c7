"""
Template, page and field-map schemas.

These models describe the static side of document generation: what a
template is, which pages it has, and where each field is printed on a
page. They are loaded from disk once and never mutated afterwards.

Coordinates are points in the fixed Letter space (612 x 792), origin at
the top-left corner, matching the viewBox of the page backgrounds.
"""

from __future__ import annotations

import math
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


PAGE_WIDTH_PT = 612
PAGE_HEIGHT_PT = 792

DEFAULT_TEXT_FONT_SIZE = 8.0
DEFAULT_CHECKBOX_SIZE = 10.0


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class EngineKind(str, Enum):
    """Rendering engine a template is built for."""

    OVERLAY = "overlay"
    STRUCTURED = "structured"


# Engine names used by earlier registry files.
ENGINE_ALIASES: Dict[str, EngineKind] = {
    "overlay": EngineKind.OVERLAY,
    "svg": EngineKind.OVERLAY,
    "structured": EngineKind.STRUCTURED,
    "html": EngineKind.STRUCTURED,
}


class FieldKind(str, Enum):
    TEXT = "text"
    CHECKBOX = "checkbox"


# ---------------------------------------------------------------------------
# Field maps
# ---------------------------------------------------------------------------


def _coordinate(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value)
        except ValueError:
            return None
    return None


class MapField(BaseModel):
    """
    One coordinate-positioned field on a page.

    Partially authored maps are normal: a field whose ``x`` or ``y`` is
    missing or not a finite number is kept but never printed.
    """

    key: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("key", "name"),
        description="Attribute name looked up in the enriched record",
    )

    x: Optional[float] = None
    y: Optional[float] = None

    type: FieldKind = FieldKind.TEXT

    font_size: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("font_size", "fontSize"),
    )

    size: Optional[float] = Field(
        None,
        description="Checkbox glyph size; falls back to font_size",
    )

    @model_validator(mode="before")
    @classmethod
    def blank_key_falls_back_to_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not str(data.get("key") or "").strip() and "name" in data:
            data = {k: v for k, v in data.items() if k != "key"}
        return data

    @field_validator("x", "y", "font_size", "size", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> Optional[float]:
        return _coordinate(v)

    @field_validator("type", mode="before")
    @classmethod
    def coerce_kind(cls, v: Any) -> FieldKind:
        # Anything that is not explicitly a checkbox prints as text.
        if str(v or "").strip().lower() == FieldKind.CHECKBOX.value:
            return FieldKind.CHECKBOX
        return FieldKind.TEXT

    @field_validator("key", mode="before")
    @classmethod
    def blank_key_is_unset(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @property
    def position(self) -> Optional[Tuple[float, float]]:
        """``(x, y)`` when both are finite, otherwise None."""
        if self.x is None or self.y is None:
            return None
        if not (math.isfinite(self.x) and math.isfinite(self.y)):
            return None
        return self.x, self.y

    @property
    def text_size(self) -> float:
        if self.font_size and math.isfinite(self.font_size):
            return self.font_size
        return DEFAULT_TEXT_FONT_SIZE

    @property
    def glyph_size(self) -> float:
        for candidate in (self.size, self.font_size):
            if candidate and math.isfinite(candidate):
                return candidate
        return DEFAULT_CHECKBOX_SIZE

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )


class FieldMap(BaseModel):
    """Declarative list of fields for one page, as stored in ``*.map.json``."""

    page_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("page_id", "pageId"),
    )

    fields: List[MapField] = Field(default_factory=list)

    @field_validator("fields", mode="before")
    @classmethod
    def null_fields_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Pages and templates
# ---------------------------------------------------------------------------


class Page(BaseModel):
    """One background sheet of a template (``assets/page-<N>.svg``)."""

    page_id: str
    number: int = Field(..., ge=0)
    svg: str

    model_config = ConfigDict(frozen=True)


class Template(BaseModel):
    """
    A resolved, routable template.

    Produced only by the registry; callers never construct one from
    request data.
    """

    form_key: str
    engine: EngineKind
    template_dir: Path
    enabled: bool = True
    segment: Optional[str] = None

    @property
    def assets_dir(self) -> Path:
        return self.template_dir / "assets"

    @property
    def mapping_dir(self) -> Path:
        return self.template_dir / "mapping"

    model_config = ConfigDict(frozen=True)
