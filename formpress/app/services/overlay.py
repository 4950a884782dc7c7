"""
Coordinate overlay rendering.

Burns record values into an SVG page background at the positions declared
by the page's field map. The background itself is never parsed or
modified beyond two textual edits:

- ``xml:space="preserve"`` is ensured on the root ``<svg>`` element so
  that padded values keep their spacing;
- one ``<g>`` overlay group is inserted before the closing ``</svg>``.

Field semantics:

- ``checkbox``: prints a fixed glyph when the value is in the truthy
  vocabulary (x, true, yes, y, 1, on, checked); otherwise nothing.
- ``text``: prints ``str(value)`` anchored at start, slightly below ``y``;
  empty values print nothing.
- Fields without a key, or without finite coordinates, are skipped.

Keys are only ever taken from the field map. Record attributes that no
field names are ignored.
"""

from __future__ import annotations

import re
from typing import Any, List, Mapping, Optional
from xml.sax.saxutils import escape

from formpress.app.errors import RenderError
from formpress.app.schemas.records import as_text, is_checked
from formpress.app.schemas.templates import (
    PAGE_HEIGHT_PT,
    PAGE_WIDTH_PT,
    FieldKind,
    FieldMap,
)


TEXT_PAD_Y = 2
CHECK_GLYPH = "X"
FONT_FAMILY = "Arial, Helvetica, sans-serif"

GRID_STEP = 25
GRID_LABEL_STEP = 50

_XML_SPACE = re.compile(r"""xml:space\s*=\s*["']preserve["']""")
_SVG_OPEN = re.compile(r"<svg\b", re.IGNORECASE)
_SVG_CLOSE = re.compile(r"</svg>\s*$", re.IGNORECASE)

_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def escape_markup(value: Any) -> str:
    """Escape ``& < > " '`` for use in SVG text and attributes."""
    return escape(as_text(value), _ENTITIES)


def _num(value: float) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in {"", "-0"} else text


def ensure_xml_space(svg: str) -> str:
    if _XML_SPACE.search(svg):
        return svg
    return _SVG_OPEN.sub('<svg xml:space="preserve"', svg, count=1)


def grid_overlay() -> str:
    """Coordinate ruler for aligning field maps. Debug use only."""
    lines: List[str] = []

    for x in range(0, PAGE_WIDTH_PT + 1, GRID_STEP):
        lines.append(
            f'<line x1="{x}" y1="0" x2="{x}" y2="{PAGE_HEIGHT_PT}" '
            'stroke="#00f" stroke-opacity="0.15" />'
        )
        if x % GRID_LABEL_STEP == 0:
            lines.append(f'<text x="{x + 2}" y="10" font-size="6">{x}</text>')

    for y in range(0, PAGE_HEIGHT_PT + 1, GRID_STEP):
        lines.append(
            f'<line x1="0" y1="{y}" x2="{PAGE_WIDTH_PT}" y2="{y}" '
            'stroke="#00f" stroke-opacity="0.15" />'
        )
        if y % GRID_LABEL_STEP == 0:
            lines.append(f'<text x="2" y="{y - 2}" font-size="6">{y}</text>')

    return f'<g id="grid-overlay">{"".join(lines)}</g>'


def render_fields(field_map: Optional[FieldMap], record: Mapping[str, Any]) -> List[str]:
    """SVG elements for every printable field of ``field_map``."""
    if field_map is None:
        return []

    elements: List[str] = []
    for field in field_map.fields:
        if not field.key:
            continue

        position = field.position
        if position is None:
            continue
        x, y = position

        value = record.get(field.key)

        if field.type is FieldKind.CHECKBOX:
            if is_checked(value):
                elements.append(
                    f'<text x="{_num(x)}" y="{_num(y)}" '
                    f'font-size="{_num(field.glyph_size)}" '
                    f'dominant-baseline="hanging">{CHECK_GLYPH}</text>'
                )
            continue

        text = as_text(value)
        if not text:
            continue

        elements.append(
            f'<text x="{_num(x)}" y="{_num(y + TEXT_PAD_Y)}" '
            f'font-size="{_num(field.text_size)}" '
            f'dominant-baseline="hanging" text-anchor="start">'
            f"{escape_markup(text)}</text>"
        )
    return elements


def apply_overlay(
    svg: str,
    field_map: Optional[FieldMap],
    record: Mapping[str, Any],
    *,
    debug_grid: Optional[bool] = None,
) -> str:
    """
    Return ``svg`` with the record burned in at the mapped coordinates.

    A missing field map means an empty overlay, not an error. The debug
    grid is drawn only when requested explicitly, either through
    ``debug_grid`` or a record whose ``debug_grid`` attribute is ``True``.

    Raises:
        RenderError: the background has no closing ``</svg>`` tag.
    """
    if not _SVG_CLOSE.search(svg):
        raise RenderError("Page background is not a complete SVG document")

    svg = ensure_xml_space(svg)

    elements = render_fields(field_map, record)
    if debug_grid is None:
        debug_grid = record.get("debug_grid") is True

    if not elements and not debug_grid:
        return svg

    block = ""
    if elements:
        block = (
            f'<g id="field-overlay" font-family="{FONT_FAMILY}" fill="#000">'
            f'{"".join(elements)}</g>'
        )
    if debug_grid:
        block += grid_overlay()

    return _SVG_CLOSE.sub(lambda _: f"{block}</svg>", svg, count=1)
