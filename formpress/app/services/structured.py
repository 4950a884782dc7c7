"""
Structured template engine.

For forms that are easier to express as flowing markup than as coordinates
(supplemental questionnaires, cover letters), a template directory holds:

    <template_dir>/index.html.jinja   Jinja2 markup with conditional logic
    <template_dir>/style.css          optional companion stylesheet

The template fills placeholders directly from the enriched record. It sees
the record both flattened (``{{ applicant_name }}``) and nested
(``{{ data.applicant_name }}``), the segment's branding ``assets``, the
shared ``global_css``, its own ``styles``, and the formatting helpers
below. Record values are autoescaped; ``global_css`` and ``styles`` are
trusted files from the deployment and are passed through unescaped.
Output goes through the same rendering engine and validation as overlay
templates.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape
from markupsafe import Markup

from formpress.app.errors import RenderError
from formpress.app.normalization.currency import format_money
from formpress.app.normalization.enricher import parse_date
from formpress.app.schemas.attachments import PDF_CONTENT_TYPE, RenderedAttachment
from formpress.app.schemas.records import as_text, is_checked
from formpress.app.schemas.templates import Template
from formpress.app.services.assets import get_segment_assets, load_global_css
from formpress.app.services.compositor import RenderEngine, default_engine, validate_pdf


logger = logging.getLogger(__name__)


TEMPLATE_FILE = "index.html.jinja"
STYLESHEET_FILE = "style.css"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_UNSAFE_FILENAME = re.compile(r"[^a-z0-9]", re.IGNORECASE)

_NO_VALUES = frozenset({"n", "no", "false", "0"})


# ---------------------------------------------------------------------------
# Template helpers
# ---------------------------------------------------------------------------


def yn(value: Any) -> str:
    """``"Y"``, ``"N"`` or ``""`` for unknown."""
    if is_checked(value):
        return "Y"
    if value is False or str(value if value is not None else "").strip().lower() in _NO_VALUES:
        return "N"
    return ""


def yesno(value: Any) -> str:
    return {"Y": "Yes", "N": "No"}.get(yn(value), "")


def ck(value: Any) -> str:
    return "X" if yn(value) == "Y" else ""


def money(value: Any) -> str:
    return format_money(value)


def money_usd(value: Any) -> str:
    return format_money(value, symbol="$")


def format_date(value: Any = None) -> str:
    """``MM/DD/YYYY``; today when no value is given, ``""`` when unparseable."""
    if value is None:
        parsed: Optional[date] = date.today()
    elif isinstance(value, date):
        parsed = value
    else:
        parsed = parse_date(value)
    return parsed.strftime("%m/%d/%Y") if parsed else ""


def join(parts: Any, sep: str = ", ") -> str:
    items: Iterable[Any] = parts if isinstance(parts, (list, tuple)) else [parts]
    return sep.join(as_text(p) for p in items if p is not None and as_text(p).strip())


HELPERS = {
    "yn": yn,
    "yesno": yesno,
    "ck": ck,
    "is_yes": is_checked,
    "money": money,
    "money_usd": money_usd,
    "format_date": format_date,
    "join": join,
}


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def sanitize_filename(value: Any, limit: int = 50) -> str:
    return _UNSAFE_FILENAME.sub("_", as_text(value))[:limit]


def structured_filename(record: Mapping[str, Any]) -> str:
    segment = sanitize_filename(as_text(record.get("segment")) or "default")
    holder = sanitize_filename(as_text(record.get("applicant_name")) or "Applicant")
    request_id = sanitize_filename(as_text(record.get("id")))
    suffix = f"_{request_id}" if request_id else ""
    return f"Supp_{segment}_{holder}{suffix}.pdf"


def _environment(template_dir: Path) -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(
            enabled_extensions=("html", "jinja"),
            default_for_string=True,
        ),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.globals.update(HELPERS)
    env.filters.update(HELPERS)
    return env


def render_structured_html(
    template: Template,
    record: Mapping[str, Any],
    *,
    assets: Optional[Mapping[str, Optional[str]]] = None,
    global_css: Optional[str] = None,
) -> str:
    """
    Render the template's markup for ``record``.

    Raises:
        RenderError: template file or stylesheet missing, unreadable, or
            failing to render.
    """
    template_dir = template.template_dir
    if not (template_dir / TEMPLATE_FILE).is_file():
        raise RenderError(
            f"Structured template {template.form_key} has no {TEMPLATE_FILE} "
            f"in {template_dir}"
        )

    styles = ""
    stylesheet = template_dir / STYLESHEET_FILE
    if stylesheet.is_file():
        try:
            styles = stylesheet.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise RenderError(f"Unreadable stylesheet: {stylesheet} :: {exc}") from exc

    data = dict(record)
    context: Dict[str, Any] = {k: v for k, v in data.items() if _IDENTIFIER.match(k)}
    context.update(
        {
            "data": data,
            "form_data": data,
            "assets": dict(assets) if assets is not None else get_segment_assets(
                as_text(record.get("segment"))
            ),
            "global_css": Markup(load_global_css() if global_css is None else global_css),
            "styles": Markup(styles),
        }
    )

    try:
        return _environment(template_dir).get_template(TEMPLATE_FILE).render(context)
    except TemplateError as exc:
        raise RenderError(
            f"Template error in {template_dir / TEMPLATE_FILE}: {exc}"
        ) from exc
    except (TypeError, ValueError) as exc:
        # helper misuse or undecodable markup inside an authored template
        raise RenderError(
            f"Template failed in {template_dir / TEMPLATE_FILE}: {exc}"
        ) from exc


def render_structured_template(
    template: Template,
    record: Mapping[str, Any],
    *,
    engine: Optional[RenderEngine] = None,
) -> RenderedAttachment:
    html = render_structured_html(template, record)

    engine = engine or default_engine()
    buffer = engine.render(html, base_url=template.template_dir)
    validate_pdf(buffer)

    filename = structured_filename(record)
    logger.info(
        "Rendered structured template %s -> %s (%d bytes)",
        template.form_key,
        filename,
        len(buffer),
    )
    return RenderedAttachment(
        filename=filename,
        buffer=bytes(buffer),
        content_type=PDF_CONTENT_TYPE,
    )
