"""
Template engine dispatch.

Routes one form identifier to the engine its registry entry names:

    overlay     SVG page backgrounds + field maps -> overlay -> compositor
    structured  Jinja2 markup + stylesheet -> rendering engine

Both paths return a RenderedAttachment, so callers never need to know
which engine produced a document.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from formpress.app.registry.field_maps import FieldMapStore, get_field_map_store, load_pages
from formpress.app.registry.registry import TemplateRegistry, get_registry
from formpress.app.schemas.attachments import RenderedAttachment
from formpress.app.schemas.records import as_text
from formpress.app.schemas.templates import EngineKind, Template
from formpress.app.services.compositor import RenderEngine, composite
from formpress.app.services.overlay import apply_overlay
from formpress.app.services.structured import render_structured_template


logger = logging.getLogger(__name__)


def render_overlay_template(
    template: Template,
    record: Mapping[str, Any],
    *,
    engine: Optional[RenderEngine] = None,
    store: Optional[FieldMapStore] = None,
) -> RenderedAttachment:
    """
    Overlay every page of ``template`` and composite the result.

    Pages without a field map are included unchanged, so the document
    always has one page per background.

    Raises:
        MappingError: a map file of this template is malformed.
        RenderError: composition or validation failed.
    """
    store = store or get_field_map_store()

    pages = load_pages(template.assets_dir)
    maps = store.maps_for(template.template_dir)

    unmapped = [p.page_id for p in pages if p.page_id not in maps]
    if unmapped:
        logger.debug("%s pages without field maps: %s", template.form_key, unmapped)

    overlaid = [apply_overlay(page.svg, maps.get(page.page_id), record) for page in pages]
    return composite(template, overlaid, engine=engine)


def generate_document(
    form_id: Any,
    record: Mapping[str, Any],
    *,
    registry: Optional[TemplateRegistry] = None,
    engine: Optional[RenderEngine] = None,
    store: Optional[FieldMapStore] = None,
) -> RenderedAttachment:
    """
    Resolve ``form_id`` and render it for ``record``.

    The segment used for routing is the record's ``segment`` routing
    attribute; no other record value participates in template selection.

    Raises:
        ConfigurationError: the form cannot be resolved.
        MappingError: a field map is malformed.
        RenderError: the engine failed or produced invalid output.
    """
    registry = registry or get_registry()
    segment = as_text(record.get("segment")) or None
    template = registry.resolve(form_id, segment)

    logger.info(
        "Dispatch id=%s form_id=%s seg=%s engine=%s templateDir=%s",
        as_text(record.get("id")) or "-",
        form_id,
        segment or "default",
        template.engine.value,
        template.template_dir,
    )

    if template.engine is EngineKind.OVERLAY:
        return render_overlay_template(template, record, engine=engine, store=store)

    return render_structured_template(template, record, engine=engine)
