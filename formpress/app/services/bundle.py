"""
Bundle assembly.

A bundle is every template requested for one submission. Templates are
rendered one after another, each in isolation: a failure is recorded as
that template's outcome and rendering continues with the next one.

Delivery policy: the bundle is deliverable only if every template
succeeded. When any template fails, the bundle is reported as failed and
the successful renders are withheld from delivery.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from formpress.app.errors import BundleFailure, ConfigurationError, MappingError, RenderError
from formpress.app.normalization.enricher import enrich_submission
from formpress.app.registry.registry import TemplateRegistry
from formpress.app.schemas.attachments import BundleResult, RenderedAttachment, TemplateOutcome
from formpress.app.schemas.records import EnrichedRecord, SubmissionRecord
from formpress.app.services.compositor import RenderEngine
from formpress.app.services.dispatcher import generate_document


logger = logging.getLogger(__name__)


# Document generator contract
DocumentGenerator = Callable[[str, Mapping[str, Any]], RenderedAttachment]

# Failures that belong to one template; anything else is a defect and propagates.
TEMPLATE_FAILURES = (ConfigurationError, MappingError, RenderError)


def assemble_bundle(
    form_ids: Sequence[str],
    record: Mapping[str, Any],
    *,
    generator: Optional[DocumentGenerator] = None,
) -> BundleResult:
    """
    Render every form in ``form_ids`` against the shared ``record``.

    Returns one outcome per requested form, in request order. Check
    ``BundleResult.ok`` (or call ``raise_for_failure``) before delivery.

    Raises:
        BundleFailure: no forms were requested.
    """
    if not form_ids:
        raise BundleFailure("NO_TEMPLATES")

    generate = generator or generate_document
    outcomes = []

    for form_id in form_ids:
        try:
            attachment = generate(form_id, record)
        except TEMPLATE_FAILURES as exc:
            logger.error(
                "Template render failed form_id=%s kind=%s: %s",
                form_id,
                type(exc).__name__,
                exc,
            )
            outcomes.append(
                TemplateOutcome(
                    form_id=str(form_id),
                    ok=False,
                    error_kind=type(exc).__name__,
                    error=str(exc),
                )
            )
            continue

        outcomes.append(
            TemplateOutcome(form_id=str(form_id), ok=True, attachment=attachment)
        )

    result = BundleResult(outcomes=outcomes)

    if result.ok:
        logger.info(
            "Bundle rendered: %d attachment(s)", len(result.attachments)
        )
    else:
        logger.error(
            "RENDER_FAILURES %d of %d; withholding %d successful render(s): %s",
            len(result.failures),
            len(outcomes),
            sum(1 for o in outcomes if o.ok),
            [f"{f['form_id']}: {f['error']}" for f in result.failures],
        )

    return result


def render_submission(
    submission: Union[SubmissionRecord, Mapping[str, Any]],
    form_ids: Sequence[str],
    *,
    registry: Optional[TemplateRegistry] = None,
    engine: Optional[RenderEngine] = None,
) -> BundleResult:
    """Enrich ``submission`` once, then render every form in ``form_ids`` from it."""
    record: EnrichedRecord = enrich_submission(submission)

    def generate(form_id: str, rec: Mapping[str, Any]) -> RenderedAttachment:
        return generate_document(form_id, rec, registry=registry, engine=engine)

    return assemble_bundle(form_ids, record, generator=generate)
