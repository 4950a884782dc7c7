"""
Render output schemas.

A RenderedAttachment is what every engine returns for one template. The
bundle assembler records one TemplateOutcome per requested form and folds
them into a BundleResult, which is what the delivery collaborator sees.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from formpress.app.errors import BundleFailure


PDF_CONTENT_TYPE = "application/pdf"


class RenderedAttachment(BaseModel):
    """A finished binary document for one template."""

    filename: str = Field(..., min_length=1)
    buffer: bytes = Field(..., repr=False)
    content_type: str = PDF_CONTENT_TYPE

    def as_payload(self) -> Dict[str, Any]:
        """Shape handed to delivery: ``{buffer, meta: {filename, contentType}}``."""
        return {
            "buffer": self.buffer,
            "meta": {
                "filename": self.filename,
                "contentType": self.content_type,
            },
        }

    model_config = ConfigDict(frozen=True)


class TemplateOutcome(BaseModel):
    """Independent fate of one requested template within a bundle."""

    form_id: str
    ok: bool
    attachment: Optional[RenderedAttachment] = None
    error_kind: Optional[str] = Field(
        None,
        description="Exception class name when ok is False",
    )
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class BundleResult(BaseModel):
    """
    Unioned result for one submission.

    Delivery policy is all-or-nothing: when any outcome failed, ``ok`` is
    False and ``attachments`` is empty even though some renders succeeded.
    The individual outcomes keep their attachments for inspection.
    """

    outcomes: List[TemplateOutcome] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.outcomes) and all(o.ok for o in self.outcomes)

    @property
    def attachments(self) -> List[RenderedAttachment]:
        if not self.ok:
            return []
        return [o.attachment for o in self.outcomes if o.attachment is not None]

    @property
    def failures(self) -> List[Dict[str, str]]:
        return [
            {
                "form_id": o.form_id,
                "error_kind": o.error_kind or "",
                "error": o.error or "",
            }
            for o in self.outcomes
            if not o.ok
        ]

    def raise_for_failure(self) -> None:
        if self.ok:
            return
        failures = self.failures
        raise BundleFailure(
            f"ONE_OR_MORE_ATTACHMENTS_FAILED: {len(failures)} of "
            f"{len(self.outcomes)} template(s) failed",
            failures=failures,
        )

    def summary(self) -> Dict[str, Any]:
        """JSON-safe report for callers and logs (no buffers)."""
        if self.ok:
            return {
                "ok": True,
                "count": len(self.attachments),
                "filenames": [a.filename for a in self.attachments],
            }
        return {
            "ok": False,
            "error": "ONE_OR_MORE_ATTACHMENTS_FAILED",
            "failedCount": len(self.failures),
            "details": self.failures,
        }

    model_config = ConfigDict(frozen=True)
