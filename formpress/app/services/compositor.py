"""
Page composition and PDF flattening.

This module stacks a template's overlaid SVG pages into one HTML document
sized to Letter paper, hands it to a headless rendering engine, and
validates what comes back.

Design guarantees:
- One engine process per render, started and torn down inside the call
  (including on timeout and error); peak memory is one in-flight render.
- Renders are time-bounded; a render that never settles is killed and
  reported as a RenderError.
- Output that does not carry the PDF signature, or whose page count does
  not match the number of composed pages, is a RenderError. A corrupted
  document is never returned as an attachment.
- No retries: callers own retry policy.
"""

from __future__ import annotations

import io
import logging
import subprocess
import sys
import tempfile
import time
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

import pikepdf

from formpress.app.config import get_settings
from formpress.app.errors import RenderError
from formpress.app.schemas.attachments import PDF_CONTENT_TYPE, RenderedAttachment
from formpress.app.schemas.templates import PAGE_HEIGHT_PT, PAGE_WIDTH_PT, Template


logger = logging.getLogger(__name__)


PDF_SIGNATURE = b"%PDF"

PAGE_STYLE = f"""
@page {{ size: 8.5in 11in; margin: 0; }}
html, body {{ margin: 0; padding: 0; }}
section.page {{
  width: {PAGE_WIDTH_PT}pt;
  height: {PAGE_HEIGHT_PT}pt;
  overflow: hidden;
  page-break-after: always;
}}
section.page:last-child {{ page-break-after: auto; }}
section.page > svg {{ width: {PAGE_WIDTH_PT}pt; height: {PAGE_HEIGHT_PT}pt; display: block; }}
"""


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


def compose_document(pages: Sequence[str]) -> str:
    """One ``<section class="page">`` per SVG page, in the given order."""
    sections = "".join(
        f'<section class="page" data-page="{index}">{svg}</section>'
        for index, svg in enumerate(pages, start=1)
    )
    return (
        "<!doctype html>\n"
        '<html><head><meta charset="utf-8" />'
        f"<style>{PAGE_STYLE}</style>"
        f"</head><body>{sections}</body></html>\n"
    )


# ---------------------------------------------------------------------------
# Rendering engine
# ---------------------------------------------------------------------------


class RenderEngine(Protocol):
    def render(self, html: str, *, base_url: Optional[Path] = None) -> bytes:
        ...


class WeasyPrintEngine:
    """
    WeasyPrint, run as a child process per render.

    The child is the heavyweight instance: it is created for one document
    and always reaped before ``render`` returns. ``subprocess.run`` kills
    it when the timeout expires.
    """

    def __init__(
        self,
        *,
        timeout: Optional[float] = None,
        command: Optional[Sequence[str]] = None,
    ):
        self.timeout = timeout if timeout is not None else get_settings().render_timeout_seconds
        self.command: List[str] = list(command or [sys.executable, "-m", "weasyprint"])

    def render(self, html: str, *, base_url: Optional[Path] = None) -> bytes:
        with tempfile.TemporaryDirectory(prefix="formpress-") as tmp:
            outdir = Path(tmp)
            html_file = outdir / "document.html"
            pdf_file = outdir / "document.pdf"
            html_file.write_text(html, encoding="utf-8")

            command = [
                *self.command,
                "--encoding",
                "utf-8",
                "--base-url",
                str(Path(base_url).resolve() if base_url else outdir),
                html_file.name,
                pdf_file.name,
            ]

            try:
                process = subprocess.run(
                    command,
                    cwd=outdir,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    timeout=self.timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired as exc:
                raise RenderError(
                    f"Rendering engine did not finish within {self.timeout:g}s; "
                    "process was terminated."
                ) from exc
            except OSError as exc:
                raise RenderError(f"Failed to invoke rendering engine: {exc}") from exc

            if process.returncode != 0:
                stderr = process.stderr.decode("utf-8", errors="ignore")
                raise RenderError(
                    f"Rendering engine exited with status {process.returncode}.\n\n"
                    f"STDERR:\n{stderr}"
                )

            if not pdf_file.exists():
                raise RenderError(
                    "Rendering engine reported success, but no PDF output was produced."
                )

            return pdf_file.read_bytes()


def default_engine() -> RenderEngine:
    return WeasyPrintEngine()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_pdf(buffer: bytes, *, expected_pages: Optional[int] = None) -> None:
    """
    Hard post-conditions on engine output.

    Raises:
        RenderError: missing ``%PDF`` signature, unparseable document, or
            a page count different from ``expected_pages``.
    """
    if not isinstance(buffer, (bytes, bytearray)) or not buffer.startswith(PDF_SIGNATURE):
        raise RenderError("Invalid PDF output: missing %PDF signature")

    if expected_pages is None:
        return

    try:
        with pikepdf.open(io.BytesIO(bytes(buffer))) as pdf:
            page_count = len(pdf.pages)
    except pikepdf.PdfError as exc:
        raise RenderError(f"Invalid PDF output: {exc}") from exc

    if page_count != expected_pages:
        raise RenderError(
            f"Invalid PDF output: expected {expected_pages} page(s), got {page_count}"
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def composite(
    template: Template,
    pages: Sequence[str],
    *,
    engine: Optional[RenderEngine] = None,
) -> RenderedAttachment:
    """
    Flatten ``pages`` (overlaid SVG markup, in order) into one PDF.

    Raises:
        RenderError: the template has no pages, the engine failed, or the
            output failed validation.
    """
    if not pages:
        raise RenderError(
            f"Template {template.form_key} has no pages in {template.assets_dir}"
        )

    engine = engine or default_engine()
    html = compose_document(pages)

    started = time.monotonic()
    buffer = engine.render(html, base_url=template.template_dir)
    validate_pdf(buffer, expected_pages=len(pages))

    logger.info(
        "Composited %s: %d page(s), %d bytes in %.2fs",
        template.form_key,
        len(pages),
        len(buffer),
        time.monotonic() - started,
    )

    return RenderedAttachment(
        filename=f"{template.form_key}_{int(time.time() * 1000)}.pdf",
        buffer=bytes(buffer),
        content_type=PDF_CONTENT_TYPE,
    )
