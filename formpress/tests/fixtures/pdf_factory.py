import io
import re
from pathlib import Path
from typing import List, Optional

import pikepdf


# ------------------------------------------------------------------
# Letter-sized PDFs with a known page count
# ------------------------------------------------------------------

def letter_pdf(pages: int = 1) -> bytes:
    """
    Produce a structurally valid PDF with ``pages`` blank Letter pages.

    Used wherever a rendering engine's output has to pass validation.
    """
    buffer = io.BytesIO()
    with pikepdf.new() as pdf:
        for _ in range(pages):
            pdf.add_blank_page(page_size=(612, 792))
        pdf.save(buffer)
    return buffer.getvalue()


# ------------------------------------------------------------------
# Rendering engine doubles
#
# The real engine is a WeasyPrint child process. These stand in for it
# so composition, dispatch and bundle behavior can be tested without a
# font stack. Every call records the HTML it was handed.
# ------------------------------------------------------------------

_PAGE_SECTION = re.compile(r'<section class="page"')


class FakeEngine:
    """
    Returns a PDF with one page per composed ``<section class="page">``.

    Structured documents (no sections) render as a single page.
    """

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.base_urls: List[Optional[Path]] = []

    def render(self, html: str, *, base_url: Optional[Path] = None) -> bytes:
        self.calls.append(html)
        self.base_urls.append(base_url)
        return letter_pdf(max(1, len(_PAGE_SECTION.findall(html))))


class NotPdfEngine(FakeEngine):
    """Engine that "succeeds" with bytes lacking the %PDF signature."""

    def render(self, html: str, *, base_url: Optional[Path] = None) -> bytes:
        super().render(html, base_url=base_url)
        return b"<html>error page</html>"


class ShortPdfEngine(FakeEngine):
    """Engine that silently drops every page after the first."""

    def render(self, html: str, *, base_url: Optional[Path] = None) -> bytes:
        super().render(html, base_url=base_url)
        return letter_pdf(1)
