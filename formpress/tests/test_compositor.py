"""
Tests for page composition, the WeasyPrint engine wrapper and output
validation.

The engine wrapper is exercised with ``subprocess.run`` patched out; no
WeasyPrint process is started.
"""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from formpress.app.errors import RenderError
from formpress.app.schemas.templates import EngineKind, Template
from formpress.app.services.compositor import (
    WeasyPrintEngine,
    compose_document,
    composite,
    validate_pdf,
)
from formpress.tests.fixtures.pdf_factory import (
    FakeEngine,
    NotPdfEngine,
    ShortPdfEngine,
    letter_pdf,
)


def overlay_template(tmp_path):
    return Template(form_key="ACORD125", engine=EngineKind.OVERLAY, template_dir=tmp_path)


def page(label):
    return f'<svg xmlns="http://www.w3.org/2000/svg"><desc>{label}</desc></svg>'


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------

def test_one_section_per_page_in_order():
    html = compose_document([page("one"), page("two"), page("three")])

    assert html.count('<section class="page"') == 3
    assert html.index("one") < html.index("two") < html.index("three")
    assert "size: 8.5in 11in" in html


def test_composite_returns_validated_attachment(tmp_path):
    engine = FakeEngine()

    attachment = composite(overlay_template(tmp_path), [page("a"), page("b")], engine=engine)

    assert attachment.buffer.startswith(b"%PDF")
    assert attachment.content_type == "application/pdf"
    assert attachment.filename.startswith("ACORD125_")
    assert attachment.filename.endswith(".pdf")
    assert len(engine.calls) == 1
    assert engine.base_urls == [tmp_path]


def test_composite_without_pages_is_a_render_error(tmp_path):
    engine = FakeEngine()

    with pytest.raises(RenderError, match="no pages"):
        composite(overlay_template(tmp_path), [], engine=engine)
    assert engine.calls == []


def test_non_pdf_output_is_rejected(tmp_path):
    with pytest.raises(RenderError, match="%PDF"):
        composite(overlay_template(tmp_path), [page("a")], engine=NotPdfEngine())


def test_page_count_mismatch_is_rejected(tmp_path):
    with pytest.raises(RenderError, match="expected 2 page"):
        composite(overlay_template(tmp_path), [page("a"), page("b")], engine=ShortPdfEngine())


# ---------------------------------------------------------------------------
# validate_pdf
# ---------------------------------------------------------------------------

def test_validate_pdf_accepts_matching_page_count():
    validate_pdf(letter_pdf(3), expected_pages=3)
    validate_pdf(letter_pdf(1))


@pytest.mark.parametrize("buffer", [b"", b"PK\x03\x04", None, "%PDF-1.7"])
def test_validate_pdf_requires_signature(buffer):
    with pytest.raises(RenderError):
        validate_pdf(buffer)


def test_validate_pdf_rejects_truncated_document():
    with pytest.raises(RenderError):
        validate_pdf(b"%PDF-1.7\n garbage", expected_pages=1)


# ---------------------------------------------------------------------------
# WeasyPrintEngine
# ---------------------------------------------------------------------------

def _fake_run(returncode=0, stderr=b"", write_output=True):
    def run(command, *, cwd, **kwargs):
        if write_output:
            (Path(cwd) / command[-1]).write_bytes(letter_pdf(1))
        return subprocess.CompletedProcess(command, returncode, b"", stderr)

    return run


def test_engine_invokes_weasyprint_with_timeout(tmp_path):
    engine = WeasyPrintEngine(timeout=5, command=["weasyprint"])

    with patch("formpress.app.services.compositor.subprocess.run", side_effect=_fake_run()) as run:
        buffer = engine.render("<html></html>", base_url=tmp_path)

    assert buffer.startswith(b"%PDF")
    command = run.call_args.args[0]
    assert command[0] == "weasyprint"
    assert command[-2:] == ["document.html", "document.pdf"]
    assert str(tmp_path.resolve()) in command
    assert run.call_args.kwargs["timeout"] == 5


def test_engine_timeout_is_a_render_error():
    engine = WeasyPrintEngine(timeout=0.5)
    expired = subprocess.TimeoutExpired(cmd="weasyprint", timeout=0.5)

    with patch("formpress.app.services.compositor.subprocess.run", side_effect=expired):
        with pytest.raises(RenderError, match="did not finish"):
            engine.render("<html></html>")


def test_engine_failure_includes_stderr():
    engine = WeasyPrintEngine(timeout=5)
    run = _fake_run(returncode=1, stderr=b"boom: bad CSS", write_output=False)

    with patch("formpress.app.services.compositor.subprocess.run", side_effect=run):
        with pytest.raises(RenderError, match="boom: bad CSS"):
            engine.render("<html></html>")


def test_engine_missing_output_is_a_render_error():
    engine = WeasyPrintEngine(timeout=5)

    with patch(
        "formpress.app.services.compositor.subprocess.run",
        side_effect=_fake_run(write_output=False),
    ):
        with pytest.raises(RenderError, match="no PDF output"):
            engine.render("<html></html>")


def test_engine_not_installed_is_a_render_error():
    engine = WeasyPrintEngine(timeout=5, command=["definitely-not-weasyprint"])

    with patch(
        "formpress.app.services.compositor.subprocess.run",
        side_effect=FileNotFoundError("definitely-not-weasyprint"),
    ):
        with pytest.raises(RenderError, match="Failed to invoke"):
            engine.render("<html></html>")


def test_engine_timeout_defaults_to_settings(monkeypatch):
    from formpress.app.config import get_settings

    monkeypatch.setenv("FORMPRESS_RENDER_TIMEOUT_SECONDS", "12.5")
    get_settings.cache_clear()

    assert WeasyPrintEngine().timeout == 12.5
