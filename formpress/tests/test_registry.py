"""
Tests for the template registry.

Coverage matrix:

  Keys          normalization, exact aliases, glob aliases
  Segments      override rows, fallback to default row
  Errors        missing id, unknown id, disabled, bad engine,
                missing templatePath, missing directory, bad file
  Lifecycle     eager validation, process-wide reload
"""

import shutil

import pytest

from formpress.app.config import get_settings
from formpress.app.errors import ConfigurationError
from formpress.app.registry.registry import (
    TemplateRegistry,
    get_registry,
    normalize_form_key,
    reload_registry,
)
from formpress.app.schemas.templates import EngineKind
from formpress.tests.fixtures.template_factory import (
    make_overlay_template,
    make_structured_template,
    write_registry,
)


@pytest.fixture
def templates_root(tmp_path):
    root = tmp_path / "templates"
    make_overlay_template(root, "ACORD125")
    make_overlay_template(root, "ACORD25")
    make_structured_template(root, "supp/contractor")
    make_structured_template(root, "supp/roofer")
    return root


def build(raw, root, **kwargs):
    return TemplateRegistry.from_dict(raw, templates_root=root, **kwargs)


# ---------------------------------------------------------------------------
# Key normalization
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "raw, expected",
    [
        ("acord125", "ACORD125"),
        ("acord 125", "ACORD125"),
        ("ACORD-125", "ACORD125"),
        ("acord_25", "ACORD25"),
        ("supp_contractor", "SUPP_CONTRACTOR"),
        ("  acord125 ", "ACORD125"),
        (None, ""),
    ],
)
def test_normalize_form_key(raw, expected):
    assert normalize_form_key(raw) == expected


def test_resolves_case_and_separator_variants(templates_root):
    registry = build(
        {"ACORD125": {"engine": "overlay", "templatePath": "ACORD125"}}, templates_root
    )

    for form_id in ("acord125", "Acord 125", "ACORD-125"):
        template = registry.resolve(form_id)
        assert template.form_key == "ACORD125"
        assert template.engine is EngineKind.OVERLAY
        assert template.template_dir == (templates_root / "ACORD125").resolve()


def test_legacy_engine_names(templates_root):
    registry = build(
        {
            "ACORD125": {"engine": "svg", "templatePath": "ACORD125"},
            "SUPP_CONTRACTOR": {"engine": "HTML", "templatePath": "supp/contractor"},
        },
        templates_root,
    )

    assert registry.resolve("acord125").engine is EngineKind.OVERLAY
    assert registry.resolve("supp_contractor").engine is EngineKind.STRUCTURED


# ---------------------------------------------------------------------------
# Aliases
# ---------------------------------------------------------------------------

def test_exact_and_glob_aliases(templates_root):
    registry = build(
        {
            "SUPP_CONTRACTOR": {
                "engine": "structured",
                "templatePath": "supp/contractor",
                "aliases": ["contractor_supplement", "SUPP_*"],
            }
        },
        templates_root,
    )

    assert registry.canonical_key("contractor_supplement") == "SUPP_CONTRACTOR"
    assert registry.resolve("supp_bar").form_key == "SUPP_CONTRACTOR"
    assert "supp_anything" in registry
    assert "acord125" not in registry


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------

def test_segment_override_and_fallback(templates_root):
    registry = build(
        {
            "SUPP_CONTRACTOR": {
                "engine": "structured",
                "templatePath": "supp/contractor",
                "segments": {"Roofer": {"templatePath": "supp/roofer"}},
            }
        },
        templates_root,
    )

    roofer = registry.resolve("supp_contractor", "roofer")
    default = registry.resolve("supp_contractor", "plumber")
    unsegmented = registry.resolve("supp_contractor")

    assert roofer.template_dir.name == "roofer"
    assert roofer.segment == "roofer"
    assert default.template_dir.name == "contractor"
    assert default.segment is None
    assert unsegmented.template_dir == default.template_dir


def test_segment_can_disable_a_form(templates_root):
    registry = build(
        {
            "ACORD125": {
                "engine": "overlay",
                "templatePath": "ACORD125",
                "segments": {"bar": {"enabled": False}},
            }
        },
        templates_root,
    )

    assert registry.resolve("acord125", "restaurant").form_key == "ACORD125"
    with pytest.raises(ConfigurationError, match="disabled"):
        registry.resolve("acord125", "bar")


# ---------------------------------------------------------------------------
# Resolution errors
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("form_id", [None, "", "   "])
def test_missing_form_id(templates_root, form_id):
    registry = build({}, templates_root)
    with pytest.raises(ConfigurationError, match="Missing form identifier"):
        registry.resolve(form_id)


def test_unknown_form_id(templates_root):
    registry = build(
        {"ACORD125": {"engine": "overlay", "templatePath": "ACORD125"}}, templates_root
    )
    with pytest.raises(ConfigurationError, match="Configuration missing for form_id: acord999"):
        registry.resolve("acord999")


def test_disabled_form(templates_root):
    registry = build(
        {"ACORD25": {"enabled": False, "engine": "overlay", "templatePath": "ACORD25"}},
        templates_root,
    )
    with pytest.raises(ConfigurationError, match="disabled"):
        registry.resolve("acord25")


def test_disabled_entries_are_not_validated(templates_root):
    registry = build(
        {"ACORD130": {"enabled": False, "engine": "overlay", "templatePath": "not-yet"}},
        templates_root,
    )
    assert "acord130" in registry


@pytest.mark.parametrize(
    "entry, message",
    [
        ({"engine": "pdfkit", "templatePath": "ACORD125"}, "Unknown engine type"),
        ({"engine": "", "templatePath": "ACORD125"}, "Unknown engine type"),
        ({"engine": "overlay"}, "Missing templatePath"),
        ({"engine": "overlay", "templatePath": "   "}, "Missing templatePath"),
        ({"engine": "overlay", "templatePath": "ACORD999"}, "does not exist"),
    ],
)
def test_invalid_entries_fail_at_load(templates_root, entry, message):
    with pytest.raises(ConfigurationError, match=message):
        build({"ACORD125": entry}, templates_root)


def test_invalid_entries_fail_at_resolve_when_not_strict(templates_root):
    registry = build(
        {"ACORD125": {"engine": "pdfkit", "templatePath": "ACORD125"}},
        templates_root,
        strict=False,
    )

    assert registry.validate()
    with pytest.raises(ConfigurationError, match="Unknown engine type for ACORD125"):
        registry.resolve("acord125")


def test_directory_removed_after_load_fails_at_resolve(templates_root):
    registry = build(
        {"ACORD25": {"engine": "overlay", "templatePath": "ACORD25"}}, templates_root
    )
    shutil.rmtree(templates_root / "ACORD25")

    with pytest.raises(ConfigurationError, match="does not exist"):
        registry.resolve("acord25")


def test_unknown_entry_keys_are_rejected(templates_root):
    with pytest.raises(ConfigurationError, match="Invalid registry entry"):
        build(
            {"ACORD125": {"engine": "overlay", "templatePath": "ACORD125", "colour": "red"}},
            templates_root,
        )


def test_registry_must_be_an_object(templates_root):
    with pytest.raises(ConfigurationError):
        build(["ACORD125"], templates_root)


# ---------------------------------------------------------------------------
# Files and process-wide instance
# ---------------------------------------------------------------------------

def test_from_file(tmp_path, templates_root):
    path = write_registry(
        tmp_path / "forms.json",
        {"ACORD125": {"engine": "overlay", "templatePath": "ACORD125"}},
    )

    registry = TemplateRegistry.from_file(path, templates_root=templates_root)

    assert registry.keys() == ["ACORD125"]
    assert len(registry) == 1


def test_from_file_errors(tmp_path, templates_root):
    with pytest.raises(ConfigurationError, match="not found"):
        TemplateRegistry.from_file(tmp_path / "missing.json", templates_root=templates_root)

    bad = tmp_path / "bad.json"
    bad.write_text("{nope")
    with pytest.raises(ConfigurationError, match="unreadable"):
        TemplateRegistry.from_file(bad, templates_root=templates_root)


def test_get_registry_uses_settings(tmp_path, templates_root, monkeypatch):
    path = write_registry(
        tmp_path / "config" / "forms.json",
        {"ACORD125": {"engine": "overlay", "templatePath": "ACORD125"}},
    )
    monkeypatch.setenv("FORMPRESS_REGISTRY_PATH", str(path))
    monkeypatch.setenv("FORMPRESS_TEMPLATES_ROOT", str(templates_root))
    get_settings.cache_clear()

    registry = get_registry()

    assert get_registry() is registry
    assert registry.resolve("acord125").form_key == "ACORD125"


def test_reload_replaces_registry(tmp_path, templates_root):
    first = write_registry(
        tmp_path / "one.json",
        {"ACORD125": {"engine": "overlay", "templatePath": "ACORD125"}},
    )
    second = write_registry(
        tmp_path / "two.json",
        {"ACORD25": {"engine": "overlay", "templatePath": "ACORD25"}},
    )

    reload_registry(first, templates_root=templates_root)
    assert "acord125" in get_registry()

    reload_registry(second, templates_root=templates_root)
    assert "acord125" not in get_registry()
    assert "acord25" in get_registry()


def test_failed_reload_keeps_previous_registry(tmp_path, templates_root):
    good = write_registry(
        tmp_path / "good.json",
        {"ACORD125": {"engine": "overlay", "templatePath": "ACORD125"}},
    )
    bad = write_registry(
        tmp_path / "bad.json",
        {"ACORD125": {"engine": "overlay", "templatePath": "missing"}},
    )

    installed = reload_registry(good, templates_root=templates_root)
    with pytest.raises(ConfigurationError):
        reload_registry(bad, templates_root=templates_root)

    assert get_registry() is installed
