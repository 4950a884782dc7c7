"""
Tests for page discovery and the field map store.
"""

import pytest

from formpress.app.errors import MappingError, RenderError
from formpress.app.registry.field_maps import (
    FieldMapStore,
    get_field_map_store,
    load_field_map,
    load_field_maps,
    load_pages,
    reload_field_map_store,
)
from formpress.tests.fixtures.template_factory import make_overlay_template


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

def test_pages_are_ordered_numerically(tmp_path):
    template_dir = make_overlay_template(tmp_path, "ACORD125", pages=(10, 2, 1))

    pages = load_pages(template_dir / "assets")

    assert [p.page_id for p in pages] == ["page-1", "page-2", "page-10"]
    assert [p.number for p in pages] == [1, 2, 10]
    assert "ACORD125 page 10" in pages[-1].svg


def test_non_page_files_are_ignored(tmp_path):
    template_dir = make_overlay_template(tmp_path, "ACORD25", pages=(1,))
    (template_dir / "assets" / "logo.svg").write_text("<svg></svg>")
    (template_dir / "assets" / "page-x.svg").write_text("<svg></svg>")

    assert [p.page_id for p in load_pages(template_dir / "assets")] == ["page-1"]


def test_missing_assets_directory_has_no_pages(tmp_path):
    assert load_pages(tmp_path / "nowhere") == []


# ---------------------------------------------------------------------------
# Map files
# ---------------------------------------------------------------------------

def test_maps_are_keyed_by_page_id(tmp_path):
    template_dir = make_overlay_template(
        tmp_path,
        "ACORD125",
        pages=(1, 2),
        maps={
            "page-1": [{"key": "applicant_name", "x": 10, "y": 10}],
            "page-2": [],
        },
    )

    maps = load_field_maps(template_dir / "mapping")

    assert set(maps) == {"page-1", "page-2"}
    assert maps["page-1"].fields[0].key == "applicant_name"
    assert maps["page-2"].fields == []


def test_missing_mapping_directory_is_not_an_error(tmp_path):
    template_dir = make_overlay_template(tmp_path, "ACORD125")
    assert load_field_maps(template_dir / "mapping") == {}


def test_null_fields_means_no_fields(tmp_path):
    path = tmp_path / "page-1.map.json"
    path.write_text('{"pageId": "page-1", "fields": null}')

    assert load_field_map(path).fields == []


@pytest.mark.parametrize(
    "content",
    [
        "",
        "   ",
        "{not json",
        "[]",
        '{"fields": []}',
        '{"pageId": "", "fields": []}',
        '{"pageId": "page-1", "fields": "oops"}',
    ],
)
def test_malformed_map_files_raise_mapping_error(tmp_path, content):
    path = tmp_path / "page-1.map.json"
    path.write_text(content)

    with pytest.raises(MappingError):
        load_field_map(path)


def test_map_file_that_is_not_utf8_raises_mapping_error(tmp_path):
    path = tmp_path / "page-1.map.json"
    path.write_bytes(b'{"pageId": "page-1", "fields": [{"key": "\xff"}]}')

    with pytest.raises(MappingError, match="Unreadable"):
        load_field_map(path)


def test_page_background_that_is_not_utf8_raises_render_error(tmp_path):
    template_dir = make_overlay_template(tmp_path, "ACORD125", pages=(1, 2))
    (template_dir / "assets" / "page-2.svg").write_bytes(b"<svg>\xff</svg>")

    with pytest.raises(RenderError, match="page-2.svg"):
        load_pages(template_dir / "assets")


def test_one_bad_map_fails_the_whole_directory(tmp_path):
    template_dir = make_overlay_template(
        tmp_path, "ACORD125", maps={"page-1": [{"key": "a", "x": 1, "y": 1}]}
    )
    (template_dir / "mapping" / "page-2.map.json").write_text("{broken")

    with pytest.raises(MappingError):
        load_field_maps(template_dir / "mapping")


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

def test_store_caches_per_template_directory(tmp_path):
    template_dir = make_overlay_template(
        tmp_path, "ACORD125", maps={"page-1": [{"key": "a", "x": 1, "y": 1}]}
    )
    store = FieldMapStore()

    first = store.maps_for(template_dir)
    (template_dir / "mapping" / "page-1.map.json").write_text("{broken")
    second = store.maps_for(template_dir)

    assert first is second
    assert len(store) == 1
    assert store.map_for(template_dir, "page-1") is not None
    assert store.map_for(template_dir, "page-9") is None


def test_store_does_not_cache_failures(tmp_path):
    template_dir = make_overlay_template(tmp_path, "ACORD125", maps={"page-1": []})
    (template_dir / "mapping" / "page-1.map.json").write_text("{broken")
    store = FieldMapStore()

    with pytest.raises(MappingError):
        store.maps_for(template_dir)
    assert len(store) == 0

    (template_dir / "mapping" / "page-1.map.json").write_text('{"pageId": "page-1"}')
    assert "page-1" in store.maps_for(template_dir)


def test_clear_rereads_from_disk(tmp_path):
    template_dir = make_overlay_template(tmp_path, "ACORD125", maps={"page-1": []})
    store = FieldMapStore()
    store.maps_for(template_dir)

    (template_dir / "mapping" / "page-2.map.json").write_text('{"pageId": "page-2"}')
    store.clear()

    assert set(store.maps_for(template_dir)) == {"page-1", "page-2"}


def test_reload_installs_a_fresh_store():
    before = get_field_map_store()
    after = reload_field_map_store()

    assert after is not before
    assert get_field_map_store() is after
