import pytest

from formpress.app.config import get_settings
from formpress.app.registry.field_maps import reload_field_map_store
from formpress.app.registry.registry import reset_registry


@pytest.fixture(autouse=True)
def _isolated_process_state(monkeypatch, tmp_path):
    """
    Every test starts with fresh settings, registry and field-map cache.

    Asset lookups are pointed at an empty directory so a developer's
    local templates never leak into results.
    """
    monkeypatch.setenv("FORMPRESS_ASSETS_ROOT", str(tmp_path / "no-assets"))
    get_settings.cache_clear()
    reset_registry()
    reload_field_map_store()
    yield
    get_settings.cache_clear()
    reset_registry()
    reload_field_map_store()
