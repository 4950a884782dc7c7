"""
Page backgrounds and field maps for overlay templates.

Template directory layout::

    <template_dir>/assets/page-<N>.svg          ordered page backgrounds
    <template_dir>/mapping/<pageId>.map.json    field map for one page

Mapping is optional: a template may be rendered blank before anyone has
authored its coordinates, so a missing or empty ``mapping`` directory
yields no maps. A map file that exists but cannot be read or validated
is a MappingError.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from pydantic import ValidationError

from formpress.app.errors import MappingError, RenderError
from formpress.app.schemas.templates import FieldMap, Page


logger = logging.getLogger(__name__)


_PAGE_FILE = re.compile(r"^page-(\d+)\.svg$", re.IGNORECASE)
MAP_SUFFIX = ".map.json"


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


def load_pages(assets_dir: Path) -> List[Page]:
    """
    Read ``page-<N>.svg`` files in ascending numeric order of N.

    Raises:
        RenderError: a background cannot be read as UTF-8 text.
    """
    assets_dir = Path(assets_dir)
    if not assets_dir.is_dir():
        return []

    numbered = []
    for path in assets_dir.iterdir():
        match = _PAGE_FILE.match(path.name)
        if match and path.is_file():
            numbered.append((int(match.group(1)), path))

    pages: List[Page] = []
    for number, path in sorted(numbered, key=lambda item: item[0]):
        try:
            svg = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise RenderError(f"Unreadable page background: {path} :: {exc}") from exc
        pages.append(Page(page_id=path.name[: -len(".svg")], number=number, svg=svg))
    return pages


# ---------------------------------------------------------------------------
# Field maps
# ---------------------------------------------------------------------------


def load_field_map(path: Path) -> FieldMap:
    """Parse and validate one ``*.map.json`` file."""
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise MappingError(f"Unreadable map file: {path} :: {exc}") from exc

    if not raw.strip():
        raise MappingError(f"Empty map file: {path}")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MappingError(f"Bad JSON in map file: {path} :: {exc}") from exc

    if not isinstance(data, dict) or not data.get("pageId", data.get("page_id")):
        raise MappingError(f"Map file missing pageId: {path}")

    try:
        return FieldMap.model_validate(data)
    except ValidationError as exc:
        raise MappingError(f"Invalid map file: {path} :: {exc}") from exc


def load_field_maps(mapping_dir: Path) -> Dict[str, FieldMap]:
    """All field maps in ``mapping_dir``, keyed by page id."""
    mapping_dir = Path(mapping_dir)
    if not mapping_dir.is_dir():
        logger.debug("Mapping directory missing (ok): %s", mapping_dir)
        return {}

    maps: Dict[str, FieldMap] = {}
    for path in sorted(mapping_dir.iterdir()):
        if not path.name.endswith(MAP_SUFFIX):
            continue
        field_map = load_field_map(path)
        maps[field_map.page_id] = field_map

    logger.debug("Loaded %d field map(s) from %s", len(maps), mapping_dir)
    return maps


class FieldMapStore:
    """
    Read-through cache of field maps, one entry per template directory.

    Cached maps are immutable pydantic models, so concurrent readers never
    observe partial state. A failed load is not cached.
    """

    def __init__(self) -> None:
        self._cache: Dict[Path, Mapping[str, FieldMap]] = {}
        self._lock = threading.Lock()

    def maps_for(self, template_dir: Path) -> Mapping[str, FieldMap]:
        key = Path(template_dir).resolve()
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        maps = load_field_maps(key / "mapping")
        with self._lock:
            return self._cache.setdefault(key, maps)

    def map_for(self, template_dir: Path, page_id: str) -> Optional[FieldMap]:
        return self.maps_for(template_dir).get(page_id)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------

_store: Optional[FieldMapStore] = None
_store_lock = threading.Lock()


def get_field_map_store() -> FieldMapStore:
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = FieldMapStore()
    return _store


def reload_field_map_store() -> FieldMapStore:
    """Install a fresh, empty store; maps are re-read on next use."""
    global _store
    with _store_lock:
        _store = FieldMapStore()
    return _store
