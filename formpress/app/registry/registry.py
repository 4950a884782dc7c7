"""
Document template registry.

This module defines the set of templates that may be generated by the
engine. Each registry entry explicitly binds together:

- a canonical form key (e.g. ``ACORD125``)
- a rendering engine (``overlay`` or ``structured``)
- a template directory
- an enabled flag
- optional aliases and per-segment overrides

Templates must be registered to be addressable. Resolution is a function
of the form identifier, the optional segment, and static configuration
only; no submitted field value can change which layout is used.

Registry file format (JSON)::

    {
      "ACORD125": {"enabled": true, "engine": "overlay", "templatePath": "ACORD125"},
      "SUPP_CONTRACTOR": {
        "engine": "structured",
        "templatePath": "supp/contractor",
        "aliases": ["SUPP_*"],
        "segments": {"roofer": {"templatePath": "supp/roofer"}}
      }
    }
"""

from __future__ import annotations

import json
import logging
import re
import threading
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from formpress.app.config import get_settings
from formpress.app.errors import ConfigurationError
from formpress.app.schemas.templates import ENGINE_ALIASES, Template


logger = logging.getLogger(__name__)


_NUMBERED_FORM = re.compile(r"^([A-Za-z]+)[\s_\-]*(\d+)$")


# ---------------------------------------------------------------------------
# Configuration schema
# ---------------------------------------------------------------------------


class SegmentOverride(BaseModel):
    """Per-segment replacement of selected entry settings."""

    enabled: Optional[bool] = None
    engine: Optional[str] = None
    template_path: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("template_path", "templatePath"),
    )

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class RegistryEntry(BaseModel):
    """
    Declarative description of a registered template.

    ``engine`` is kept as the raw configured string so that an
    unrecognized value surfaces as a ConfigurationError naming the form,
    rather than as a schema error for the whole file.
    """

    enabled: bool = True
    engine: str = ""
    template_path: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("template_path", "templatePath"),
    )
    description: str = ""
    aliases: List[str] = Field(default_factory=list)
    segments: Dict[str, SegmentOverride] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


# ---------------------------------------------------------------------------
# Key normalization
# ---------------------------------------------------------------------------


def normalize_form_key(form_id: Any) -> str:
    """
    Canonical uppercase key for a form identifier.

    Numbered identifiers lose separators (``acord 125`` -> ``ACORD125``);
    anything else is only uppercased.
    """
    text = str(form_id or "").strip()
    match = _NUMBERED_FORM.match(text)
    if match:
        return f"{match.group(1).upper()}{match.group(2)}"
    return text.upper()


def _normalize_segment(segment: Optional[str]) -> Optional[str]:
    text = str(segment or "").strip().lower()
    return text or None


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TemplateRegistry:
    """
    Immutable lookup from form identifiers to Templates.

    Entries are flattened at construction into a table keyed by
    ``(segment, form key)``; ``segment`` is None for the default row.
    """

    def __init__(
        self,
        entries: Mapping[str, RegistryEntry],
        *,
        templates_root: Path,
        strict: bool = True,
    ):
        self._templates_root = Path(templates_root)
        self._entries: Dict[str, RegistryEntry] = {
            normalize_form_key(key): entry for key, entry in entries.items()
        }

        self._aliases: Dict[str, str] = {}
        self._patterns: List[Tuple[str, str]] = []
        for key, entry in self._entries.items():
            for alias in entry.aliases:
                alias_key = alias.strip().upper()
                if any(ch in alias_key for ch in "*?["):
                    self._patterns.append((alias_key, key))
                else:
                    self._aliases.setdefault(normalize_form_key(alias_key), key)

        self._table: Dict[Tuple[Optional[str], str], Dict[str, Any]] = {}
        for key, entry in self._entries.items():
            base = {
                "enabled": entry.enabled,
                "engine": entry.engine,
                "template_path": entry.template_path,
            }
            self._table[(None, key)] = base
            for segment, override in entry.segments.items():
                row = dict(base)
                row.update(override.model_dump(exclude_none=True))
                self._table[(_normalize_segment(segment), key)] = row

        if strict:
            problems = self.validate()
            if problems:
                raise ConfigurationError(
                    "Template registry failed validation:\n  "
                    + "\n  ".join(problems)
                )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(
        cls,
        raw: Mapping[str, Any],
        *,
        templates_root: Path,
        strict: bool = True,
    ) -> "TemplateRegistry":
        if not isinstance(raw, Mapping):
            raise ConfigurationError(
                "Template registry must be a JSON object keyed by form key"
            )

        entries: Dict[str, RegistryEntry] = {}
        for key, value in raw.items():
            try:
                entries[key] = RegistryEntry.model_validate(value)
            except ValidationError as exc:
                raise ConfigurationError(
                    f"Invalid registry entry '{key}': {exc}"
                ) from exc

        return cls(entries, templates_root=templates_root, strict=strict)

    @classmethod
    def from_file(
        cls,
        path: Path,
        *,
        templates_root: Optional[Path] = None,
        strict: bool = True,
    ) -> "TemplateRegistry":
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ConfigurationError(
                f"Template registry file not found: {path}"
            ) from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(
                f"Template registry file is unreadable: {path} :: {exc}"
            ) from exc

        if templates_root is None:
            templates_root = get_settings().templates_root

        registry = cls.from_dict(raw, templates_root=templates_root, strict=strict)
        logger.info(
            "Loaded %d template registry entr%s from %s",
            len(registry),
            "y" if len(registry) == 1 else "ies",
            path,
        )
        return registry

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, form_id: object) -> bool:
        return self.canonical_key(form_id) in self._entries

    def keys(self) -> List[str]:
        return list(self._entries)

    def entry(self, form_key: str) -> RegistryEntry:
        return self._entries[normalize_form_key(form_key)]

    def canonical_key(self, form_id: Any) -> str:
        """Registry key a form identifier routes to (may be unregistered)."""
        key = normalize_form_key(form_id)
        if key in self._entries:
            return key
        if key in self._aliases:
            return self._aliases[key]
        for pattern, target in self._patterns:
            if fnmatchcase(key, pattern):
                return target
        return key

    def validate(self) -> List[str]:
        """
        Check every enabled row; return human-readable problems.

        Disabled rows are not checked: a disabled template may point at a
        directory that has not been authored yet.
        """
        problems: List[str] = []
        for (segment, key), row in self._table.items():
            if not row["enabled"]:
                continue
            label = key if segment is None else f"{key} [segment={segment}]"
            try:
                self._build(key, segment, row)
            except ConfigurationError as exc:
                problems.append(f"{label}: {exc}")
        return problems

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, form_id: Any, segment: Optional[str] = None) -> Template:
        """
        Resolve a form identifier to a Template.

        Raises:
            ConfigurationError: identifier missing, unknown, disabled,
                unrecognized engine, or missing template directory.
        """
        if form_id is None or not str(form_id).strip():
            raise ConfigurationError(
                "Missing form identifier. Set form_id explicitly "
                "(e.g. acord25, acord125)."
            )

        key = self.canonical_key(form_id)
        if key not in self._entries:
            raise ConfigurationError(
                f"Configuration missing for form_id: {form_id}"
            )

        seg = _normalize_segment(segment)
        row = self._table.get((seg, key)) or self._table[(None, key)]
        if not row["enabled"]:
            raise ConfigurationError(f"Form {form_id} is disabled.")

        return self._build(key, seg if (seg, key) in self._table else None, row)

    def _build(
        self,
        key: str,
        segment: Optional[str],
        row: Mapping[str, Any],
    ) -> Template:
        engine_name = str(row.get("engine") or "").strip().lower()
        engine = ENGINE_ALIASES.get(engine_name)
        if engine is None:
            raise ConfigurationError(
                f"Unknown engine type for {key}: {row.get('engine')!r}"
            )

        template_path = row.get("template_path")
        if not template_path or not isinstance(template_path, str) or not template_path.strip():
            raise ConfigurationError(f"Missing templatePath for form_id: {key}")

        template_dir = self._resolve_dir(template_path)
        if not template_dir.is_dir():
            raise ConfigurationError(
                f"Template directory for {key} does not exist: {template_dir}"
            )

        return Template(
            form_key=key,
            engine=engine,
            template_dir=template_dir,
            enabled=bool(row.get("enabled", True)),
            segment=segment,
        )

    def _resolve_dir(self, template_path: str) -> Path:
        path = Path(template_path.replace("\\", "/").strip())
        if path.is_absolute():
            return path
        return (self._templates_root / path).resolve()


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------

_registry: Optional[TemplateRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> TemplateRegistry:
    """
    Return the process-wide registry, loading it on first use.

    The instance is read-only; it changes only through reload_registry().
    """
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                settings = get_settings()
                _registry = TemplateRegistry.from_file(
                    settings.registry_path,
                    templates_root=settings.templates_root,
                )
    return _registry


def reload_registry(
    path: Optional[Path] = None,
    *,
    templates_root: Optional[Path] = None,
    registry: Optional[TemplateRegistry] = None,
) -> TemplateRegistry:
    """
    Replace the process-wide registry.

    Either loads ``path`` (default: the configured registry file) or
    installs an already-built ``registry``. The previous instance is
    discarded only after the new one validated successfully.
    """
    global _registry
    if registry is None:
        settings = get_settings()
        registry = TemplateRegistry.from_file(
            Path(path) if path is not None else settings.registry_path,
            templates_root=templates_root or settings.templates_root,
        )
    with _registry_lock:
        _registry = registry
    return registry


def reset_registry() -> None:
    """Forget the process-wide registry; the next access reloads it."""
    global _registry
    with _registry_lock:
        _registry = None
