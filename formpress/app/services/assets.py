"""
Shared branding assets and print stylesheet for structured templates.

Layout under the configured assets root::

    segments/<segment>/logo.png | logo.svg | signature.svg
    segments/default/...        fallback for every segment
    common/global-print.css     stylesheet injected into every template

Assets are optional decoration: a missing or unreadable file yields None
(or ``""`` for the stylesheet) and a warning, never a failed render.
"""

from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import Dict, Optional

from formpress.app.config import get_settings


logger = logging.getLogger(__name__)


DEFAULT_SEGMENT = "default"

_MIME_TYPES = {
    ".svg": "image/svg+xml",
    ".png": "image/png",
}


def load_asset_data_uri(path: Path) -> Optional[str]:
    """``data:`` URI for an SVG or PNG file; None when absent or unsupported."""
    mime = _MIME_TYPES.get(path.suffix.lower())
    if mime is None or not path.is_file():
        return None
    try:
        encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    except OSError as exc:
        logger.warning("Asset load warning: %s - %s", path, exc)
        return None
    return f"data:{mime};base64,{encoded}"


def get_segment_assets(
    segment: Optional[str],
    *,
    assets_root: Optional[Path] = None,
) -> Dict[str, Optional[str]]:
    """
    Logo and signature for ``segment``, falling back to the default segment.

    The logo prefers PNG over SVG at each level before falling back.
    """
    root = Path(assets_root or get_settings().assets_root) / "segments"
    target = (segment or "").strip().lower() or DEFAULT_SEGMENT

    def resolve(filename: str) -> Optional[str]:
        return load_asset_data_uri(root / target / filename) or load_asset_data_uri(
            root / DEFAULT_SEGMENT / filename
        )

    return {
        "logo": resolve("logo.png") or resolve("logo.svg"),
        "signature": resolve("signature.svg"),
    }


def load_global_css(*, assets_root: Optional[Path] = None) -> str:
    css_path = Path(assets_root or get_settings().assets_root) / "common" / "global-print.css"
    if not css_path.is_file():
        return ""
    try:
        return css_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Error loading global CSS %s: %s", css_path, exc)
        return ""
