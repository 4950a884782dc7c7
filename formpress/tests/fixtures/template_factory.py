"""
On-disk template trees for tests.

Builds the same layout deployments use::

    <root>/<NAME>/assets/page-<N>.svg
    <root>/<NAME>/mapping/<pageId>.map.json
    <root>/<NAME>/index.html.jinja   (structured templates)
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional


def blank_page_svg(label: str = "") -> str:
    return (
        '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 612 792" '
        'width="612" height="792">'
        f'<rect width="612" height="792" fill="#fff" /><desc>{label}</desc>'
        "</svg>"
    )


def make_overlay_template(
    root: Path,
    name: str,
    *,
    pages: Iterable[int] = (1,),
    maps: Optional[Mapping[str, List[Dict[str, Any]]]] = None,
) -> Path:
    """
    Create an overlay template directory.

    ``maps`` is keyed by page id (``"page-1"``) and holds the field list
    for that page's map file.
    """
    template_dir = Path(root) / name
    assets = template_dir / "assets"
    assets.mkdir(parents=True, exist_ok=True)

    for number in pages:
        (assets / f"page-{number}.svg").write_text(
            blank_page_svg(f"{name} page {number}"), encoding="utf-8"
        )

    if maps:
        mapping = template_dir / "mapping"
        mapping.mkdir(exist_ok=True)
        for page_id, fields in maps.items():
            (mapping / f"{page_id}.map.json").write_text(
                json.dumps({"pageId": page_id, "fields": fields}),
                encoding="utf-8",
            )

    return template_dir


def make_structured_template(
    root: Path,
    name: str,
    *,
    markup: str = "<html><body><h1>{{ applicant_name }}</h1></body></html>",
    css: Optional[str] = None,
) -> Path:
    template_dir = Path(root) / name
    template_dir.mkdir(parents=True, exist_ok=True)
    (template_dir / "index.html.jinja").write_text(markup, encoding="utf-8")
    if css is not None:
        (template_dir / "style.css").write_text(css, encoding="utf-8")
    return template_dir


def write_registry(path: Path, entries: Mapping[str, Any]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
    return path
