"""
Registry bootstrap.

Scans a templates root and writes a registry file with one enabled overlay
entry per template directory. Intended for seeding ``forms.json`` when new
form directories are added; the result is meant to be reviewed and edited
(aliases, segments, structured engines) by hand.

Usage::

    formpress-generate-registry <templates_root> <output.json>
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, List

import typer

from formpress.app.app_logging import configure_logging
from formpress.app.errors import ConfigurationError


logger = logging.getLogger(__name__)


def _natural_key(name: str) -> List[object]:
    return [int(part) if part.isdigit() else part for part in re.split(r"(\d+)", name)]


def build_registry_config(
    templates_root: Path,
    *,
    path_prefix: str = "",
) -> Dict[str, Dict[str, object]]:
    """
    Registry mapping for every visible subdirectory of ``templates_root``.

    Keys are uppercased directory names in natural order (ACORD25 before
    ACORD125). ``path_prefix`` is prepended to each ``templatePath``.
    """
    templates_root = Path(templates_root)
    if not templates_root.is_dir():
        raise ConfigurationError(f"Templates root does not exist: {templates_root}")

    names = sorted(
        (
            child.name
            for child in templates_root.iterdir()
            if child.is_dir() and not child.name.startswith(".")
        ),
        key=lambda n: _natural_key(n.upper()),
    )

    forms: Dict[str, Dict[str, object]] = {}
    for name in names:
        forms[name.upper()] = {
            "enabled": True,
            "engine": "overlay",
            "templatePath": f"{path_prefix}{name}",
        }
    return forms


def write_registry_config(templates_root: Path, output: Path) -> int:
    forms = build_registry_config(templates_root)
    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(forms, indent=2) + "\n", encoding="utf-8")
    logger.info("Wrote %s (%d keys)", output, len(forms))
    return len(forms)


app = typer.Typer(add_completion=False)


@app.command()
def generate(
    templates_root: Path = typer.Argument(..., help="Directory holding one subdirectory per form"),
    output: Path = typer.Argument(..., help="Registry file to write"),
) -> None:
    """Write a registry file with one overlay entry per template directory."""
    configure_logging()
    try:
        count = write_registry_config(templates_root, output)
    except ConfigurationError as exc:
        typer.echo(f"FATAL: {exc}", err=True)
        raise typer.Exit(1)

    typer.echo(f"OK: wrote {output} keys={count}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
