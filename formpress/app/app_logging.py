from __future__ import annotations

import logging
import sys
from typing import Optional

from formpress.app.config import get_settings


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install a single stdout handler on the root logger.

    Modules log through ``logging.getLogger(__name__)``; this only decides
    where those records go. Safe to call more than once.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):  # reset existing handlers
        root.removeHandler(handler)

    root.setLevel((level or get_settings().log_level).upper())
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root.addHandler(stream_handler)

    # WeasyPrint is chatty about unsupported CSS at INFO.
    logging.getLogger("weasyprint").setLevel(logging.WARNING)
    logging.getLogger("fontTools").setLevel(logging.WARNING)
