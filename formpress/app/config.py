"""
Centralized configuration for the formpress document engine.

Pydantic v2 settings management: values are parsed once from the
environment (prefix ``FORMPRESS_``), validated, and frozen for the
lifetime of the process.

Configuration decides *where* templates live and *how long* a render may
take. It never influences which template a form identifier resolves to;
that is the registry's job.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# -------------------------------------------------------------------------
# Reusable Type Aliases
# -------------------------------------------------------------------------

PositiveSeconds = Annotated[
    float,
    Field(gt=0, description="Wall-clock bound in seconds"),
]


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Application settings parsed from the environment.

    Fails fast at startup if a value is malformed. Paths are not checked
    for existence here: the registry validates template directories
    eagerly when it is loaded.
    """

    # ---------------------------------------------------------------------
    # Template locations
    # ---------------------------------------------------------------------

    registry_path: Annotated[
        Path,
        Field(
            default=Path("config/forms.json"),
            description="JSON registry mapping form keys to templates",
        ),
    ]

    templates_root: Annotated[
        Path,
        Field(
            default=Path("templates"),
            description="Base directory for relative templatePath values",
        ),
    ]

    assets_root: Annotated[
        Path,
        Field(
            default=Path("templates/assets"),
            description=(
                "Root of shared assets: segments/<segment>/ branding images "
                "and common/global-print.css"
            ),
        ),
    ]

    # ---------------------------------------------------------------------
    # Rendering engine
    # ---------------------------------------------------------------------

    render_timeout_seconds: PositiveSeconds = 30.0

    # ---------------------------------------------------------------------
    # Normalization rules
    # ---------------------------------------------------------------------

    umbrella_threshold: Annotated[
        float,
        Field(
            default=1_000_000,
            ge=0,
            description="Cleaned total sales above this need excess coverage",
        ),
    ]

    producer_name: str = "All Access Ins, dba Commercial Insurance Direct LLC"
    producer_address1: str = "9200 W Cross Drive #515"
    producer_address2: str = "Littleton, CO 80123"
    producer_phone: str = "(303) 932-1700"
    producer_email: str = "quote@barinsurancedirect.com"

    # ---------------------------------------------------------------------
    # Observability
    # ---------------------------------------------------------------------

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level = v.strip().upper()
        if level not in allowed:
            raise ValueError(
                f"Unsupported log level '{v}'. "
                f"Allowed values: {sorted(allowed)}"
            )
        return level

    model_config = SettingsConfigDict(
        env_prefix="FORMPRESS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )


# -------------------------------------------------------------------------
# Settings Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Process-wide settings singleton.

    Tests that need different values call ``get_settings.cache_clear()``
    after patching the environment.
    """
    return Settings()
