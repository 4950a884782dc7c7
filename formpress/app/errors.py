"""
Error taxonomy for document generation.

Each class marks a distinct failure boundary:

- ConfigurationError: the form identifier cannot be routed to a usable
  template. Raised immediately, never retried.
- MappingError: a field-map file exists but cannot be read or validated.
  An absent map file is not an error.
- RenderError: the rendering engine failed, timed out, or produced bytes
  that are not a PDF.
- BundleFailure: at least one template in a bundle failed, so nothing in
  the bundle is delivered.
"""

from typing import Dict, List, Optional


class FormpressError(RuntimeError):
    """Base class for all document generation failures."""


class ConfigurationError(FormpressError):
    """Raised when a form identifier cannot be resolved to a template."""


class MappingError(FormpressError):
    """Raised when a field-map file is malformed or unreadable."""


class RenderError(FormpressError):
    """Raised when rendering or output validation fails."""


class BundleFailure(FormpressError):
    """
    Raised when a bundle cannot be delivered.

    ``failures`` lists one ``{"form_id", "error_kind", "error"}`` entry per
    failed template.
    """

    def __init__(
        self,
        message: str,
        failures: Optional[List[Dict[str, str]]] = None,
    ):
        super().__init__(message)
        self.failures: List[Dict[str, str]] = list(failures or [])
