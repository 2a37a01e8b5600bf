"""Error types surfaced to the user as alert messages."""

from __future__ import annotations

from typing import Optional


class DashboardError(Exception):
    """Base class; ``str(exc)`` is the message shown to the user."""


class ValidationError(DashboardError):
    """Input rejected locally, before any network call."""


class GuardViolation(DashboardError):
    """Operation refused because it would break a roster rule."""


class TemplateError(DashboardError):
    """Uploaded template file could not be read."""


class ApiError(DashboardError):
    def __init__(
        self,
        message: str,
        *,
        status_code: int = 0,
        method: Optional[str] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.method = method
        self.url = url
