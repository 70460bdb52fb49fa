from __future__ import annotations

from dataclasses import dataclass


class NavigatorError(Exception):
    """Base navigator exception."""


@dataclass
class FetchError(NavigatorError):
    """Raised when a list, search or delete call did not complete."""

    code: str
    message: str
    status_code: int | None = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class NotFound(NavigatorError):
    """Raised when an id is not present in the currently materialized list."""


class ValidationError(NavigatorError):
    """Raised when caller input is outside the accepted range."""


class InvalidTransition(NavigatorError):
    """Raised when a navigation or level transition is not permitted from the current state."""
