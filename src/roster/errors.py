"""Domain exceptions raised by the scheduling services."""

from __future__ import annotations


class RosterError(Exception):
    """Base class for failures the HTTP layer knows how to report."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(RosterError):
    """A referenced area, schedule, group or person does not exist."""


class InvalidConfigurationError(RosterError):
    """The request cannot be resolved structurally."""


class ConflictError(RosterError):
    """The mutation would break a uniqueness invariant."""


__all__ = [
    "RosterError",
    "NotFoundError",
    "InvalidConfigurationError",
    "ConflictError",
]
