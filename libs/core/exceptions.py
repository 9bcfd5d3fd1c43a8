"""Base exceptions for the domain layer."""

from __future__ import annotations


class DomainError(Exception):
    """Base class for all domain level exceptions."""


class NotFoundError(DomainError):
    """Raised when an entity cannot be located."""


class StoreError(DomainError):
    """Raised when the item store cannot be read or written.

    This is the only failure the search path lets through to callers; oracle
    and embedding problems are absorbed before they get this far.
    """


# Alias to keep a generic name for error type hints
Error = DomainError

__all__ = ["DomainError", "NotFoundError", "StoreError", "Error"]
