from __future__ import annotations

from typing import Any, List, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class ValidationRejected(DomainError):
    """A candidate attendance entry was refused; the caller must not persist it."""

    def __init__(self, errors: List[str], *, warnings: Optional[List[str]] = None, leave_conflict: Any = None):
        super().__init__("; ".join(errors) if errors else "Entry rejected")
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        self.leave_conflict = leave_conflict


class NotFoundError(DomainError):
    """Raised when a worker, site or record does not exist."""


class ConflictError(DomainError):
    """Raised on an attempted mutation of a locked (paid) record."""


class AlreadyPaidError(ConflictError):
    """Raised when a paid salary record would be recalculated."""


class NoDataError(DomainError):
    """Raised when payroll is requested over a window with no attendance or leave."""


class NotWorkingThisMonthError(DomainError):
    """Raised when the worker's payable window inside a month is empty."""
