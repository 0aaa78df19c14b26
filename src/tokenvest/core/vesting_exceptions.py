"""
Vesting-specific exception hierarchy for tokenvest.

Every failure raised by a vester is a typed ``VestingError`` so callers can
tell a schedule that is not yet eligible apart from an unauthorized caller or
a failed transfer. None of these are retried by the core itself; the calling
principal decides whether a later attempt makes sense.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class VestingError(Exception):
    """Base exception for all vesting-related errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can succeed if retried later
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


# ==================== Schedule Lifecycle Errors ====================


class NotActivated(VestingError):
    """Raised when claiming from a cliff schedule that was never activated."""
    pass


class AlreadyActive(VestingError):
    """Raised when activating twice or reconfiguring an active schedule."""
    pass


class MissingBeneficiary(VestingError):
    """Raised when activating a schedule that has no beneficiary assigned."""
    pass


class NotYetEligible(VestingError):
    """Raised when no full period has elapsed since the last release.

    Retrying once the next period boundary has passed will succeed.
    """

    def __init__(self, message: str, eligible_at: Optional[int] = None, **kwargs: Any) -> None:
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)
        self.eligible_at = eligible_at


class ClaimsPaused(VestingError):
    """Raised when claiming while the administrator has paused claims."""
    pass


# ==================== Access Errors ====================


class Unauthorized(VestingError):
    """Raised when the caller is not the principal required by the operation."""
    pass


class ConcurrentAccess(VestingError):
    """Raised when a mutating call re-enters a vester that is already mid-operation."""
    pass


# ==================== Accounting Errors ====================


class InvalidAmount(VestingError):
    """Raised for zero amounts, amounts above the cap, or above what remains."""
    pass


class InsufficientFunding(VestingError):
    """Raised when the custodied balance is below what the operation requires."""
    pass


class TransferFailed(VestingError):
    """Raised when the asset ledger rejects a transfer; all state is rolled back."""
    pass


class TokenOperationError(VestingError):
    """Raised by the in-process ERC20 token when a token operation is invalid."""
    pass


# ==================== Configuration Errors ====================


class ConfigurationError(VestingError):
    """Raised when configuration or construction parameters are invalid."""
    pass


# ==================== Utility Functions ====================


def get_error_context(exc: Exception) -> Dict[str, Any]:
    """Extract error context from an exception for structured logging."""
    context = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    if isinstance(exc, VestingError):
        context["recoverable"] = exc.recoverable
        if exc.details:
            context["details"] = exc.details

    if isinstance(exc, NotYetEligible) and exc.eligible_at is not None:
        context["eligible_at"] = exc.eligible_at

    return context
