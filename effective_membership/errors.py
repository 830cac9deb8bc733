"""
Exception hierarchy for the membership resolver.

Only precondition failures (no session, bad input, unknown root group) ever
escape a run. Per-group failures are recorded in the run's error log instead.
"""

from __future__ import annotations

from typing import Optional


class MembershipError(Exception):
    """Base class for all resolver errors."""
    pass


class RemoteCallFailure(MembershipError):
    """Raised when a remote lookup fails permanently or exhausts its retries."""

    def __init__(self, description: str, attempts: int, last_error: Optional[BaseException]):
        self.description = description
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{description} failed after {attempts} attempt(s): {last_error}"
        )


class GroupNotFound(MembershipError):
    """Raised when a group name or id does not match any directory group."""
    pass


class SessionNotAuthorized(MembershipError):
    """Raised when a run is started without an active, authorized session."""
    pass


class InvalidGroupIdentifier(MembershipError, ValueError):
    """Raised for identifiers that are not dashed 128-bit GUIDs."""
    pass


class InvalidMaxDepth(MembershipError, ValueError):
    """Raised when max_depth lies outside the supported range."""
    pass
