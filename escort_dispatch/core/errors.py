"""Error taxonomy shared by the dispatch core and its adapters.

Per-rider failures inside an assignment batch are not raised: they are
reported as structured ``RiderOutcome`` entries on ``AssignmentResult``.
"""

from __future__ import annotations


class DispatchError(Exception):
    """Base class for every error raised by the dispatch core."""


class NotFoundError(DispatchError):
    """Raised when a request, rider or assignment id does not resolve."""


class ValidationError(DispatchError):
    """Raised for missing required fields or malformed values."""


class PersistenceError(DispatchError):
    """Raised when the underlying table or property store fails."""


class LockTimeoutError(DispatchError):
    """Raised when an exclusive lock cannot be acquired in time."""
