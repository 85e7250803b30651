"""Failure taxonomy for the chat and matching core.

Expected business outcomes (permission, validation, conflict, rate limit)
each have their own type so the transport layer can map them to a status
code. NotFound marks a reference that should exist by construction.
"""


class LobbyError(RuntimeError):
    """Base class for every error raised by tier_lobby."""


class PermissionDenied(LobbyError):
    """Rank, verification or eligibility requirement not met."""


class ValidationError(LobbyError, ValueError):
    """Malformed input: empty/too-long text, unknown role or tier."""


class Conflict(LobbyError):
    """The target is taken, or the add would duplicate existing state."""


class AlreadyQueued(Conflict):
    """The user is already in the global matching queue."""


class NotFound(LobbyError, LookupError):
    """Unknown room, tier or user reference."""


class RateLimited(LobbyError):
    """Too many chat messages in the current window."""

    def __init__(self, message: str, retry_after: float) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ProfileError(LobbyError):
    """The identity/profile service cannot be reached or answered badly."""
