"""Request dependencies: the lobby, the calling user, error translation."""

from fastapi import Header, HTTPException, Request

from backend.lobby import Lobby
from tier_lobby.errors import (
    Conflict,
    LobbyError,
    NotFound,
    PermissionDenied,
    ProfileError,
    RateLimited,
    ValidationError,
)
from tier_lobby.models import UserProfile

_STATUS: list[tuple[type[LobbyError], int]] = [
    (PermissionDenied, 403),
    (ValidationError, 400),
    (Conflict, 409),
    (NotFound, 404),
    (RateLimited, 429),
    (ProfileError, 502),
]


def http_error(error: LobbyError) -> HTTPException:
    """Map a core failure to the HTTP status the client surface expects."""
    for cls, status in _STATUS:
        if isinstance(error, cls):
            headers = None
            if isinstance(error, RateLimited):
                headers = {"Retry-After": str(max(1, round(error.retry_after)))}
            return HTTPException(status, str(error), headers=headers)
    return HTTPException(500, str(error))


def get_lobby(request: Request) -> Lobby:
    return request.app.state.lobby


async def optional_profile(
    request: Request, x_user_id: str | None = Header(default=None)
) -> UserProfile | None:
    """Resolve the caller from the X-User-Id header, if present."""
    if not x_user_id:
        return None
    try:
        return await get_lobby(request).profiles.get_profile(x_user_id)
    except LobbyError as e:
        raise http_error(e)


async def current_profile(
    request: Request, x_user_id: str | None = Header(default=None)
) -> UserProfile:
    profile = await optional_profile(request, x_user_id)
    if profile is None:
        raise HTTPException(401, "X-User-Id header is required")
    return profile
