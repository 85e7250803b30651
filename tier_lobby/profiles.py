"""Identity/profile service: who is calling, at what rank, verified or not.

The core never looks profiles up on its own; the transport resolves the
caller once per request through an object matching the protocol:

    async def get_profile(self, user_id: str) -> UserProfile: ...

Two implementations are provided:

    HttpProfileService      real HTTP client for the external profile API.
    InMemoryProfileService  dict-backed, used in development and tests.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from tier_lobby.errors import NotFound, ProfileError, ValidationError
from tier_lobby.models import UserProfile
from tier_lobby.ranks import parse_tier

logger = logging.getLogger(__name__)


class ProfileService(Protocol):
    async def get_profile(self, user_id: str) -> UserProfile: ...


def profile_from_payload(data: dict[str, Any]) -> UserProfile:
    """Normalise a profile document.

    Accepts `user_id` or `id`, `rank` or `tier`, `is_verified` or `verified`.
    """
    user_id = data.get("user_id", data.get("id"))
    rank = data.get("rank", data.get("tier"))
    if user_id is None or rank is None:
        raise ProfileError("Profile payload is missing id or rank")
    try:
        tier = parse_tier(rank)
    except ValidationError as e:
        raise ProfileError(str(e)) from e
    return UserProfile(
        user_id=str(user_id),
        username=data.get("username", ""),
        rank=tier,
        is_verified=bool(data.get("is_verified", data.get("verified", False))),
    )


# ---------------------------------------------------------------------------
# HttpProfileService
# ---------------------------------------------------------------------------

class HttpProfileService:
    """Async client for the profile API: GET {base_url}/users/{user_id}.

    Args:
        base_url: Base URL of the profile API, e.g. "http://localhost:4000".
        api_key:  Bearer token, or empty string if not required.
        timeout:  HTTP timeout in seconds. Defaults to 5.
    """

    def __init__(self, base_url: str, api_key: str = "", timeout: float = 5.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def get_profile(self, user_id: str) -> UserProfile:
        url = f"{self._base_url}/users/{user_id}"
        logger.debug("profile lookup user=%s url=%s", user_id, url)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(url, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise ProfileError(f"Cannot connect to profile service at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise NotFound(f"User {user_id!r} not found") from e
            raise ProfileError(
                f"Profile service returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise ProfileError(f"Profile service timed out after {self._timeout}s") from e

        return profile_from_payload(resp.json())


# ---------------------------------------------------------------------------
# InMemoryProfileService
# ---------------------------------------------------------------------------

class InMemoryProfileService:
    """Profiles held in a dict. No network calls."""

    def __init__(self, profiles: list[UserProfile] | None = None) -> None:
        self._profiles: dict[str, UserProfile] = {}
        for profile in profiles or []:
            self.put(profile)

    def put(self, profile: UserProfile) -> None:
        self._profiles[profile.user_id] = profile

    async def get_profile(self, user_id: str) -> UserProfile:
        profile = self._profiles.get(user_id)
        if profile is None:
            raise NotFound(f"User {user_id!r} not found")
        return profile.model_copy()
