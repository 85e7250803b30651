"""Health check and settings endpoints.

Settings changes are persisted immediately and picked up by the engines on
the next start.
"""

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from backend import storage

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings():
    """Get app settings (chat limits, matching timings)."""
    return storage.get_config()


@router.patch("/settings")
async def update_settings(body: dict):
    """Update app settings (partial merge). Out-of-range values are rejected."""
    try:
        return storage.update_config(body)
    except ValidationError as e:
        detail = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise HTTPException(400, detail)
