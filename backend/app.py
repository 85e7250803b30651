import asyncio
import contextlib
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from backend import storage
from backend.lobby import build_lobby, dev_profiles, tick_loop
from backend.routes import router
from tier_lobby.profiles import HttpProfileService, ProfileService

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"

logger = logging.getLogger(__name__)


def _profile_service() -> ProfileService:
    url = os.getenv("PROFILE_SERVICE_URL", "")
    if url:
        return HttpProfileService(url, api_key=os.getenv("PROFILE_SERVICE_API_KEY", ""))
    logger.info("PROFILE_SERVICE_URL not set, using preset development profiles")
    return dev_profiles()


def create_app(
    data_dir: Path | None = None,
    profiles: ProfileService | None = None,
    run_ticker: bool = True,
) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    storage.init_storage(resolved)

    lobby = build_lobby(storage.get_config(), profiles or _profile_service())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ticker = asyncio.create_task(tick_loop(lobby)) if run_ticker else None
        yield
        lobby.feed.close()
        if ticker is not None:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker

    app = FastAPI(title="Tier Lobby", lifespan=lifespan)
    app.state.lobby = lobby
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
