import shutil
from pathlib import Path

import pytest

from backend import storage
from tier_lobby.models import UserProfile
from tier_lobby.ranks import RankTier

TEST_DATA_DIR = Path("data-tests")
PRESETS_DIR = Path(__file__).parent / "presets"


@pytest.fixture(autouse=True)
def isolated_storage(monkeypatch):
    """Fresh data-tests/ per test; never talk to a real profile service."""
    monkeypatch.delenv("PROFILE_SERVICE_URL", raising=False)
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    storage.init_storage(TEST_DATA_DIR, presets_dir=PRESETS_DIR)
    yield


@pytest.fixture
def make_profile():
    """Build a verified profile; override rank/verification per call."""
    def _make(user_id: str, rank: RankTier = RankTier.GOLD, verified: bool = True) -> UserProfile:
        return UserProfile(user_id=user_id, username=user_id.title(), rank=rank, is_verified=verified)
    return _make
