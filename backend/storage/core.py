"""Storage initialization, file locations and JSON file helpers."""

import json
from pathlib import Path
from typing import Any

_data_dir: Path | None = None
_presets_dir: Path | None = None


def init_storage(data_dir: Path, presets_dir: Path | None = None) -> None:
    global _data_dir, _presets_dir
    _data_dir = data_dir
    _data_dir.mkdir(parents=True, exist_ok=True)
    # repo_root/presets unless told otherwise
    _presets_dir = presets_dir or Path(__file__).parent.parent.parent / "presets"


def data_dir() -> Path:
    assert _data_dir is not None, "Call init_storage() before using storage"
    return _data_dir


def presets_dir() -> Path:
    assert _presets_dir is not None, "Call init_storage() before using storage"
    return _presets_dir


def config_path() -> Path:
    return data_dir() / "config.json"


def user_rooms_path() -> Path:
    return data_dir() / "rooms.json"


def preset_rooms_path() -> Path:
    return presets_dir() / "rooms.json"


def preset_profiles_path() -> Path:
    return presets_dir() / "profiles.json"


def read_json(path: Path, default: Any = None) -> Any:
    """Parsed contents of `path`, or `default` when the file is absent."""
    if not path.is_file():
        return default
    return json.loads(path.read_text())


def write_json(path: Path, data: Any) -> None:
    """Write via a sibling temp file so readers never see a half-written file."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(data, indent=2))
    tmp.replace(path)
