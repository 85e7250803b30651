"""File-based JSON storage.

Data layout:
  data/
    config.json      App settings (chat limits, matching timings)
    rooms.json       Matching rooms created at runtime by organizers
  presets/
    rooms.json       Built-in matching rooms (merged at read time)
    profiles.json    Development profiles for the in-memory profile service

Chat logs and room occupancy are held in memory by the tier_lobby engines;
nothing here stores them.

Config: get_config() returns defaults merged with stored values.
update_config() applies partial updates: nested sections merged key-by-key,
unknown keys ignored.
"""

# Re-export all public symbols so `from backend import storage` keeps working.

from .core import (  # noqa: F401
    config_path,
    data_dir,
    init_storage,
    presets_dir,
    read_json,
    user_rooms_path,
    write_json,
)

from .rooms import (  # noqa: F401
    list_dev_profiles,
    list_room_definitions,
    save_room_definition,
)

from .config import (  # noqa: F401
    AppConfig,
    get_config,
    update_config,
)
