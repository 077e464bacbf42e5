"""
Engine configuration
"""

from .engine_config import (
    EngineConfig,
    TierSettings,
    build_config,
    get_config,
    reload_config,
    load_config_from_file,
    save_config_to_file
)

__all__ = [
    "EngineConfig",
    "TierSettings",
    "build_config",
    "get_config",
    "reload_config",
    "load_config_from_file",
    "save_config_to_file"
]
