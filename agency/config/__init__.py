"""Configuration loading and validation."""

from agency.config.loader import (
    CONFIG_DIR_ENV,
    ConfigLoader,
    dict_to_dataclass,
    expand_env_vars,
    get_config_dir,
    load_yaml,
    set_config_dir,
)

__all__ = [
    "CONFIG_DIR_ENV",
    "ConfigLoader",
    "dict_to_dataclass",
    "expand_env_vars",
    "get_config_dir",
    "load_yaml",
    "set_config_dir",
]
