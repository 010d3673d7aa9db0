"""YAML configuration loading with environment variable expansion."""

import copy
import logging
import os
import re
from dataclasses import fields, is_dataclass
from pathlib import Path
from typing import Optional, Type, TypeVar

import yaml

T = TypeVar('T')

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "AGENCY_CONFIG_DIR"

# ${VAR} or ${VAR:-default}
_ENV_PATTERN = re.compile(r'\$\{([^}:]+)(?::-([^}]*))?\}')

_config_dir: Optional[Path] = None


def set_config_dir(path: Optional[str | Path]):
    """Pin the config root (None restores the env/default lookup)."""
    global _config_dir
    _config_dir = Path(path) if path is not None else None


def get_config_dir() -> Path:
    """
    Resolve the config root.

    Order: set_config_dir(), then $AGENCY_CONFIG_DIR, then configs/ at the
    project root.
    """
    global _config_dir
    if _config_dir is None:
        env_path = os.environ.get(CONFIG_DIR_ENV)
        _config_dir = Path(env_path) if env_path else Path(__file__).resolve().parents[2] / "configs"
    return _config_dir


def expand_env_vars(value):
    """
    Recursively expand ${VAR} and ${VAR:-default} in strings.

    Unset variables without a default are left as written.
    """
    if isinstance(value, str):
        def replacer(match):
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            default = match.group(2)
            return default if default is not None else match.group(0)

        return _ENV_PATTERN.sub(replacer, value)
    if isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(v) for v in value]
    return value


def load_yaml(path: Path | str) -> dict:
    """Read a YAML mapping and expand environment variables in it."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return expand_env_vars(data)


def dict_to_dataclass(data: dict, cls: Type[T]) -> T:
    """Build a flat dataclass from ``data``; unknown keys are logged and dropped."""
    if not is_dataclass(cls):
        raise TypeError(f"{cls} is not a dataclass")

    known = {f.name for f in fields(cls)}
    unknown = sorted(str(k) for k in data if k not in known)
    if unknown:
        logger.debug(f"Ignoring unknown config keys for {cls.__name__}: {unknown}")
    return cls(**{k: v for k, v in data.items() if k in known})


class ConfigLoader:
    """
    Reads ``<config_dir>/<category>/<name>.yaml`` files.

    Each file is parsed once per loader; later loads reuse the parsed
    document, so building several managers from one loader touches the
    disk once per file. Callers always get fresh objects.
    """

    def __init__(self, config_dir: Optional[Path | str] = None):
        self.config_dir = Path(config_dir) if config_dir else get_config_dir()
        self._documents: dict[Path, dict] = {}

    def path(self, category: str, name: str) -> Path:
        return self.config_dir / category / f"{name}.yaml"

    def exists(self, category: str, name: str) -> bool:
        return self.path(category, name).exists()

    def load(self, category: str, name: str, cls: Optional[Type[T]] = None) -> T | dict:
        """
        Load a config file, optionally as a dataclass.

        Raises:
            FileNotFoundError: if the file does not exist
        """
        path = self.path(category, name)
        if path not in self._documents:
            self._documents[path] = load_yaml(path)
            logger.debug(f"Loaded config {path}")

        data = copy.deepcopy(self._documents[path])
        if cls is not None:
            return dict_to_dataclass(data, cls)
        return data

    def clear_cache(self):
        """Forget parsed documents so the next load rereads the files."""
        self._documents.clear()
