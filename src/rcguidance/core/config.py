"""
Settings for the guidance client.

Values come from ``config/default.yaml``, then ``config/<env>.yaml`` where
``<env>`` is ``$RCGUIDANCE_ENV`` (``development`` if unset), then
``RCGUIDANCE_*`` environment variables, each layer overriding the last.
"""

import os
from pathlib import Path
from typing import Any

import yaml

PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

ENV_PREFIX = "RCGUIDANCE_"
ENV_SEPARATOR = "__"
ENV_NAME_VAR = "RCGUIDANCE_ENV"


class Config:
    """
    Layered YAML settings.

    Usage:
        config = Config()
        port = config.get("server.port", 5000)
        capture = config["capture"]
    """

    def __init__(self, config_dir: Path | None = None):
        """
        Args:
            config_dir: Directory holding the YAML files; the repository's
                ``config/`` when omitted.
        """
        self.config_dir = Path(config_dir) if config_dir is not None else PROJECT_ROOT / "config"
        self.env = os.getenv(ENV_NAME_VAR, "development")
        self._config = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        config: dict[str, Any] = {}
        for name in ("default", self.env):
            layer = self._read_yaml(self.config_dir / f"{name}.yaml")
            config = _merge(config, layer)
        return self._apply_env_overrides(config)

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def _apply_env_overrides(self, config: dict) -> dict:
        """
        Fold ``RCGUIDANCE_*`` variables into ``config``.

        ``__`` separates levels, so ``RCGUIDANCE_CAPTURE__MAX_IN_FLIGHT=2``
        sets ``config["capture"]["max_in_flight"]``.
        """
        for name, raw in os.environ.items():
            if not name.startswith(ENV_PREFIX) or name == ENV_NAME_VAR:
                continue
            *parents, leaf = name[len(ENV_PREFIX) :].lower().split(ENV_SEPARATOR)
            section = config
            for key in parents:
                section = section.setdefault(key, {})
            section[leaf] = _coerce(raw)
        return config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a dotted path such as ``"capture.jpeg_quality"``.

        Returns ``default`` when any part of the path is missing or null.
        """
        value: Any = self._config
        for part in key.split("."):
            if not isinstance(value, dict):
                return default
            value = value.get(part)
            if value is None:
                return default
        return value

    def __getitem__(self, key: str) -> Any:
        return self._config.get(key, {})

    @property
    def as_dict(self) -> dict[str, Any]:
        return self._config.copy()

    def reload(self) -> None:
        """Re-read the YAML files and environment."""
        self._config = self._load_config()


def _merge(base: dict, override: dict) -> dict:
    merged = base.copy()
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _coerce(raw: str) -> Any:
    """Turn an environment string into a bool, int or float where it reads as one."""
    lowered = raw.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            pass
    return raw
