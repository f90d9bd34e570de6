"""
pyrsx Configuration Management
==============================

Layered configuration for the markup compiler:
- Built-in defaults
- An optional Python config file (pyrsx_config.py or any path)
- Environment variables (PYRSX_*)
- Runtime overrides

Sources are merged by priority (highest wins):
1. Runtime overrides            (1000)
2. Environment variables        (100)
3. Python config file           (10)
4. Defaults                     (0)

Environment keys use a double underscore as the nesting separator, so
single underscores can stay inside key names:

    PYRSX_COMPILER__OWNERSHIP=exclusive     -> compiler.ownership
    PYRSX_COMPILER__STRICT_TAGS=true        -> compiler.strict_tags

Example:
    # pyrsx_config.py
    config = {
        "compiler": {
            "runtime": "ui",
            "ownership": "exclusive",
        },
    }

    cfg = get_config()
    cfg.load_file("pyrsx_config.py")
    cfg.get("compiler.runtime")             # "ui"
    cfg.get("compiler.events")              # "events" (default)
"""

from __future__ import annotations

import copy
import importlib.util
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, TypeVar, Union

import orjson

T = TypeVar("T")

ENV_PREFIX = "PYRSX_"
ENV_SEPARATOR = "__"

DEFAULTS: Dict[str, Any] = {
    "compiler": {
        "runtime": "dom",
        "events": "events",
        "ownership": "shared",
        "clone_template": "{name}.clone()",
        "stream_accessor": "signal",
        "stream_methods": ["signal", "signal_cloned", "signal_ref", "map", "map_ref"],
        "raw_text_tags": ["style", "script"],
        "trim_whitespace": True,
        "strict_tags": False,
    },
    "metadata": {
        "attributes": None,
        "elements": None,
    },
    "transform": {
        "marker": "rsx",
    },
    "components": {
        "reactive_factory": None,
    },
    "logging": {
        "level": "INFO",
        "format": "text",
    },
}


@dataclass
class ConfigSource:
    """Represents a configuration source with priority."""
    name: str
    data: Dict[str, Any]
    priority: int = 0


class Config:
    """
    Compiler configuration container.

    Values are nested dicts addressed with dot notation. A fresh Config
    starts with the built-in defaults and the PYRSX_* environment.

    Example:
        config = Config()
        config.set("compiler.ownership", "exclusive")

        config.get("compiler.ownership")            # "exclusive"
        config.get_bool("compiler.strict_tags")     # False
        config.get("compiler.missing", "default")   # "default"
    """

    def __init__(self, load_env: bool = True) -> None:
        self._sources: List[ConfigSource] = []
        self._cache: Dict[str, Any] = {}
        self._merged: Dict[str, Any] = {}
        self._dirty = True

        self.add_source("defaults", copy.deepcopy(DEFAULTS), priority=0)
        if load_env:
            self._load_env_overrides()

    def load_file(self, path: Union[str, Path]) -> None:
        """
        Load a Python configuration file.

        The file either defines a `config` dict or plain module-level
        variables holding nested sections.

        Args:
            path: Path to the .py file

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        self.add_source(f"file:{path}", self._load_python_config(path), priority=10)

    def _load_python_config(self, path: Path) -> Dict[str, Any]:
        """Load configuration from Python file."""
        spec = importlib.util.spec_from_file_location("pyrsx_config", path)
        if spec is None or spec.loader is None:
            return {}

        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        if hasattr(module, "config"):
            return dict(module.config)

        return {
            key: value
            for key, value in vars(module).items()
            if not key.startswith("_") and isinstance(value, dict)
        }

    def _load_env_overrides(self) -> None:
        """Load overrides from PYRSX_* environment variables."""
        overrides: Dict[str, Any] = {}

        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX):
                # PYRSX_COMPILER__STRICT_TAGS -> compiler.strict_tags
                config_key = key[len(ENV_PREFIX):].lower().replace(ENV_SEPARATOR, ".")
                overrides[config_key] = self._parse_env_value(value)

        if overrides:
            self.add_source("env_vars", self._unflatten(overrides), priority=100)

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        # JSON for lists and sections
        if value.startswith(("{", "[")):
            try:
                return orjson.loads(value)
            except orjson.JSONDecodeError:
                pass

        return value

    def _unflatten(self, flat: Dict[str, Any]) -> Dict[str, Any]:
        """Convert flat dot-notation keys to nested dict."""
        result: Dict[str, Any] = {}

        for key, value in flat.items():
            parts = key.split(".")
            current = result

            for part in parts[:-1]:
                current = current.setdefault(part, {})

            current[parts[-1]] = value

        return result

    def add_source(
        self,
        name: str,
        data: Dict[str, Any],
        priority: int = 0,
    ) -> None:
        """Add a configuration source."""
        self._sources.append(ConfigSource(name=name, data=data, priority=priority))
        self._dirty = True

    def _merge(self) -> None:
        """Merge all sources into single configuration."""
        if not self._dirty:
            return

        # Lower priority first, so higher overrides
        self._merged = {}
        for source in sorted(self._sources, key=lambda s: s.priority):
            self._deep_merge(self._merged, copy.deepcopy(source.data))

        self._dirty = False
        self._cache.clear()

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Deep merge override into base."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(
        self,
        key: str,
        default: T = None,
    ) -> Union[Any, T]:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key (e.g., "compiler.runtime")
            default: Default value if key not found or None

        Returns:
            Configuration value or default
        """
        self._merge()

        if key in self._cache:
            return self._cache[key]

        current: Any = self._merged
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]

        if current is None:
            return default

        self._cache[key] = current
        return current

    def get_str(self, key: str, default: str = "") -> str:
        """Get configuration value as string."""
        value = self.get(key, default)
        return value if isinstance(value, str) else str(value)

    def get_int(self, key: str, default: int = 0) -> int:
        """Get configuration value as integer."""
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Get configuration value as boolean."""
        value = self.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "yes", "1")
        return bool(value)

    def get_list(self, key: str, default: Optional[List] = None) -> List:
        """Get configuration value as list (comma-separated strings are split)."""
        value = self.get(key, default)
        if value is None:
            return list(default or [])
        if isinstance(value, (list, tuple)):
            return list(value)
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return [value]

    def set(self, key: str, value: Any) -> None:
        """
        Set a runtime configuration value.

        Runtime values have the highest priority.
        """
        runtime_source = next(
            (source for source in self._sources if source.name == "runtime"), None
        )
        if runtime_source is None:
            runtime_source = ConfigSource(name="runtime", data={}, priority=1000)
            self._sources.append(runtime_source)

        parts = key.split(".")
        current = runtime_source.data
        for part in parts[:-1]:
            current = current.setdefault(part, {})

        current[parts[-1]] = value
        self._dirty = True

    def has(self, key: str) -> bool:
        """Check if configuration key exists."""
        return self.get(key) is not None

    def all(self) -> Dict[str, Any]:
        """Get all configuration as dict."""
        self._merge()
        return copy.deepcopy(self._merged)

    def section(self, prefix: str) -> Dict[str, Any]:
        """Get all values under a prefix."""
        value = self.get(prefix)
        if isinstance(value, dict):
            return copy.deepcopy(value)
        return {}

    def __getitem__(self, key: str) -> Any:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: str) -> bool:
        return self.has(key)


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def set_config(new_config: Optional[Config]) -> None:
    """Replace the global configuration (None re-reads defaults and env)."""
    global _config
    _config = new_config


def config(key: str, default: Any = None) -> Any:
    """Shortcut function for configuration access."""
    return get_config().get(key, default)
