"""
ConfigManager: dot-notation access to economy tunables.

Purpose
-------
- Provide hierarchical, dot-notation access to game configuration values
  (trade window, auction bounds, gold ceiling, scheduler cadence).
- Back configuration with YAML files from the `config/` directory layered
  over built-in defaults.
- Allow runtime overrides (admin tooling, tests) without redeploys.

Responsibilities
----------------
- Load and deep-merge every YAML file under the config directory.
- Serve reads from an in-memory view: overrides > YAML > built-in defaults.
- Never raise on a missing key; callers pass their own default.

Key Design Decisions
--------------------
- Built-in defaults mirror `config/economy.yaml` so the engine runs even with
  no config directory present.
- Top-level sections are plain dictionaries; values are traversed with
  dot notation (`"auction.max_duration_minutes"`).
- Overrides are kept separate from loaded values so `reset()` restores the
  YAML view exactly.

Dependencies
------------
- PyYAML (`yaml.safe_load`) for config files.
- `src.core.config.config.Config` for the config directory location.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional

import yaml

from src.core.config.config import Config
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


class ConfigManagerError(RuntimeError):
    """Base error type for ConfigManager-related failures."""


class ConfigInitializationError(ConfigManagerError):
    """Raised when a config file exists but cannot be parsed."""


__all__ = ["ConfigManager", "ConfigManagerError", "ConfigInitializationError"]


_BUILTIN_DEFAULTS: Dict[str, Any] = {
    "economy": {
        "max_gold": 999_999_999,
        "default_history_limit": 10,
        "max_history_limit": 100,
    },
    "character": {
        "starting_gold": 100,
        "max_name_length": 32,
    },
    "inventory": {
        "max_quantity": 99_999,
    },
    "catalog": {
        "seed_file": "data/items.json",
    },
    "trade": {
        "expiry_minutes": 30,
        "max_gold": 999_999_999,
        "max_items_per_offer": 1000,
        "max_item_quantity": 99_999,
    },
    "auction": {
        "min_quantity": 1,
        "max_quantity": 999_999,
        "min_bid": 1,
        "max_bid": 999_999_999,
        "min_duration_minutes": 1,
        "max_duration_minutes": 10_080,
        "default_duration_minutes": 60,
        "settlement_interval_seconds": 10,
        "settlement_batch_size": 100,
        "max_active_auctions": 100,
        "max_user_auctions": 50,
    },
}


class ConfigManager:
    """
    Game configuration access with YAML backing and runtime overrides.

    All state is class-level; the class itself is passed to services as the
    ``config_manager`` dependency.

    Examples
    --------
    >>> ConfigManager.initialize()
    >>> ConfigManager.get("trade.expiry_minutes")
    30
    >>> ConfigManager.set("trade.expiry_minutes", 5)
    """

    _defaults: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _initialized: bool = False
    _config_dir: Optional[Path] = None

    # =========================================================================
    # YAML LOADING & DEFAULTS
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)  # type: ignore[index]
            else:
                target[key] = value

    @classmethod
    def _load_yaml_configs(cls, config_dir: Path) -> int:
        """Deep-merge every YAML file under `config_dir` into `_defaults`."""
        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return 0

        yaml_files = sorted(config_dir.rglob("*.yaml")) + sorted(config_dir.rglob("*.yml"))
        loaded_count = 0

        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except yaml.YAMLError as exc:
                raise ConfigInitializationError(
                    f"Invalid YAML in {yaml_file}: {exc}"
                ) from exc

            if isinstance(data, dict):
                cls._deep_merge_dict(cls._defaults, data)
                loaded_count += 1
                logger.debug(
                    "Loaded YAML config",
                    extra={"file": str(yaml_file.relative_to(config_dir))},
                )
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={
                        "file": str(yaml_file.relative_to(config_dir)),
                        "root_type": type(data).__name__,
                    },
                )

        return loaded_count

    # =========================================================================
    # INITIALIZATION
    # =========================================================================

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None) -> None:
        """
        Load built-in defaults and YAML files (idempotent).

        Parameters
        ----------
        config_dir:
            Directory to scan for ``*.yaml``; defaults to ``Config.CONFIG_DIR``.
        """
        if cls._initialized and config_dir is None:
            return

        cls._config_dir = Path(config_dir) if config_dir else Path(Config.CONFIG_DIR)
        cls._defaults = copy.deepcopy(_BUILTIN_DEFAULTS)
        loaded = cls._load_yaml_configs(cls._config_dir)
        cls._initialized = True

        logger.info(
            "ConfigManager initialized",
            extra={
                "config_dir": str(cls._config_dir),
                "yaml_file_count": loaded,
                "top_level_keys": sorted(cls._defaults.keys()),
            },
        )

    @classmethod
    def reset(cls) -> None:
        """Drop overrides and loaded state; the next read re-initializes."""
        cls._defaults = {}
        cls._overrides = {}
        cls._initialized = False
        cls._config_dir = None

    # =========================================================================
    # READS
    # =========================================================================

    @staticmethod
    def _traverse(source: Dict[str, Any], key: str) -> Any:
        value: Any = source
        for part in key.split("."):
            if not isinstance(value, dict):
                return None
            value = value.get(part)
            if value is None:
                return None
        return value

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Examples
        --------
        >>> ConfigManager.get("auction.settlement_batch_size")
        100
        >>> ConfigManager.get("auction.unknown", 7)
        7
        """
        if not cls._initialized:
            cls.initialize()

        if key in cls._overrides:
            return cls._overrides[key]

        value = cls._traverse(cls._defaults, key)
        return default if value is None else value

    @classmethod
    def get_all_keys(cls) -> List[str]:
        """Top-level configuration sections currently loaded."""
        if not cls._initialized:
            cls.initialize()
        return sorted(cls._defaults.keys())

    # =========================================================================
    # WRITES
    # =========================================================================

    @classmethod
    def set(cls, key: str, value: Any) -> None:
        """Override a single dot-notation key at runtime."""
        old_value = cls.get(key)
        cls._overrides[key] = value
        logger.info(
            "Configuration override applied",
            extra={"config_key": key, "old_value": old_value, "new_value": value},
        )

    @classmethod
    def clear_overrides(cls) -> None:
        """Remove every runtime override."""
        cls._overrides = {}
