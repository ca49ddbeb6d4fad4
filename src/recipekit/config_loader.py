"""
Configuration Loader

Loads engine configuration from recipekit.json in the project root.
Environment variables always take precedence over config file values.

Config file location (in order of precedence):
1. RECIPEKIT_PROJECT_ROOT/recipekit.json (if RECIPEKIT_PROJECT_ROOT is set)
2. CWD/recipekit.json

Supported settings in recipekit.json:
{
    "environment": "transform",          // -> RECIPEKIT_ENVIRONMENT
    "migrate_legacy": true,              // -> RECIPEKIT_MIGRATE_LEGACY
    "load_directives": "my-udd,other",   // -> RECIPEKIT_LOAD_DIRECTIVES (string or list)
    "log_dir": ".recipekit",             // -> RECIPEKIT_LOG_DIR
    "debug_log": false,                  // -> RECIPEKIT_DEBUG_LOG
    "log_level": "WARNING"               // -> RECIPEKIT_LOG_LEVEL
}
"""

import os
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .dsl.context import Environment
from .exceptions import ConfigError
from .logging_config import configure_engine_logging, configure_logger_for_debug_trace

logger = configure_logger_for_debug_trace(__name__)

CONFIG_FILENAME = "recipekit.json"


@dataclass
class EngineConfig:
    """Typed engine settings."""
    environment: Environment = Environment.TRANSFORM
    migrate_legacy: bool = True
    load_directives: List[str] = field(default_factory=list)
    log_dir: Optional[str] = None
    debug_log: bool = False
    log_level: str = "WARNING"


class ConfigLoader:
    """
    Loads configuration from recipekit.json file.

    ::: This is-in-layer Service-Layer.
    ::: This is a loader.
    ::: This is stateless.

    Priority: Environment variables > recipekit.json > defaults
    """

    # Mapping from recipekit.json keys to environment variable names
    CONFIG_KEY_TO_ENV = {
        "environment": "RECIPEKIT_ENVIRONMENT",
        "migrate_legacy": "RECIPEKIT_MIGRATE_LEGACY",
        "load_directives": "RECIPEKIT_LOAD_DIRECTIVES",
        "log_dir": "RECIPEKIT_LOG_DIR",
        "debug_log": "RECIPEKIT_DEBUG_LOG",
        "log_level": "RECIPEKIT_LOG_LEVEL",
    }

    DEFAULTS = {
        "environment": "transform",
        "migrate_legacy": True,
        "load_directives": "",
        "log_dir": None,
        "debug_log": False,
        "log_level": "WARNING",
    }

    def __init__(self):
        self._config: Dict[str, Any] = {}
        self._config_path: Optional[Path] = None
        self._loaded = False

    def load(self, project_root: Optional[Path] = None) -> bool:
        """
        Load configuration from recipekit.json.

        Args:
            project_root: Project root directory. If None, uses RECIPEKIT_PROJECT_ROOT or CWD.

        Returns:
            True if config file was found and loaded, False otherwise.
        """
        if self._loaded:
            return self._config_path is not None

        # Determine project root
        if project_root is None:
            env_root = os.getenv("RECIPEKIT_PROJECT_ROOT")
            if env_root:
                project_root = Path(env_root)
            else:
                project_root = Path.cwd()

        config_path = Path(project_root) / CONFIG_FILENAME
        if config_path.exists():
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise ValueError("top level must be an object")
                self._config = data
                self._config_path = config_path
                logger.info(f"Loaded config from: {config_path}")
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning(f"Invalid JSON in {config_path}: {e}")
            except OSError as e:
                logger.warning(f"Error loading {config_path}: {e}")

        self._loaded = True
        return self._config_path is not None

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting: environment variable, then config file, then ``default``
        (or the built-in default when ``default`` is None).
        """
        env_var = self.CONFIG_KEY_TO_ENV.get(key)
        if env_var:
            env_value = os.getenv(env_var)
            if env_value is not None:
                return env_value
        if key in self._config:
            return self._config[key]
        if default is not None:
            return default
        return self.DEFAULTS.get(key)

    def get_engine_config(self) -> EngineConfig:
        """
        Get engine configuration with defaults applied.

        Raises:
            ConfigError: If ``environment`` names no known environment
        """
        environment = self.get("environment")
        try:
            environment = Environment.parse(str(environment))
        except ValueError as e:
            raise ConfigError(str(e), option="environment", value=environment) from None

        log_level = self.get("log_level")
        return EngineConfig(
            environment=environment,
            migrate_legacy=_as_bool(self.get("migrate_legacy")),
            load_directives=_as_list(self.get("load_directives")),
            log_dir=self.get("log_dir"),
            debug_log=_as_bool(self.get("debug_log")),
            log_level=str(log_level).upper() if log_level else "WARNING",
        )

    @property
    def is_loaded(self) -> bool:
        """True once load() has run, whether or not a file was found."""
        return self._loaded

    @property
    def config_path(self) -> Optional[Path]:
        """Path to the loaded config file, or None if not loaded."""
        return self._config_path

    @property
    def config(self) -> Dict[str, Any]:
        """The loaded configuration dictionary."""
        return self._config.copy()


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        items = str(value).split(",")
    return [item.strip() for item in items if item.strip()]


# Global singleton instance
_config_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """Get the global config loader instance."""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def load_config(project_root: Optional[Path] = None) -> bool:
    """
    Load configuration from recipekit.json.

    Args:
        project_root: Project root directory. If None, auto-detects.

    Returns:
        True if config was loaded, False otherwise.
    """
    loader = get_config_loader()
    found = loader.load(project_root)
    apply_logging_config(loader)
    return found


def get_engine_config() -> EngineConfig:
    """Load (once) and return the process-wide engine configuration."""
    loader = get_config_loader()
    if not loader.is_loaded:
        load_config()
    return loader.get_engine_config()


def apply_logging_config(loader: ConfigLoader) -> None:
    """Push log_dir, debug_log and log_level from ``loader`` into the engine handlers."""
    log_dir = loader.get("log_dir")
    configure_engine_logging(
        log_dir=str(log_dir) if log_dir else None,
        debug_log=_as_bool(loader.get("debug_log")),
        log_level=str(loader.get("log_level")).upper(),
    )


def reset_config_loader() -> None:
    """Forget the process-wide loader so the next call re-reads the file."""
    global _config_loader
    _config_loader = None
