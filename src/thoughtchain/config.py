"""
Configuration Loader

Loads Thoughtchain configuration from thoughtchain.json in the project root.
Environment variables always take precedence over config file values.

Config file location (in order of precedence):
1. THOUGHTCHAIN_PROJECT_ROOT/thoughtchain.json (if THOUGHTCHAIN_PROJECT_ROOT is set)
2. CWD/thoughtchain.json

Supported settings in thoughtchain.json:
{
    "db_path": ".thoughtchain/thinking.db",   // -> THOUGHTCHAIN_DB_PATH (":memory:" for ephemeral)
    "log_file": ".thoughtchain/thoughtchain.log",  // -> THOUGHTCHAIN_LOG_FILE ("" disables)
    "echo_thoughts": false,                   // -> THOUGHTCHAIN_ECHO_THOUGHTS
    "verbose_thought_logging": true,          // -> THOUGHTCHAIN_VERBOSE_LOGGING
    "max_response_size": 20000                // -> THOUGHTCHAIN_MAX_RESPONSE_SIZE
}
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .logging_config import configure_logger

logger = configure_logger(__name__)

CONFIG_FILENAME = "thoughtchain.json"
DATA_DIRNAME = ".thoughtchain"
MEMORY_DB = ":memory:"

_TRUE_VALUES = ("true", "1", "yes")


def _get_project_root() -> Path:
    env_root = os.getenv("THOUGHTCHAIN_PROJECT_ROOT")
    return Path(env_root) if env_root else Path.cwd()


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def resolve_db_path(raw: Optional[str], project_root: Optional[Path] = None) -> str:
    """
    Resolve the storage location.

    ``:memory:`` is kept verbatim, ``~`` is expanded, relative paths are
    resolved against the project root. Unset means
    ``<project_root>/.thoughtchain/thinking.db``.
    """
    root = project_root or _get_project_root()
    if raw == MEMORY_DB:
        return MEMORY_DB
    if raw:
        path = Path(raw).expanduser()
        if not path.is_absolute():
            path = root / path
        return str(path.resolve())
    return str(root / DATA_DIRNAME / "thinking.db")


@dataclass(frozen=True)
class ServerConfig:
    """
    Resolved server settings consumed by the core.

    ::: This is-in-layer Utility-Layer.
    ::: This is a value-object.
    ::: This is stateless.
    """
    db_path: str
    log_file: Optional[str]
    echo_thoughts: bool = False
    verbose_thought_logging: bool = True
    max_response_size: int = 20000

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        project_root: Optional[Path] = None
    ) -> "ServerConfig":
        """
        Build a config from environment variables.

        Args:
            env: Mapping to read instead of os.environ (for tests)
            project_root: Root for relative paths, defaults to the detected root
        """
        env = os.environ if env is None else env
        root = project_root or _get_project_root()

        raw_log = env.get("THOUGHTCHAIN_LOG_FILE")
        if raw_log is None:
            log_file: Optional[str] = str(root / DATA_DIRNAME / "thoughtchain.log")
        elif raw_log == "":
            log_file = None
        else:
            log_path = Path(raw_log).expanduser()
            log_file = str(log_path if log_path.is_absolute() else root / log_path)

        verbose = _parse_bool(env.get("THOUGHTCHAIN_VERBOSE_LOGGING"), True)
        if _parse_bool(env.get("DISABLE_THOUGHT_LOGGING"), False):
            verbose = False

        try:
            max_size = int(env.get("THOUGHTCHAIN_MAX_RESPONSE_SIZE", "20000"))
        except ValueError:
            logger.warning("Invalid THOUGHTCHAIN_MAX_RESPONSE_SIZE, using default")
            max_size = 20000

        return cls(
            db_path=resolve_db_path(env.get("THOUGHTCHAIN_DB_PATH"), root),
            log_file=log_file,
            echo_thoughts=_parse_bool(env.get("THOUGHTCHAIN_ECHO_THOUGHTS"), False),
            verbose_thought_logging=verbose,
            max_response_size=max_size,
        )


class ConfigLoader:
    """
    Loads configuration from thoughtchain.json file.

    ::: This is-in-layer Service-Layer.
    ::: This is a loader.
    ::: This is stateless.

    Priority: Environment variables > thoughtchain.json > defaults
    """

    # Mapping from thoughtchain.json keys to environment variable names
    CONFIG_KEY_TO_ENV = {
        "db_path": "THOUGHTCHAIN_DB_PATH",
        "log_file": "THOUGHTCHAIN_LOG_FILE",
        "echo_thoughts": "THOUGHTCHAIN_ECHO_THOUGHTS",
        "verbose_thought_logging": "THOUGHTCHAIN_VERBOSE_LOGGING",
        "max_response_size": "THOUGHTCHAIN_MAX_RESPONSE_SIZE",
    }

    def __init__(self):
        self._config: Dict[str, Any] = {}
        self._config_path: Optional[Path] = None
        self._loaded = False

    def load(self, project_root: Optional[Path] = None) -> bool:
        """
        Load configuration from thoughtchain.json.

        Args:
            project_root: Project root directory. If None, uses THOUGHTCHAIN_PROJECT_ROOT or CWD.

        Returns:
            True if config file was found and loaded, False otherwise.
        """
        if self._loaded:
            return self._config_path is not None

        if project_root is None:
            project_root = _get_project_root()

        config_path = project_root / CONFIG_FILENAME
        if config_path.exists():
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    self._config = json.load(f)
                self._config_path = config_path
                logger.info("Loaded config from: %s", config_path)
                self._apply_config()
            except json.JSONDecodeError as e:
                logger.warning("Invalid JSON in %s: %s", config_path, e)
            except OSError as e:
                logger.warning("Error loading %s: %s", config_path, e)

        self._loaded = True
        return self._config_path is not None

    def _apply_config(self) -> None:
        """
        Apply config values as environment variables (only if not already set).
        This allows env vars to override config file values.
        """
        for config_key, env_var in self.CONFIG_KEY_TO_ENV.items():
            if config_key in self._config:
                # Only set if env var is not already set
                if os.getenv(env_var) is None:
                    value = self._config[config_key]
                    # bool before int: bool is an int subclass
                    if isinstance(value, bool):
                        value = "true" if value else "false"
                    elif isinstance(value, (int, float)):
                        value = str(value)
                    elif value is None:
                        value = ""

                    os.environ[env_var] = value
                    logger.debug("%s=%s (from %s)", env_var, value, CONFIG_FILENAME)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value."""
        return self._config.get(key, default)

    @property
    def config_path(self) -> Optional[Path]:
        """Path to the loaded config file, or None if not loaded."""
        return self._config_path

    @property
    def config(self) -> Dict[str, Any]:
        """The loaded configuration dictionary."""
        return self._config.copy()


# Global singleton instance
_config_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """Get the global config loader instance."""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def load_config(project_root: Optional[Path] = None) -> ServerConfig:
    """
    Load thoughtchain.json (if present) and resolve the server config.

    This should be called early in server startup, before other services
    read environment variables.
    """
    get_config_loader().load(project_root)
    return ServerConfig.from_env(project_root=project_root)
