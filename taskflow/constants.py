"""
Constants for the TaskFlow lifecycle engine.

Note: These constants serve as default fallback values.
Actual values are loaded from .taskflow/config.json at runtime via ConfigManager.
"""
from pathlib import Path
from typing import Any, Optional
import json

# =============================================================================
# Default Fallback Values
# These are used if config.json doesn't exist or doesn't specify a value.
# =============================================================================

DEFAULT_DATA_DIR = ".taskflow"
DATA_DIR_ENVVAR = "TASKFLOW_DIR"

# Scheduler defaults
SCHEDULE_MODE_DAILY = "daily"
SCHEDULE_MODE_HOURLY = "hourly"
VALID_SCHEDULE_MODES = [SCHEDULE_MODE_DAILY, SCHEDULE_MODE_HOURLY]
DEFAULT_SCHEDULE_MODE = SCHEDULE_MODE_DAILY
DEFAULT_DAILY_TICK_INTERVAL_SECONDS = 24 * 60 * 60
DEFAULT_HOURLY_TICK_INTERVAL_SECONDS = 60 * 60
DEFAULT_HOURLY_WINDOW_START = 6   # 06:00
DEFAULT_HOURLY_WINDOW_END = 22    # 22:59 is still inside the window
DEFAULT_SCHEDULER_MAX_WORKERS = 1

# Locking defaults
DEFAULT_LOCK_TIMEOUT_SECONDS = 30.0

# Percentage calculation defaults
DEFAULT_PERCENTAGE_ROUND_PRECISION = 1

# Status display
DEFAULT_STATUS_HEADER_WIDTH = 25

# Date format for CLI input/output
DATETIME_INPUT_FORMATS = [
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
]
DATETIME_DISPLAY_FORMAT = "%Y-%m-%d %H:%M"

# Aliases for backward compatibility
PERCENTAGE_ROUND_PRECISION = DEFAULT_PERCENTAGE_ROUND_PRECISION
STATUS_HEADER_WIDTH = DEFAULT_STATUS_HEADER_WIDTH


# =============================================================================
# Config Loader
# Load values from .taskflow/config.json at runtime.
# =============================================================================

_config_manager_instance: Optional['ConfigManager'] = None


class ConfigManager:
    """
    Manages loading configuration from a config.json file with fallback to defaults.

    This class is independent of StorageManager to avoid cyclic dependencies.
    StorageManager handles persistence; ConfigManager handles runtime access.

    Usage:
        # With default path (.taskflow/config.json)
        config = ConfigManager()
        timeout = config.get_float('lock_timeout_seconds', DEFAULT_LOCK_TIMEOUT_SECONDS)

        # With a data directory
        config = ConfigManager(data_dir=Path("/srv/taskflow"))
    """

    def __init__(self, config_path: Optional[Path] = None, data_dir: Optional[Path] = None) -> None:
        """
        Initialize ConfigManager.

        Args:
            config_path: Direct path to config.json file. Takes precedence over data_dir.
            data_dir: Path to the data directory. Config path will be data_dir/config.json.
        """
        self._config: Optional[dict] = None

        if config_path is not None:
            self._config_path = config_path
        elif data_dir is not None:
            self._config_path = Path(data_dir) / "config.json"
        else:
            self._config_path = Path(DEFAULT_DATA_DIR) / "config.json"

    def _load_config(self) -> dict:
        """Load config from config.json file."""
        if self._config is not None:
            return self._config

        if self._config_path.exists():
            try:
                with open(self._config_path, "r") as f:
                    self._config = json.load(f)
            except (json.JSONDecodeError, IOError):
                self._config = {}
        else:
            self._config = {}

        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a config value with fallback to default.

        Args:
            key: Configuration key name.
            default: Default value if key not found.

        Returns:
            Config value or default.
        """
        config = self._load_config()
        return config.get(key, default)

    def get_int(self, key: str, default: int) -> int:
        """Get an integer config value with fallback."""
        value = self.get(key, default)
        return int(value) if value is not None else default

    def get_float(self, key: str, default: float) -> float:
        """Get a float config value with fallback."""
        value = self.get(key, default)
        return float(value) if value is not None else default

    def get_str(self, key: str, default: str) -> str:
        """Get a string config value with fallback."""
        value = self.get(key, default)
        return str(value) if value is not None else default

    def reload(self) -> dict:
        """Force reload of config from disk."""
        self._config = None
        return self._load_config()

    @property
    def config_path(self) -> Path:
        """Get the config file path."""
        return self._config_path


def get_config_manager(reset: bool = False) -> ConfigManager:
    """
    Get the singleton ConfigManager instance with default path.

    Args:
        reset: If True, reset the singleton and create a new instance.

    Returns:
        ConfigManager singleton instance.
    """
    global _config_manager_instance
    if _config_manager_instance is None or reset:
        _config_manager_instance = ConfigManager()
    return _config_manager_instance


def reset_config_manager() -> None:
    """Reset the singleton ConfigManager instance (useful for testing)."""
    global _config_manager_instance
    _config_manager_instance = None


# Convenience functions for common config access.
# Each accepts an explicit ConfigManager; the singleton is used otherwise.
def get_schedule_mode(config: Optional[ConfigManager] = None) -> str:
    """Get scheduler mode ('daily' or 'hourly') from config or default."""
    return (config or get_config_manager()).get_str('schedule_mode', DEFAULT_SCHEDULE_MODE)


def get_tick_interval_seconds(mode: str, config: Optional[ConfigManager] = None) -> int:
    """Get the tick interval for a scheduler mode from config or default."""
    config = config or get_config_manager()
    if mode == SCHEDULE_MODE_HOURLY:
        return config.get_int('hourly_tick_interval_seconds', DEFAULT_HOURLY_TICK_INTERVAL_SECONDS)
    return config.get_int('daily_tick_interval_seconds', DEFAULT_DAILY_TICK_INTERVAL_SECONDS)


def get_hourly_window(config: Optional[ConfigManager] = None) -> tuple:
    """Get the (start_hour, end_hour) window for hourly ticks."""
    config = config or get_config_manager()
    return (
        config.get_int('hourly_window_start', DEFAULT_HOURLY_WINDOW_START),
        config.get_int('hourly_window_end', DEFAULT_HOURLY_WINDOW_END),
    )


def get_lock_timeout_seconds(config: Optional[ConfigManager] = None) -> float:
    """Get project lock timeout from config or default."""
    return (config or get_config_manager()).get_float('lock_timeout_seconds', DEFAULT_LOCK_TIMEOUT_SECONDS)


def get_scheduler_max_workers(config: Optional[ConfigManager] = None) -> int:
    """Get the number of projects ticked concurrently from config or default."""
    return (config or get_config_manager()).get_int('scheduler_max_workers', DEFAULT_SCHEDULER_MAX_WORKERS)


def get_percentage_round_precision(config: Optional[ConfigManager] = None) -> int:
    """Get percentage round precision from config or default."""
    return (config or get_config_manager()).get_int('percentage_round_precision', DEFAULT_PERCENTAGE_ROUND_PRECISION)
