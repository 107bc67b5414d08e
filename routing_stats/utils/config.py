#!/usr/bin/env python3
"""
Configuration Management for routing-stats

Provides centralized configuration handling with:
- Environment variable support
- Configuration file support
- Default values and validation
- Runtime configuration management
"""

import os
import json
import threading
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, List
import logging


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value:
        try:
            return int(value)
        except ValueError:
            logging.getLogger(__name__).warning(f"Ignoring non-integer {name}={value}")
    return None


@dataclass
class InputConfig:
    """Locations of the snapshot input files"""

    announcement_files: List[str] = None
    vrp_file: Optional[str] = None
    delegation_file: Optional[str] = None

    def __post_init__(self):
        """Load from environment variables if not set"""
        if self.announcement_files is None:
            self.announcement_files = []
        if os.getenv("ROUTING_STATS_ANNOUNCEMENTS"):
            self.announcement_files = [
                p.strip()
                for p in os.getenv("ROUTING_STATS_ANNOUNCEMENTS").split(",")
                if p.strip()
            ]
        if os.getenv("ROUTING_STATS_VRPS"):
            self.vrp_file = os.getenv("ROUTING_STATS_VRPS")
        if os.getenv("ROUTING_STATS_DELEGATIONS"):
            self.delegation_file = os.getenv("ROUTING_STATS_DELEGATIONS")


@dataclass
class ValidationConfig:
    """Announcement filtering and classification tuning"""

    min_peers: int = 5
    max_workers: int = 4
    chunk_size: int = 50000
    parallel_threshold: int = 100000

    def __post_init__(self):
        """Load from environment variables if not set"""
        value = _env_int("ROUTING_STATS_MIN_PEERS")
        if value is not None:
            self.min_peers = value
        value = _env_int("ROUTING_STATS_MAX_WORKERS")
        if value is not None:
            self.max_workers = value
        value = _env_int("ROUTING_STATS_CHUNK_SIZE")
        if value is not None:
            self.chunk_size = value


@dataclass
class DaemonConfig:
    """HTTP daemon configuration"""

    host: str = "127.0.0.1"
    port: int = 8080
    reload_interval_minutes: int = 0

    def __post_init__(self):
        """Load from environment variables if not set"""
        if os.getenv("ROUTING_STATS_HOST"):
            self.host = os.getenv("ROUTING_STATS_HOST")
        value = _env_int("ROUTING_STATS_PORT")
        if value is not None:
            self.port = value
        value = _env_int("ROUTING_STATS_RELOAD_MINUTES")
        if value is not None:
            self.reload_interval_minutes = value


@dataclass
class OutputConfig:
    """Report output configuration"""

    format: str = "json"

    def __post_init__(self):
        """Load from environment variables if not set"""
        if os.getenv("ROUTING_STATS_FORMAT"):
            self.format = os.getenv("ROUTING_STATS_FORMAT").lower()


@dataclass
class LoggingConfig:
    """Logging configuration"""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    log_to_file: bool = False
    log_file: Optional[str] = None

    def __post_init__(self):
        """Load from environment variables if not set"""
        if os.getenv("ROUTING_STATS_LOG_LEVEL"):
            self.level = os.getenv("ROUTING_STATS_LOG_LEVEL").upper()
        if os.getenv("ROUTING_STATS_LOG_FILE"):
            self.log_file = os.getenv("ROUTING_STATS_LOG_FILE")
            self.log_to_file = True


OUTPUT_FORMATS = ["json", "text"]
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class RoutingStatsConfig:
    """Main configuration container"""

    inputs: InputConfig = None
    validation: ValidationConfig = None
    daemon: DaemonConfig = None
    output: OutputConfig = None
    logging: LoggingConfig = None

    def __post_init__(self):
        """Initialize subconfigs if not provided"""
        if self.inputs is None:
            self.inputs = InputConfig()
        if self.validation is None:
            self.validation = ValidationConfig()
        if self.daemon is None:
            self.daemon = DaemonConfig()
        if self.output is None:
            self.output = OutputConfig()
        if self.logging is None:
            self.logging = LoggingConfig()


class ConfigManager:
    """Configuration management for routing-stats"""

    DEFAULT_CONFIG_PATHS = [
        Path.home() / ".config/routing-stats/config.json",
        Path("/etc/routing-stats/config.json"),
        Path("./config.json"),
    ]

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration manager

        Args:
            config_path: Optional path to configuration file
        """
        self.logger = logging.getLogger(__name__)
        self.config_path = config_path
        self.config = RoutingStatsConfig()

        self._load_config()

    def _load_config(self):
        """Load configuration from file and environment"""
        config_file = self._find_config_file()
        if config_file:
            try:
                self._load_from_file(config_file)
                self.logger.info(f"Loaded configuration from {config_file}")
            except Exception as e:
                self.logger.warning(f"Failed to load config file {config_file}: {e}")

        # Environment variables are loaded in __post_init__ methods
        self.logger.debug("Configuration loaded with environment variable overrides")

    def _find_config_file(self) -> Optional[Path]:
        """Find configuration file in default locations"""
        if self.config_path and self.config_path.exists():
            return self.config_path

        for path in self.DEFAULT_CONFIG_PATHS:
            if path.exists():
                return path

        return None

    def _load_from_file(self, config_path: Path):
        """Load configuration from JSON file"""
        with open(config_path, "r") as f:
            data = json.load(f)
        self._load_from_dict(data)

    def _load_from_dict(self, data: dict):
        """Load configuration from dictionary (side-effect-free)"""
        if "inputs" in data:
            self.config.inputs = InputConfig(**data["inputs"])

        if "validation" in data:
            self.config.validation = ValidationConfig(**data["validation"])

        if "daemon" in data:
            self.config.daemon = DaemonConfig(**data["daemon"])

        if "output" in data:
            self.config.output = OutputConfig(**data["output"])

        if "logging" in data:
            self.config.logging = LoggingConfig(**data["logging"])

    def save_config(self, config_path: Optional[Path] = None) -> Path:
        """
        Save current configuration to file

        Args:
            config_path: Path to save configuration (default: first default path)

        Returns:
            Path where configuration was saved
        """
        if config_path is None:
            config_path = self.DEFAULT_CONFIG_PATHS[0]

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            json.dump(asdict(self.config), f, indent=2)

        self.logger.info(f"Configuration saved to {config_path}")
        return config_path

    def get_config(self) -> RoutingStatsConfig:
        """Get current configuration"""
        return self.config

    def update_validation_config(self, **kwargs):
        """Update validation configuration"""
        for key, value in kwargs.items():
            if value is not None and hasattr(self.config.validation, key):
                setattr(self.config.validation, key, value)

    def update_input_config(self, **kwargs):
        """Update input file configuration"""
        for key, value in kwargs.items():
            if value is not None and hasattr(self.config.inputs, key):
                setattr(self.config.inputs, key, value)

    def validate_config(self) -> List[str]:
        """
        Validate current configuration

        Returns:
            List of validation issues (empty if valid)
        """
        issues = []
        validation = self.config.validation

        if validation.min_peers < 0:
            issues.append(f"validation.min_peers must be >= 0, got {validation.min_peers}")
        if validation.max_workers < 1:
            issues.append(f"validation.max_workers must be >= 1, got {validation.max_workers}")
        if validation.chunk_size < 1:
            issues.append(f"validation.chunk_size must be >= 1, got {validation.chunk_size}")
        if validation.parallel_threshold < 0:
            issues.append("validation.parallel_threshold must be >= 0")

        daemon = self.config.daemon
        if not (1 <= daemon.port <= 65535):
            issues.append(f"daemon.port must be between 1-65535, got {daemon.port}")
        if daemon.reload_interval_minutes < 0:
            issues.append("daemon.reload_interval_minutes must be >= 0")

        if self.config.output.format not in OUTPUT_FORMATS:
            issues.append(
                f"output.format must be one of {OUTPUT_FORMATS}, got {self.config.output.format}"
            )

        if self.config.logging.level.upper() not in LOG_LEVELS:
            issues.append(f"logging.level must be one of {LOG_LEVELS}")
        if self.config.logging.log_to_file and not self.config.logging.log_file:
            issues.append("logging.log_file is required when logging.log_to_file is enabled")

        inputs = self.config.inputs
        for path in inputs.announcement_files:
            if not Path(path).exists():
                issues.append(f"Announcement file not found: {path}")
        if inputs.vrp_file and not Path(inputs.vrp_file).exists():
            issues.append(f"VRP file not found: {inputs.vrp_file}")
        if inputs.delegation_file and not Path(inputs.delegation_file).exists():
            issues.append(f"Delegation file not found: {inputs.delegation_file}")

        return issues


_config_manager: Optional[ConfigManager] = None
_config_manager_lock = threading.RLock()


def get_config_manager(config_path: Optional[Path] = None) -> ConfigManager:
    """
    Get global configuration manager instance using double-checked locking.

    The daemon reads configuration from request threads and the reload
    thread, so initialization must happen exactly once.
    """
    global _config_manager

    # Fast path - avoid lock if already initialized
    if _config_manager is not None:
        return _config_manager

    with _config_manager_lock:
        if _config_manager is None:
            thread_id = threading.current_thread().ident
            logger = logging.getLogger(__name__)
            logger.debug(f"Initializing ConfigManager singleton in thread {thread_id}")

            _config_manager = ConfigManager(config_path)

        return _config_manager


def reset_config_manager():
    """Forget the cached manager so the next call re-reads file and environment"""
    global _config_manager

    with _config_manager_lock:
        _config_manager = None


def get_config() -> RoutingStatsConfig:
    """Get current configuration"""
    return get_config_manager().get_config()
