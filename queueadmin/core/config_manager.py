"""
Configuration management for QueueAdmin.

Handles loading, validation, and access to configuration settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from enum import Enum

import yaml
from pydantic import BaseModel, Field, field_validator, ValidationError

from queueadmin.services.queue import AccessRights, ServiceConfig, StoreType

logger = logging.getLogger(__name__)

PRIVATE_QUEUE_PREFIX = ".\\private$\\"
DEFAULT_SERVICE_PRINCIPAL = "Network Service"
RECEIVE_TIMEOUT_SECONDS = 1.0


class LogLevel(str, Enum):
    """Valid log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = LogLevel.WARNING
    format: str = "text"
    file: Optional[str] = None
    rotation_size: str = "10MB"
    rotation_count: int = 5
    module_levels: Optional[Dict[str, str]] = Field(
        default=None,
        description="Per-module log levels, e.g., {'queueadmin.admin.mover': 'DEBUG'}"
    )

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ("text", "json"):
            raise ValueError("Log format must be 'text' or 'json'")
        return v


class StoreConfig(BaseModel):
    """Queue store configuration."""
    type: StoreType = StoreType.SQLITE
    sqlite_path: str = "~/.queueadmin/queues.db"
    busy_timeout_ms: int = Field(default=5000, ge=0)
    wal_enabled: bool = True
    poll_interval_seconds: float = Field(default=0.05, gt=0.0)


class QueueSettings(BaseModel):
    """How queue names are normalized and new queues are set up."""
    prefix: str = PRIVATE_QUEUE_PREFIX
    transactional: bool = True
    service_principal: str = Field(default=DEFAULT_SERVICE_PRINCIPAL, min_length=1)
    service_rights: AccessRights = AccessRights.FULL_CONTROL
    receive_timeout_seconds: float = Field(
        default=RECEIVE_TIMEOUT_SECONDS,
        gt=0.0,
        description="How long a move waits for the next message before treating the source as drained"
    )
    principal: Optional[str] = Field(
        default=None,
        description="Identity operations are checked against (default: current OS user)"
    )


class QueueAdminConfig(BaseModel):
    """Main QueueAdmin configuration schema."""

    version: str = Field(default="0.1.0", description="Configuration version")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    store: StoreConfig = Field(default_factory=StoreConfig)

    queues: QueueSettings = Field(default_factory=QueueSettings)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate version format."""
        parts = v.split(".")
        if len(parts) != 3:
            raise ValueError("Version must be in format x.y.z")
        for part in parts:
            if not part.isdigit():
                raise ValueError("Version components must be numeric")
        return v

    def service_config(self) -> ServiceConfig:
        """Build the queue service configuration for this config."""
        service_config = ServiceConfig(
            store_type=self.store.type,
            sqlite_path=self.store.sqlite_path,
            busy_timeout_ms=self.store.busy_timeout_ms,
            wal_enabled=self.store.wal_enabled,
            poll_interval_seconds=self.store.poll_interval_seconds,
        )
        if self.queues.principal:
            service_config.principal = self.queues.principal
        return service_config


class ConfigManager:
    """
    Manages QueueAdmin configuration loading and validation.

    Configuration precedence (highest to lowest):
    1. CLI arguments
    2. Environment variables (QUEUEADMIN_*)
    3. Configuration file (YAML/JSON)
    4. Defaults
    """

    def __init__(self):
        self._config: Optional[QueueAdminConfig] = None

    def load(
        self,
        config_file: Optional[str] = None,
        cli_overrides: Optional[Dict[str, Any]] = None
    ) -> QueueAdminConfig:
        """
        Load and validate configuration from multiple sources.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            cli_overrides: Dictionary of CLI argument overrides

        Returns:
            Validated QueueAdminConfig instance

        Raises:
            ValidationError: If configuration is invalid
            FileNotFoundError: If specified config file doesn't exist
        """
        logger.debug("Loading QueueAdmin configuration")

        # Start with defaults
        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = self._load_from_file(config_file)
            logger.debug(f"Loaded configuration from file: {config_file}")

        env_config = self._load_from_env()
        config_dict = self._merge_configs(config_dict, env_config)
        if env_config:
            logger.debug(f"Applied {len(env_config)} environment variable overrides")

        if cli_overrides:
            config_dict = self._merge_configs(config_dict, cli_overrides)
            logger.debug(f"Applied {len(cli_overrides)} CLI argument overrides")

        try:
            self._config = QueueAdminConfig(**config_dict)
            self._log_configuration()
            return self._config
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yaml', '.yml']:
                return yaml.safe_load(f) or {}
            elif path.suffix == '.json':
                return json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        # Logging configuration
        if log_level := os.getenv("QUEUEADMIN_LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level.upper()
        if log_format := os.getenv("QUEUEADMIN_LOG_FORMAT"):
            config.setdefault("logging", {})["format"] = log_format.lower()
        if log_file := os.getenv("QUEUEADMIN_LOG_FILE"):
            config.setdefault("logging", {})["file"] = log_file

        # Store configuration
        if store_type := os.getenv("QUEUEADMIN_STORE"):
            config.setdefault("store", {})["type"] = store_type.lower()
        if sqlite_path := os.getenv("QUEUEADMIN_SQLITE_PATH"):
            config.setdefault("store", {})["sqlite_path"] = sqlite_path

        # Queue settings
        if service_principal := os.getenv("QUEUEADMIN_SERVICE_PRINCIPAL"):
            config.setdefault("queues", {})["service_principal"] = service_principal
        if principal := os.getenv("QUEUEADMIN_PRINCIPAL"):
            config.setdefault("queues", {})["principal"] = principal

        return config

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _log_configuration(self) -> None:
        """Log the loaded configuration."""
        if not self._config:
            return

        config_dict = self._config.model_dump(mode="json")
        logger.debug(f"Active configuration: {json.dumps(config_dict, indent=2)}")
