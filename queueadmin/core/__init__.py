"""Core module initialization."""

from .config_manager import ConfigManager, QueueAdminConfig
from .logging_config import setup_logging

__all__ = [
    "ConfigManager",
    "QueueAdminConfig",
    "setup_logging",
]
