"""Configuration management."""

from .manager import Config, ConfigManager
from ..models.config import ExecutorConfig, OutputConfig, ServerProfile, SessionConfig

__all__ = ["Config", "ConfigManager", "ExecutorConfig", "OutputConfig", "ServerProfile", "SessionConfig"]
