"""Configuration and logging utilities."""
from .config import load_config
from .logger import ControlEventLogger, setup_logging

__all__ = ["load_config", "ControlEventLogger", "setup_logging"]
