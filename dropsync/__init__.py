"""Keeps application data folders in sync through a passively synchronized folder."""

from dropsync.config_loader import AppEntry, Config, ConfigError, load_config
from dropsync.logging_setup import get_logger, setup_logging
from dropsync.resolver import DirectionalVerdict, resolve
from dropsync.scanner import Scanner, TreeSnapshot
from dropsync.sync_logic import SyncExecutor

__all__ = [
    "AppEntry",
    "Config",
    "ConfigError",
    "DirectionalVerdict",
    "Scanner",
    "SyncExecutor",
    "TreeSnapshot",
    "load_config",
    "resolve",
    "setup_logging",
    "get_logger",
]
