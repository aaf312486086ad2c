"""
Settings management for errguard entry points.

This module loads the settings that feed the handler's initial parameter set
and the CLI's own logging, with a clear priority order:

    1. Environment variables (highest priority) - for containerized deployments
    2. Config file (config/errguard.ini) - for static deployments
    3. Built-in defaults (lowest priority) - sensible fallbacks

Per-application handler parameters (masks, overrides, extra log data) are
kept in a YAML parameter file and loaded with :func:`load_parameters`.

Usage:
    from errguard.settings import load_settings, load_parameters, merge_parameters

    settings = load_settings()
    parameters = merge_parameters(settings.to_parameters(), load_parameters(path))
    errguard.initialise(parameters)

Environment Variable Mapping:
    ERRGUARD_MODE        -> handler.mode
    ERRGUARD_LOG_DIR     -> handler.log_directory
    ERRGUARD_LOG_FILE    -> handler.log_file
    ERRGUARD_LOG_LEVEL   -> logging.level
    ERRGUARD_LOG_FORMAT  -> logging.format
"""

from __future__ import annotations

import configparser
import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml

from errguard.config import DEFAULT_LOG_FILE

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Project root directory (contains src/, config/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Config file paths
CONFIG_DIR = PROJECT_ROOT / "config"
CONFIG_FILE = CONFIG_DIR / "errguard.ini"
CONFIG_EXAMPLE = CONFIG_DIR / "errguard.example.ini"

_LOG_FORMATS = ("simple", "detailed", "json")


# =============================================================================
# SETTINGS DATACLASSES
# =============================================================================


@dataclass
class HandlerSettings:
    """Handler parameters that are usually set per deployment."""

    mode: str = "development"
    log_directory: str | None = None
    log_file: str = DEFAULT_LOG_FILE


@dataclass
class LoggingSettings:
    """Logging configuration for errguard's own diagnostics."""

    level: str = "INFO"
    format: Literal["simple", "detailed", "json"] = "detailed"


@dataclass
class ErrguardSettings:
    """
    Complete errguard settings.

    Aggregates all settings sections.  Build with :func:`load_settings`.
    """

    handler: HandlerSettings = field(default_factory=HandlerSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    def to_parameters(self) -> dict[str, Any]:
        """Return the handler parameter mapping for :func:`errguard.build_config`."""
        parameters: dict[str, Any] = {
            "mode": self.handler.mode,
            "log_file": self.handler.log_file,
        }
        if self.handler.log_directory:
            parameters["log_directory"] = self.handler.log_directory
        return parameters


# =============================================================================
# SETTINGS LOADING
# =============================================================================


def _load_from_ini(parser: configparser.ConfigParser, cfg: ErrguardSettings) -> None:
    """Load settings from a parsed INI file into ErrguardSettings."""
    # Handler section
    if parser.has_section("handler"):
        if parser.has_option("handler", "mode"):
            cfg.handler.mode = parser.get("handler", "mode").lower()
        if parser.has_option("handler", "log_directory"):
            cfg.handler.log_directory = parser.get("handler", "log_directory")
        if parser.has_option("handler", "log_file"):
            cfg.handler.log_file = parser.get("handler", "log_file")

    # Logging section
    if parser.has_section("logging"):
        if parser.has_option("logging", "level"):
            cfg.logging.level = parser.get("logging", "level").upper()
        if parser.has_option("logging", "format"):
            val = parser.get("logging", "format").lower()
            if val in _LOG_FORMATS:
                cfg.logging.format = val  # type: ignore[assignment]


def _apply_env_overrides(cfg: ErrguardSettings) -> None:
    """Apply environment variable overrides to settings."""
    if env_mode := os.getenv("ERRGUARD_MODE"):
        cfg.handler.mode = env_mode.lower()
    if env_dir := os.getenv("ERRGUARD_LOG_DIR"):
        cfg.handler.log_directory = env_dir
    if env_file := os.getenv("ERRGUARD_LOG_FILE"):
        cfg.handler.log_file = env_file
    if env_level := os.getenv("ERRGUARD_LOG_LEVEL"):
        cfg.logging.level = env_level.upper()
    if env_format := os.getenv("ERRGUARD_LOG_FORMAT"):
        if env_format.lower() in _LOG_FORMATS:
            cfg.logging.format = env_format.lower()  # type: ignore[assignment]


def load_settings(config_file: Path | None = None) -> ErrguardSettings:
    """
    Load settings from all sources with proper priority.

    Priority (highest wins):
        1. Environment variables
        2. ``config_file`` if given, else config/errguard.ini
        3. config/errguard.example.ini (fallback for development)
        4. Built-in defaults

    Returns:
        ErrguardSettings: Fully populated settings object.
    """
    cfg = ErrguardSettings()

    if config_file is None:
        if CONFIG_FILE.exists():
            config_file = CONFIG_FILE
        elif CONFIG_EXAMPLE.exists():
            config_file = CONFIG_EXAMPLE

    if config_file is not None:
        parser = configparser.ConfigParser()
        parser.read(config_file)
        _load_from_ini(parser, cfg)

    _apply_env_overrides(cfg)
    return cfg


# =============================================================================
# PARAMETER FILES
# =============================================================================


def load_parameters(path: Path) -> dict[str, Any]:
    """Load a YAML handler parameter file.

    An empty file yields an empty mapping.  Keys are not validated here;
    :func:`errguard.build_config` does that so that unknown keys are
    reported together with any coming from other sources.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the top level of the document is not a mapping.
    """
    with path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path.name} must be a YAML mapping at the top level.")
    return raw


def merge_parameters(*sources: Mapping[str, Any]) -> dict[str, Any]:
    """Merge parameter mappings; later sources win key by key."""
    merged: dict[str, Any] = {}
    for source in sources:
        merged.update(source)
    return merged


# =============================================================================
# LOGGING SETUP
# =============================================================================


class JsonLogFormatter(logging.Formatter):
    """Format each log record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(settings: LoggingSettings) -> None:
    """Configure the root logger from :class:`LoggingSettings`."""
    handler = logging.StreamHandler()
    if settings.format == "json":
        handler.setFormatter(JsonLogFormatter())
    elif settings.format == "simple":
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
    logging.basicConfig(level=settings.level, handlers=[handler], force=True)
