"""
Logging configuration.

The packaged YAML (`src/tripsequence/config/logging.yaml`) defines handlers and
formatters. The level comes from, in order of precedence:
- an explicit `level` argument (the CLI's `--log-level`),
- `app.log_level` in settings (`TRIPSEQUENCE_LOG_LEVEL` overrides it).

The chosen level is applied to the root logger, to every handler that declares a
level and to the `tripsequence` package logger, so optimizer/index debug output
can be switched on without touching third-party loggers listed in the YAML.
"""

from __future__ import annotations

import copy
import logging
import logging.config

from tripsequence.config.settings import get_logging_config, get_settings

PACKAGE_LOGGER = "tripsequence"

_LEVEL_NAMES = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def resolve_log_level(level: str | None = None) -> str:
    """Normalize `level` (or the configured one) to a stdlib level name."""
    name = (level or get_settings().app.log_level).strip().upper()
    if name == "WARN":
        name = "WARNING"
    if name not in _LEVEL_NAMES:
        raise ValueError(f"Unknown log level '{level}', expected one of {', '.join(_LEVEL_NAMES)}")
    return name


def configure_logging(level: str | None = None) -> str:
    """Apply the packaged logging config at `level`; returns the level used."""
    name = resolve_log_level(level)
    # The loader is cached, so work on a copy.
    config = copy.deepcopy(get_logging_config())

    config.setdefault("root", {})["level"] = name
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict) and "level" in handler:
            handler["level"] = name
    loggers = config.setdefault("loggers", {})
    loggers.setdefault(PACKAGE_LOGGER, {})["level"] = name

    logging.config.dictConfig(config)
    logging.getLogger(PACKAGE_LOGGER).debug("logging configured at %s", name)
    return name
