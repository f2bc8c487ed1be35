# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Unified logging for agent-connect.

This module provides:
1. Centralized logging configuration for the ``agentconnect`` logger tree
2. Debug mode via AGENT_CONNECT_DEBUG env var or programmatic flag
3. Log levels via AGENT_CONNECT_LOG_LEVEL env var
4. Rotating file log plus Rich console output for the CLI
5. Daemon mode: plain stderr output for the server process

Usage:
    from agentconnect.utils.logging import get_logger, configure_logging

    # In CLI entry point:
    configure_logging(debug=debug, daemon=True)

    # In CLI commands:
    logger = get_logger(__name__)
    logger.success("Project added")

Core modules use ``logging.getLogger(__name__)`` directly; they inherit the
handlers installed here.

Environment Variables:
    AGENT_CONNECT_DEBUG=1          Enable debug mode (verbose output)
    AGENT_CONNECT_LOG_LEVEL=DEBUG  Set log level (DEBUG, INFO, WARNING, ERROR)
    AGENT_CONNECT_LOG_FILE=/path   Override log file location
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console

from agentconnect.paths import HostPaths

ROOT_LOGGER = "agentconnect"

# Global state
_configured = False
_debug_mode = False
_daemon_mode = False
_log_file: Optional[Path] = None

# Shared Rich console instance
console = Console()

# Custom log level for success messages
SUCCESS_LEVEL = 25
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")


def _get_log_file() -> Path:
    """Get the log file path, creating its directory if needed."""
    global _log_file
    if _log_file:
        return _log_file

    _log_file = HostPaths.log_file()
    _log_file.parent.mkdir(parents=True, exist_ok=True)
    return _log_file


def is_debug_mode() -> bool:
    """Check if debug mode is enabled."""
    return _debug_mode or os.environ.get("AGENT_CONNECT_DEBUG", "").lower() in ("1", "true", "yes")


def configure_logging(
    debug: bool = False,
    daemon: bool = False,
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
) -> None:
    """Configure the logging system.

    Should be called once at startup (CLI entry point or server start).

    Args:
        debug: Enable debug mode (verbose output, debug to console)
        daemon: Daemon mode (stderr only, no Rich formatting)
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Override log file path
    """
    global _configured, _debug_mode, _daemon_mode, _log_file

    if _configured:
        return

    _debug_mode = debug or is_debug_mode()
    _daemon_mode = daemon

    if log_file:
        _log_file = log_file

    if log_level:
        level_name = log_level.upper()
    else:
        level_name = os.environ.get(
            "AGENT_CONNECT_LOG_LEVEL", "DEBUG" if _debug_mode else "INFO"
        ).upper()

    level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    # File handler with rotation (always enabled, captures all logs)
    try:
        file_handler = RotatingFileHandler(
            _get_log_file(),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)
    except (OSError, PermissionError):
        # Can't write log file, continue without it
        pass

    if _daemon_mode:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(level)
        stderr_handler.setFormatter(logging.Formatter("%(name)s: %(levelname)s: %(message)s"))
        root_logger.addHandler(stderr_handler)

    _configured = True

    root_logger.debug(
        f"Logging configured: level={level_name}, debug={_debug_mode}, daemon={_daemon_mode}"
    )
    if _log_file:
        root_logger.debug(f"Log file: {_log_file}")


def reset_logging() -> None:
    """Forget previous configuration (used by tests)."""
    global _configured, _debug_mode, _daemon_mode, _log_file
    logging.getLogger(ROOT_LOGGER).handlers.clear()
    _configured = False
    _debug_mode = False
    _daemon_mode = False
    _log_file = None


class AgentConnectLogger:
    """Logging with Rich console output for CLI commands.

    Every message goes to the standard logger (and so to the log file);
    user-facing levels are echoed to the console unless in daemon mode.
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)
        self.console = console

    def info(self, message: str, console_output: bool = True) -> None:
        self.logger.info(message)
        if console_output and not _daemon_mode:
            self.console.print(f"[blue]{message}[/blue]")

    def success(self, message: str, console_output: bool = True) -> None:
        self.logger.log(SUCCESS_LEVEL, message)
        if console_output and not _daemon_mode:
            self.console.print(f"[green]✓ {message}[/green]")

    def warning(self, message: str, console_output: bool = True) -> None:
        self.logger.warning(message)
        if console_output and not _daemon_mode:
            self.console.print(f"[yellow]⚠ {message}[/yellow]")

    def error(
        self,
        message: str,
        exc: Optional[Exception] = None,
        console_output: bool = True,
    ) -> None:
        """Log error message (red output).

        Args:
            message: Error message
            exc: Optional exception to include in log
            console_output: Output to console
        """
        if exc:
            self.logger.error(f"{message}: {exc}", exc_info=exc)
            error_msg = f"{message}: {exc}"
        else:
            self.logger.error(message)
            error_msg = message

        if console_output and not _daemon_mode:
            self.console.print(f"[red]✗ {error_msg}[/red]")


def get_logger(name: str) -> AgentConnectLogger:
    """Get a console-aware logger for a module.

    Args:
        name: Module name (typically __name__)

    Returns:
        AgentConnectLogger instance
    """
    if not _configured:
        configure_logging()

    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"

    return AgentConnectLogger(name)
