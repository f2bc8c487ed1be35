# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Utility functions for CLI helpers."""

import functools
import sys
from typing import Callable

from rich.console import Console
from rich.panel import Panel

from agentconnect.core.errors import NotFoundError, SpawnError
from agentconnect.utils.logging import get_logger

_console = Console()


class ServerError(Exception):
    """Raised when the agent-connect server is unreachable or rejects a request.

    This exception bubbles up to handle_errors which formats it nicely.
    """

    def __init__(self, message: str, hint: str = None):
        super().__init__(message)
        self.hint = hint


def show_error_panel(title: str, message: str, hint: str = None) -> None:
    """Display a formatted error panel.

    Args:
        title: Panel title (shown in red)
        message: Main error message
        hint: Optional hint text (shown with blue "Hint:" prefix)
    """
    content = message
    if hint:
        content += f"\n\n[blue]Hint:[/blue] {hint}"
    _console.print(Panel(content, title=f"[red]{title}[/red]", border_style="red"))


def _log_failure(func: Callable, exc: Exception) -> None:
    # Resolved per call so a command can configure logging before the first error
    get_logger(func.__module__).error(f"{func.__name__} failed", exc=exc, console_output=False)


def handle_errors(func: Callable) -> Callable:
    """Decorator that wraps CLI commands with standard error handling.

    Catches exceptions, records them in the log file, prints error with nice
    formatting, and exits with code 1.
    Special handling for:
    - ServerError: "Server Error" panel with hint if provided
    - NotFoundError: "Not Found" panel
    - SpawnError: "Spawn Failed" panel
    - ClickException: left to Click
    - Other exceptions: generic error panel

    Usage:
        @command.command()
        @handle_errors
        def my_command():
            ...
    """
    import click

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SystemExit:
            raise
        except ServerError as exc:
            _log_failure(func, exc)
            show_error_panel("Server Error", str(exc), exc.hint)
            sys.exit(1)
        except NotFoundError as exc:
            _log_failure(func, exc)
            show_error_panel("Not Found", str(exc))
            sys.exit(1)
        except SpawnError as exc:
            _log_failure(func, exc)
            show_error_panel("Spawn Failed", str(exc))
            sys.exit(1)
        except click.ClickException:
            raise
        except Exception as exc:
            _log_failure(func, exc)
            show_error_panel("Error", str(exc))
            sys.exit(1)

    return wrapper
