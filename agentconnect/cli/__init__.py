# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""agent-connect CLI package."""

import click

from agentconnect import __version__


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="agent-connect")
def cli():
    """agent-connect - Remote terminal sessions for AI coding agents."""
    ctx = click.get_current_context()
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def main():
    """Main entry point."""
    cli()


from agentconnect.cli.commands import projects  # noqa: E402,F401
from agentconnect.cli.commands import serve  # noqa: E402,F401
from agentconnect.cli.commands import sessions  # noqa: E402,F401
