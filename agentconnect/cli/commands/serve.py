# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Run the agent-connect server in the foreground."""

from typing import Optional

import click

from agentconnect.cli import cli
from agentconnect.cli.helpers import handle_errors
from agentconnect.host_config import get_config
from agentconnect.utils.logging import configure_logging, get_logger


@cli.command("serve")
@click.option("--host", default=None, help="Bind address (default from config.yml)")
@click.option("--port", type=int, default=None, help="Bind port (default from config.yml)")
@click.option("--debug", is_flag=True, help="Verbose logging")
@handle_errors
def serve(host: Optional[str], port: Optional[int], debug: bool):
    """Serve the session API and terminal WebSocket."""
    from agentconnect.web.server import run_server

    config = get_config()
    configure_logging(debug=debug, daemon=True)

    bind_host = host or config.host
    bind_port = port or config.port
    log_level = "debug" if debug else config.model.web_server.log_level

    logger = get_logger(__name__)
    logger.info(f"agent-connect listening on http://{bind_host}:{bind_port}")
    if bind_host not in ("127.0.0.1", "localhost", "::1"):
        logger.warning(
            "Not bound to localhost: put a TLS reverse proxy in front (e.g. tailscale serve)"
        )
    run_server(bind_host, bind_port, log_level=log_level)
