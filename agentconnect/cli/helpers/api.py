# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Small HTTP client the CLI uses to talk to a running server."""

from typing import Any, Dict, Optional

import requests

from agentconnect.cli.helpers.utils import ServerError
from agentconnect.core.errors import NotFoundError
from agentconnect.host_config import get_config

REQUEST_TIMEOUT = 10


def _base_url(base_url: Optional[str]) -> str:
    return (base_url or get_config().server_url).rstrip("/")


def api_request(
    method: str,
    path: str,
    base_url: Optional[str] = None,
    **kwargs,
) -> Dict[str, Any]:
    """Call the server API and return the decoded JSON body.

    Raises:
        NotFoundError: the server answered 404.
        ServerError: connection failure or any other non-2xx answer.
    """
    url = f"{_base_url(base_url)}{path}"
    try:
        resp = requests.request(method, url, timeout=REQUEST_TIMEOUT, **kwargs)
    except requests.RequestException as e:
        raise ServerError(
            f"Cannot reach agent-connect at {_base_url(base_url)}: {e}",
            hint="agent-connect serve",
        )

    if resp.status_code == 404:
        ident = path.rstrip("/").split("/")[-1]
        kind = "project" if path.startswith("/api/projects") else "session"
        if path == "/api/sessions" and method.upper() == "POST":
            kind = "project"
            ident = (kwargs.get("json") or {}).get("projectId", ident)
        raise NotFoundError(kind, ident)

    if not resp.ok:
        try:
            detail = resp.json().get("detail", resp.text)
        except ValueError:
            detail = resp.text
        raise ServerError(f"{method.upper()} {path} failed ({resp.status_code}): {detail}")

    return resp.json()
