# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""WebSocket message protocol for terminal viewers.

Client -> server:
    {"type": "input", "data": "<keystrokes>"}
    {"type": "resize", "cols": 120, "rows": 30}

Server -> client (built in agentconnect.core.hub):
    {"type": "scrollback", "data": "..."}   once, first
    {"type": "output", "data": "..."}       live chunks
    {"type": "exit", "exitCode": 0, "signal": null}

Anything else from the client is dropped without closing the connection.
"""

import json
import logging
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, StrictInt, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

MAX_DIMENSION = 10000


class InputFrame(BaseModel):
    type: Literal["input"]
    data: str


class ResizeFrame(BaseModel):
    type: Literal["resize"]
    cols: StrictInt = Field(gt=0, le=MAX_DIMENSION)
    rows: StrictInt = Field(gt=0, le=MAX_DIMENSION)


ClientFrame = Annotated[Union[InputFrame, ResizeFrame], Field(discriminator="type")]

_frame_adapter = TypeAdapter(ClientFrame)


def decode_frame(text: str) -> Optional[Union[InputFrame, ResizeFrame]]:
    """Parse one client frame; None for malformed or unknown frames."""
    try:
        payload = json.loads(text)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring non-JSON frame: {text[:80]!r}")
        return None
    if not isinstance(payload, dict):
        logger.debug("Ignoring non-object frame")
        return None
    try:
        return _frame_adapter.validate_python(payload)
    except ValidationError:
        logger.debug(f"Ignoring invalid frame of type {payload.get('type')!r}")
        return None
