# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Tests for client frame decoding."""

import json

from agentconnect.web.protocol import InputFrame, ResizeFrame, decode_frame


class TestDecodeFrame:
    def test_input(self):
        frame = decode_frame(json.dumps({"type": "input", "data": "ls\r"}))
        assert isinstance(frame, InputFrame)
        assert frame.data == "ls\r"

    def test_empty_input_allowed(self):
        assert decode_frame('{"type": "input", "data": ""}').data == ""

    def test_resize(self):
        frame = decode_frame('{"type": "resize", "cols": 120, "rows": 30}')
        assert isinstance(frame, ResizeFrame)
        assert (frame.cols, frame.rows) == (120, 30)

    def test_malformed_frames_dropped(self):
        for text in (
            "",
            "not json",
            "[1, 2]",
            '"input"',
            '{"data": "x"}',
            '{"type": "ping"}',
            '{"type": "input"}',
            '{"type": "input", "data": 5}',
            '{"type": "resize", "cols": 0, "rows": 30}',
            '{"type": "resize", "cols": 80, "rows": -1}',
            '{"type": "resize", "cols": 80, "rows": 100000}',
            '{"type": "resize", "cols": "wide", "rows": 30}',
            '{"type": "resize", "cols": "80", "rows": 30}',
            '{"type": "resize", "cols": 80.0, "rows": 30}',
            '{"type": "resize", "cols": 80, "rows": true}',
        ):
            assert decode_frame(text) is None, text
