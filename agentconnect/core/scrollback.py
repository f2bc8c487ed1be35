# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Bounded scrollback buffer for session output."""

import re
import threading
from collections import deque
from typing import Deque, List

DEFAULT_MAX_CHUNKS = 5000

# CSI sequences (colors, cursor movement) and OSC sequences (titles, hyperlinks)
_ANSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)|\x1b[@-Z\\-_]")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return _ANSI_RE.sub("", text)


class ScrollbackBuffer:
    """Thread-safe ring of the most recent output chunks.

    Chunks are stored exactly as the pty produced them; eviction is by
    chunk count, oldest first, never by size.
    """

    def __init__(self, max_chunks: int = DEFAULT_MAX_CHUNKS):
        if max_chunks < 1:
            raise ValueError("max_chunks must be >= 1")
        self.max_chunks = max_chunks
        self._chunks: Deque[str] = deque(maxlen=max_chunks)
        self._lock = threading.Lock()

    def append(self, chunk: str) -> None:
        """Append a chunk, dropping the oldest once the cap is exceeded."""
        with self._lock:
            self._chunks.append(chunk)

    def snapshot(self) -> str:
        """Return every retained chunk concatenated in order."""
        with self._lock:
            return "".join(self._chunks)

    def tail_lines(self, n: int = 5) -> List[str]:
        """Last ``n`` non-empty lines of the buffer with ANSI codes removed."""
        if n <= 0:
            return []
        text = strip_ansi(self.snapshot()).replace("\r\n", "\n").replace("\r", "\n")
        lines = [line for line in text.split("\n") if line.strip()]
        return lines[-n:]

    def __len__(self) -> int:
        with self._lock:
            return len(self._chunks)
