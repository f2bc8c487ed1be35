# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Child process attached to a pseudo-terminal.

One PtyProcess owns exactly one child. Output is read in the default
executor (so a busy child never blocks the event loop), decoded as UTF-8
and handed to the output callback; the exit callback fires exactly once.

Writes and resizes after the child has exited are dropped, not raised.
"""

import asyncio
import codecs
import fcntl
import logging
import os
import pty
import select
import signal
import struct
import subprocess
import termios
from typing import Callable, Dict, List, Optional, Union

from agentconnect.core.errors import SpawnError

logger = logging.getLogger(__name__)

READ_SIZE = 4096
SELECT_TIMEOUT = 0.1

OutputCallback = Callable[[str], None]
ExitCallback = Callable[[Optional[int], Optional[str]], None]


def set_winsize(fd: int, cols: int, rows: int) -> None:
    """Set terminal size on a pty fd using the TIOCSWINSZ ioctl."""
    winsize = struct.pack("HHHH", rows, cols, 0, 0)
    fcntl.ioctl(fd, termios.TIOCSWINSZ, winsize)


def describe_returncode(returncode: Optional[int]) -> tuple:
    """Split a Popen returncode into (exit_code, signal_name)."""
    if returncode is None:
        return None, None
    if returncode >= 0:
        return returncode, None
    try:
        return None, signal.Signals(-returncode).name
    except ValueError:
        return None, f"SIG{-returncode}"


class PtyProcess:
    """A process running on the slave side of a fresh pty.

    Uses subprocess.Popen (not os.fork) with start_new_session so the child
    leads its own process group and kill() can take down the whole tree.
    """

    def __init__(
        self,
        command: str,
        args: Optional[List[str]] = None,
        cwd: str = ".",
        cols: int = 120,
        rows: int = 30,
        env: Optional[Dict[str, str]] = None,
        term: str = "xterm-256color",
    ):
        self.command = command
        self.args = list(args or [])
        self.cwd = cwd
        self.cols = cols
        self.rows = rows
        self.env = dict(env or {})
        self.term = term

        self._proc: Optional[subprocess.Popen] = None
        self._master_fd = -1
        self._pgid = 0
        self._read_task: Optional[asyncio.Task] = None
        self._write_lock: Optional[asyncio.Lock] = None
        self._exit_event: Optional[asyncio.Event] = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._on_output: Optional[OutputCallback] = None
        self._on_exit: Optional[ExitCallback] = None
        self._exited = False
        self.exit_code: Optional[int] = None
        self.exit_signal: Optional[str] = None

    def set_on_output(self, callback: OutputCallback) -> None:
        """Receive every decoded output chunk. Must be set before start()."""
        self._on_output = callback

    def set_on_exit(self, callback: ExitCallback) -> None:
        """Receive (exit_code, signal_name) once when the child is gone."""
        self._on_exit = callback

    async def start(self) -> None:
        """Spawn the child and begin reading its output.

        Raises:
            SpawnError: if the working directory is unusable or the
                executable cannot be started.
        """
        if not os.path.isdir(self.cwd):
            raise SpawnError(f"Working directory does not exist: {self.cwd}", cwd=self.cwd)

        master_fd, slave_fd = pty.openpty()
        env = {**os.environ, **self.env, "TERM": self.term}

        try:
            set_winsize(slave_fd, self.cols, self.rows)
            self._proc = subprocess.Popen(
                [self.command, *self.args],
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                cwd=self.cwd,
                env=env,
                start_new_session=True,  # Creates new process group
            )
        except (OSError, subprocess.SubprocessError) as e:
            os.close(master_fd)
            raise SpawnError(f"Failed to start {self.command!r}: {e}", cwd=self.cwd) from e
        finally:
            # Parent always closes slave fd
            os.close(slave_fd)

        self._master_fd = master_fd
        try:
            self._pgid = os.getpgid(self._proc.pid)
        except ProcessLookupError:
            self._pgid = self._proc.pid

        self._write_lock = asyncio.Lock()
        self._exit_event = asyncio.Event()
        self._read_task = asyncio.create_task(self._read_loop())

        logger.info(
            f"PTY started: pid={self._proc.pid} cwd={self.cwd} "
            f"cmd={' '.join([self.command, *self.args])}"
        )

    @property
    def pid(self) -> Optional[int]:
        return self._proc.pid if self._proc else None

    @property
    def alive(self) -> bool:
        return self._proc is not None and not self._exited

    async def _read_loop(self) -> None:
        """Read from the pty master until EOF and broadcast decoded chunks."""
        loop = asyncio.get_running_loop()
        try:
            while True:
                data = await loop.run_in_executor(None, self._blocking_read)
                if data is None:
                    break
                if not data:
                    continue
                text = self._decoder.decode(data)
                if text:
                    self._emit_output(text)
        except Exception as e:
            logger.error(f"PTY read error (pid={self.pid}): {e}")
        finally:
            tail = self._decoder.decode(b"", final=True)
            if tail:
                self._emit_output(tail)
            await self._finish()

    def _blocking_read(self) -> Optional[bytes]:
        """Blocking read with timeout. None means the pty is done."""
        try:
            ready, _, _ = select.select([self._master_fd], [], [], SELECT_TIMEOUT)
            if ready:
                data = os.read(self._master_fd, READ_SIZE)
                return data or None
        except (OSError, ValueError):
            # EIO once the slave side is closed on Linux
            return None
        # Nothing pending and the child is gone: background children may
        # still hold the slave open, do not wait for them
        if self._proc is not None and self._proc.poll() is not None:
            return None
        return b""

    def _emit_output(self, text: str) -> None:
        if self._on_output is None:
            return
        try:
            self._on_output(text)
        except Exception:
            logger.exception(f"Error in output callback for pid={self.pid}")

    async def _finish(self) -> None:
        """Reap the child, close the master fd and fire the exit callback."""
        if self._exited:
            return
        loop = asyncio.get_running_loop()
        returncode = None
        if self._proc is not None:
            try:
                returncode = await loop.run_in_executor(None, self._proc.wait)
            except Exception as e:
                logger.warning(f"Error reaping pid={self.pid}: {e}")
                returncode = self._proc.poll()

        self.exit_code, self.exit_signal = describe_returncode(returncode)
        self._exited = True

        # In-flight writes finish (or fail with EIO) before the fd goes away
        async with self._write_lock:
            if self._master_fd >= 0:
                try:
                    os.close(self._master_fd)
                except OSError:
                    pass
                self._master_fd = -1

        logger.info(
            f"PTY exited: pid={self.pid} code={self.exit_code} signal={self.exit_signal}"
        )
        self._exit_event.set()
        if self._on_exit is not None:
            try:
                self._on_exit(self.exit_code, self.exit_signal)
            except Exception:
                logger.exception(f"Error in exit callback for pid={self.pid}")

    async def write(self, data: Union[str, bytes]) -> bool:
        """Write input to the child.

        Writes are serialized in arrival order and each one is written
        whole. Returns False (without raising) once the child has exited.
        """
        if not self.alive:
            return False
        payload = data.encode("utf-8") if isinstance(data, str) else data
        if not payload:
            return True

        loop = asyncio.get_running_loop()
        async with self._write_lock:
            if not self.alive or self._master_fd < 0:
                return False
            try:
                await loop.run_in_executor(None, self._write_all, self._master_fd, payload)
                return True
            except OSError as e:
                logger.debug(f"PTY write dropped (pid={self.pid}): {e}")
                return False

    @staticmethod
    def _write_all(fd: int, payload: bytes) -> None:
        view = memoryview(payload)
        while view:
            written = os.write(fd, view)
            view = view[written:]

    def resize(self, cols: int, rows: int) -> bool:
        """Resize the terminal. Returns False if the child has exited."""
        if not self.alive or self._master_fd < 0:
            return False
        try:
            set_winsize(self._master_fd, cols, rows)
        except OSError as e:
            logger.debug(f"PTY resize dropped (pid={self.pid}): {e}")
            return False
        self.cols, self.rows = cols, rows
        # No controlling terminal in the child, so deliver SIGWINCH ourselves
        try:
            os.killpg(self._pgid, signal.SIGWINCH)
        except OSError:
            pass
        return True

    def kill(self, sig: int = signal.SIGTERM) -> bool:
        """Signal the child's process group without waiting for it to exit.

        Returns False if the child has already exited.
        """
        if not self.alive:
            return False
        try:
            os.killpg(self._pgid, sig)
            logger.info(f"Sent {signal.Signals(sig).name} to pgid={self._pgid}")
        except ProcessLookupError:
            logger.debug(f"Process group already gone: {self._pgid}")
        except OSError as e:
            logger.warning(f"Error signalling pgid={self._pgid}: {e}")
        return True

    async def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Wait until the exit callback has fired and return the exit code.

        Raises asyncio.TimeoutError if the child outlives ``timeout``.
        """
        if self._exit_event is None:
            return None
        await asyncio.wait_for(self._exit_event.wait(), timeout=timeout)
        return self.exit_code
