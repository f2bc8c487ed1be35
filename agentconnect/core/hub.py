# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Per-session fan-out of pty output to attached viewers.

Each viewer owns a bounded queue drained by its own sender task, so a slow
or dead connection only ever stalls itself. The hub lock guards the viewer
set and the scrollback; nothing awaits while holding it.

Message ordering per viewer: scrollback first, then live output in pty
order, then at most one exit message.
"""

import asyncio
import logging
import threading
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from agentconnect.core.scrollback import ScrollbackBuffer

logger = logging.getLogger(__name__)

Message = Dict[str, Any]
Sink = Callable[[Message], Awaitable[Any]]
EvictCallback = Callable[[], Awaitable[Any]]

DEFAULT_QUEUE_SIZE = 1000
DEFAULT_SEND_TIMEOUT = 5.0


def output_message(data: str) -> Message:
    return {"type": "output", "data": data}


def scrollback_message(data: str) -> Message:
    return {"type": "scrollback", "data": data}


def exit_message(exit_code: Optional[int], signal: Optional[str]) -> Message:
    return {"type": "exit", "exitCode": exit_code, "signal": signal}


class Viewer:
    """Attachment handle for one live connection.

    The viewer does not own the transport; it only holds the sink used to
    send messages and an optional callback used to close the transport when
    the hub evicts it.
    """

    def __init__(
        self,
        sink: Sink,
        on_evict: Optional[EvictCallback] = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        send_timeout: float = DEFAULT_SEND_TIMEOUT,
    ):
        self.id = uuid.uuid4().hex[:8]
        self._sink = sink
        self._on_evict = on_evict
        self._send_timeout = send_timeout
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self.exit_sent = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self, on_failure: Callable[["Viewer"], None]) -> None:
        """Start the sender task. Requires a running event loop."""
        self._task = asyncio.get_running_loop().create_task(self._run(on_failure))

    def offer(self, message: Message) -> bool:
        """Queue a message without blocking. False if closed or full."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    async def _run(self, on_failure: Callable[["Viewer"], None]) -> None:
        while True:
            message = await self._queue.get()
            try:
                if self._closed:
                    continue
                await asyncio.wait_for(self._sink(message), timeout=self._send_timeout)
            except asyncio.CancelledError:
                raise
            except asyncio.TimeoutError:
                logger.warning(f"Viewer {self.id} send timed out after {self._send_timeout}s")
                on_failure(self)
                return
            except Exception as e:
                logger.info(f"Viewer {self.id} send failed: {e}")
                on_failure(self)
                return
            finally:
                self._queue.task_done()

    def close(self) -> None:
        """Stop delivering; pending messages are dropped. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._task is not None and self._task is not _current_task():
            self._task.cancel()
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()

    async def disconnect(self) -> None:
        """Close the underlying transport via the eviction callback."""
        if self._on_evict is None:
            return
        try:
            await self._on_evict()
        except Exception as e:
            logger.debug(f"Viewer {self.id} eviction callback failed: {e}")

    async def drain(self) -> None:
        """Wait until every queued message has been sent or dropped."""
        await self._queue.join()


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class SessionHub:
    """Multiplexes one pty to many viewers and merges their input.

    The hub holds only non-owning viewer handles; the process and the
    scrollback belong to the session.
    """

    def __init__(
        self,
        session_id: str,
        process,
        scrollback: ScrollbackBuffer,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        send_timeout: float = DEFAULT_SEND_TIMEOUT,
    ):
        self.session_id = session_id
        self.process = process
        self.scrollback = scrollback
        self.queue_size = queue_size
        self.send_timeout = send_timeout
        self._viewers: Set[Viewer] = set()
        self._lock = threading.Lock()
        self._stopped = False
        self._exited = False
        self._closed = False
        self._evictions: Set[asyncio.Task] = set()

    @property
    def viewer_count(self) -> int:
        with self._lock:
            return len(self._viewers)

    @property
    def exited(self) -> bool:
        return self._exited

    def viewers(self) -> List[Viewer]:
        with self._lock:
            return list(self._viewers)

    def attach(self, sink: Sink, on_evict: Optional[EvictCallback] = None) -> Viewer:
        """Register a viewer and queue its scrollback replay.

        The snapshot and the registration happen under the hub lock, so every
        chunk is either part of the replay or delivered live, never both.
        """
        viewer = Viewer(
            sink,
            on_evict=on_evict,
            queue_size=self.queue_size,
            send_timeout=self.send_timeout,
        )
        with self._lock:
            viewer.offer(scrollback_message(self.scrollback.snapshot()))
            if self._stopped or self._exited:
                # The real exit code may be gone by now
                viewer.offer(exit_message(None, None))
                viewer.exit_sent = True
            if not self._closed:
                self._viewers.add(viewer)
        viewer.start(self._on_viewer_failure)
        logger.info(
            f"Viewer {viewer.id} attached to session {self.session_id} "
            f"({self.viewer_count} attached)"
        )
        return viewer

    def detach(self, viewer: Viewer) -> None:
        """Unregister a viewer. Never raises; unknown viewers are ignored."""
        with self._lock:
            known = viewer in self._viewers
            self._viewers.discard(viewer)
        viewer.close()
        if known:
            logger.info(f"Viewer {viewer.id} detached from session {self.session_id}")

    def evict(self, viewer: Viewer) -> None:
        """Detach a viewer that cannot keep up and close its transport."""
        self.detach(viewer)
        logger.warning(f"Evicted slow viewer {viewer.id} from session {self.session_id}")
        try:
            task = asyncio.get_running_loop().create_task(viewer.disconnect())
        except RuntimeError:
            return
        self._evictions.add(task)
        task.add_done_callback(self._evictions.discard)

    def _on_viewer_failure(self, viewer: Viewer) -> None:
        self.evict(viewer)

    def broadcast(self, chunk: str) -> None:
        """Record a chunk and offer it to every attached viewer."""
        with self._lock:
            if self._exited or self._closed:
                return
            self.scrollback.append(chunk)
            # Viewers that already got an exit message are replay-only
            targets = [v for v in self._viewers if not v.exit_sent]

        message = output_message(chunk)
        for viewer in targets:
            if not viewer.offer(message) and not viewer.closed:
                self.evict(viewer)

    def mark_stopped(self) -> None:
        """Note an explicit stop; later attaches get an immediate exit message."""
        with self._lock:
            self._stopped = True

    def on_exit(self, exit_code: Optional[int], signal: Optional[str]) -> None:
        """Deliver one exit message per viewer and stop accepting output."""
        with self._lock:
            if self._exited:
                return
            self._exited = True
            self._stopped = True
            targets = [v for v in self._viewers if not v.exit_sent]
            for viewer in targets:
                viewer.exit_sent = True

        message = exit_message(exit_code, signal)
        for viewer in targets:
            if not viewer.offer(message) and not viewer.closed:
                self.evict(viewer)
        logger.info(
            f"Session {self.session_id} exit delivered to {len(targets)} viewer(s) "
            f"(code={exit_code} signal={signal})"
        )

    async def handle_input(self, data: str) -> bool:
        """Forward viewer keystrokes to the pty. No-op once stopped."""
        if self._stopped or self._exited:
            return False
        return await self.process.write(data)

    def handle_resize(self, cols: int, rows: int) -> bool:
        """Forward a viewer resize to the pty. No-op once exited."""
        if self._exited:
            return False
        return self.process.resize(cols, rows)

    def close(self) -> None:
        """Detach every viewer and drop further output; used when the session is dropped."""
        with self._lock:
            self._closed = True
            targets = list(self._viewers)
            self._viewers.clear()
        for viewer in targets:
            viewer.close()
