"""
Asyncio TCP listener for Enecsys gateway connections.

Accepts gateway connections on the configured port and serves each one in
its own task: frames are read in a loop until the stream ends, and every
frame is run through :func:`~enecsys.src.pipeline.process_frame` in a worker
thread so a slow broker only holds up the connection it came from.

Designed to be robust:

- A failure while processing one frame is logged and counted; the
  connection keeps reading.
- End of stream or a read error closes only that connection.
- Shutdown stops accepting, cancels open connections and waits for them.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from enecsys.src.frames import read_frame
from enecsys.src.models import FrameOutcome
from enecsys.src.pipeline import process_frame

if TYPE_CHECKING:
    from enecsys.src.dispatcher import ResultDispatcher
    from enecsys.src.health import HealthWriter

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

STREAM_LIMIT: int = 64 * 1024
"""Longest unterminated line accepted before the connection is dropped."""


# ---------------------------------------------------------------------------
# Single-frame and per-connection handling (easily testable)
# ---------------------------------------------------------------------------


async def _process_once(
    frame: bytes,
    *,
    dispatcher: ResultDispatcher,
    health: HealthWriter | None,
    peer: object = None,
) -> FrameOutcome:
    """Process one frame off the event loop and record its outcome.

    Catches all exceptions so that the caller's read loop is never broken.

    Args:
        frame: Frame bytes without terminator.
        dispatcher: Destination for decoded samples.
        health: HealthWriter instance, or None to skip health writes.
        peer: Connection peer, attached to error log records.

    Returns:
        The frame's outcome; ``ERROR`` if processing raised.
    """
    try:
        outcome = await asyncio.to_thread(process_frame, frame, dispatcher=dispatcher)
    except Exception:
        logger.error("Frame processing error", exc_info=True, extra={"peer": peer})
        outcome = FrameOutcome.ERROR

    dispatcher.exporter.record_frame(outcome)
    if health is not None:
        try:
            health.record_frame(outcome)
        except Exception:
            logger.warning("Failed to write health file", exc_info=True)
    return outcome


async def handle_connection(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    *,
    dispatcher: ResultDispatcher,
    health: HealthWriter | None = None,
) -> int:
    """Serve one gateway connection until its stream ends.

    Args:
        reader: Connection stream reader.
        writer: Connection stream writer, closed on return.
        dispatcher: Destination for decoded samples.
        health: HealthWriter instance, or None to skip health writes.

    Returns:
        Number of frames read from the connection.
    """
    peer = writer.get_extra_info("peername")
    logger.info("Connection opened from %s", peer, extra={"peer": peer})
    if health is not None:
        with contextlib.suppress(OSError):
            health.connection_opened()

    frames = 0
    try:
        while True:
            frame = await read_frame(reader)
            if frame is None:
                break
            frames += 1
            await _process_once(frame, dispatcher=dispatcher, health=health, peer=peer)
    finally:
        writer.close()
        with contextlib.suppress(Exception):
            await writer.wait_closed()
        if health is not None:
            with contextlib.suppress(OSError):
                health.connection_closed()
        logger.info(
            "Connection from %s closed after %d frames", peer, frames, extra={"peer": peer}
        )

    return frames


# ---------------------------------------------------------------------------
# Listener
# ---------------------------------------------------------------------------


class FrameServer:
    """TCP listener that runs :func:`handle_connection` per connection.

    Args:
        host: Interface to bind.
        port: TCP port to bind; 0 picks a free port.
        dispatcher: Destination for decoded samples.
        health: HealthWriter instance, or None to skip health writes.
        limit: Stream reader line limit in bytes.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int,
        dispatcher: ResultDispatcher,
        health: HealthWriter | None = None,
        limit: int = STREAM_LIMIT,
    ) -> None:
        self._host = host
        self._port = port
        self._dispatcher = dispatcher
        self._health = health
        self._limit = limit
        self._server: asyncio.Server | None = None
        self._tasks: set[asyncio.Task[int]] = set()

    @property
    def port(self) -> int:
        """Port actually bound (useful when constructed with port 0)."""
        if self._server is None or not self._server.sockets:
            return self._port
        return self._server.sockets[0].getsockname()[1]

    @property
    def connection_count(self) -> int:
        """Number of connections currently being served."""
        return len(self._tasks)

    async def start(self) -> None:
        """Bind the listening socket and start accepting connections."""
        self._server = await asyncio.start_server(
            self._on_connect,
            self._host,
            self._port,
            limit=self._limit,
        )
        logger.info("Listening for gateway frames on %s:%d", self._host, self.port)

    async def _on_connect(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._tasks.add(task)  # type: ignore[arg-type]
        try:
            await handle_connection(
                reader,
                writer,
                dispatcher=self._dispatcher,
                health=self._health,
            )
        except Exception:
            logger.error("Connection handler crashed", exc_info=True)
        finally:
            if task is not None:
                self._tasks.discard(task)  # type: ignore[arg-type]

    async def serve_until(self, shutdown_event: asyncio.Event) -> None:
        """Accept connections until *shutdown_event* is set, then close."""
        if self._server is None:
            await self.start()
        await shutdown_event.wait()
        await self.close()

    async def close(self) -> None:
        """Stop accepting, cancel open connections and wait for them."""
        if self._server is None:
            return
        self._server.close()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self._server.wait_closed()
        self._server = None
        logger.info("Frame listener stopped")
