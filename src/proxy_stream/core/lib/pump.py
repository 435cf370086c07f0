"""Single-direction byte forwarding between the two sockets of a session.

A session runs two pumps on their own threads:

- upstream (client to destination), which applies the session's
  ``SkipFilter`` and drops the first ``skip_count`` chunks it reads;
- downstream (destination to client), which forwards everything.

A pump reads at most ``buffer_size`` bytes at a time and writes each chunk
out before reading the next, so memory use does not grow with the length
of the transfer and bytes leave in the order they arrived.

On EOF the pump half-closes its sink so the far end sees EOF too, and the
sibling keeps draining the other direction. On a read or write failure the
pump aborts the whole session, which shuts down both sockets and unblocks
the sibling.
"""

import contextlib
import socket
import threading
from enum import Enum
from typing import TYPE_CHECKING

from loguru import logger

from proxy_stream.core.exceptions import PumpError, ReadError, WriteError

if TYPE_CHECKING:
    from .session import RelaySession


class Direction(str, Enum):
    UPSTREAM = "client->destination"
    DOWNSTREAM = "destination->client"


class SkipFilter:
    """Drops a fixed number of leading chunks.

    Skipping works on whole read chunks, not on a byte count: a chunk is
    either dropped entirely or forwarded unmodified. How a client's writes
    map onto reads depends on the network, so the amount of data skipped
    can differ from what the client considers its first messages.
    """

    def __init__(self, limit: int) -> None:
        if limit < 0:
            raise ValueError(f"skip limit must be >= 0: {limit}")
        self.limit = limit
        self.count = 0

    @property
    def exhausted(self) -> bool:
        return self.count >= self.limit

    def should_drop(self) -> bool:
        """Consume one chunk from the budget, returning whether to drop it."""
        if self.exhausted:
            return False
        self.count += 1
        return True


class ForwardingPump:
    """Copies one socket into another until EOF, error or session teardown."""

    def __init__(
        self,
        direction: Direction,
        source: socket.socket,
        sink: socket.socket,
        session: "RelaySession",
        buffer_size: int = 4096,
        skip_filter: SkipFilter | None = None,
    ) -> None:
        self.direction = direction
        self.source = source
        self.sink = sink
        self.buffer_size = buffer_size
        self.skip_filter = skip_filter
        self.bytes_forwarded = 0
        self.chunks_skipped = 0
        self.error: PumpError | None = None
        self.done = threading.Event()
        self._session = session
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self.run,
            name=f"pump {self._session.peer} {self.direction.value}",
            daemon=True,
        )
        self._thread.start()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the pump thread, returning whether it finished."""
        if self._thread is not None:
            self._thread.join(timeout)
        return self.done.is_set()

    def run(self) -> None:
        """Pump until EOF or failure, then report back to the session."""
        try:
            self._forward()
        except PumpError as exc:
            if self._session.tearing_down:
                # Socket was shut down under us by the session
                logger.debug(f"{self._session.peer} {self.direction.value} stopped: {exc}")
            else:
                self.error = exc
                logger.error(f"{self._session.peer} {self.direction.value}: {exc}")
                self._session.cancel()
        finally:
            self.done.set()
            self._session.pump_finished(self)

    def _forward(self) -> None:
        stats = self._session.stats
        while True:
            try:
                chunk = self.source.recv(self.buffer_size)
            except OSError as exc:
                raise ReadError(f"Failed to read from {self._source_name}: {exc}") from exc

            if not chunk:
                logger.debug(f"{self._session.peer} {self.direction.value} reached EOF")
                self._half_close_sink()
                return

            self._session.mark_activity()

            if self.skip_filter is not None and self.skip_filter.should_drop():
                self.chunks_skipped += 1
                stats.record_skipped()
                logger.debug(
                    f"{self._session.peer} skipped chunk "
                    f"{self.skip_filter.count}/{self.skip_filter.limit} ({len(chunk)} bytes)"
                )
                continue

            try:
                self.sink.sendall(chunk)
            except OSError as exc:
                raise WriteError(f"Failed to write to {self._sink_name}: {exc}") from exc

            self.bytes_forwarded += len(chunk)
            self._session.mark_activity()
            if self.direction is Direction.UPSTREAM:
                stats.record_upstream(len(chunk))
            else:
                stats.record_downstream(len(chunk))

    def _half_close_sink(self) -> None:
        with contextlib.suppress(OSError):
            self.sink.shutdown(socket.SHUT_WR)

    @property
    def _source_name(self) -> str:
        return "client" if self.direction is Direction.UPSTREAM else "destination"

    @property
    def _sink_name(self) -> str:
        return "destination" if self.direction is Direction.UPSTREAM else "client"
