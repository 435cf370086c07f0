"""Lifecycle of one relayed connection.

A ``RelaySession`` owns the accepted client socket and the socket it dials
to the destination. It moves through::

    ACCEPTED -> HANDSHAKING -> DIALING -> FORWARDING -> CLOSING -> DONE

The handshake is a fixed ``101 Switching Protocols`` response written
before anything else, whatever the client sent. Forwarding runs two
``ForwardingPump`` threads while the session thread waits for both of
them or for the idle deadline, whichever comes first. The deadline moves
forward every time a chunk is read in either direction; when it passes,
the session shuts both sockets down so the pumps return, and the outcome
is ``TIMED_OUT`` even if a pump finishes during teardown.

Failures are contained: handshake and dial errors end the session before
forwarding, pump errors end it during forwarding, and the client only ever
observes its socket closing.

Example:
    session = RelaySession(client_sock, client_addr, config)
    with gate.admit():
        outcome = session.run()
"""

import contextlib
import socket
import threading
import time
from enum import Enum
from typing import Final

from loguru import logger

from proxy_stream.core.config import RelayConfig
from proxy_stream.core.exceptions import DialError, HandshakeWriteError, RelayError
from proxy_stream.core.utils.utils import format_bytes, format_peer

from .pump import Direction, ForwardingPump, SkipFilter
from .relay_stats import RelayStats, relay_stats

HANDSHAKE_RESPONSE: Final = (
    b"HTTP/1.1 101 Switching Protocols\r\nContent-Length: 1048576000000\r\n\r\n"
)
PUMP_JOIN_TIMEOUT: Final = 2.0  # Seconds to wait for pumps after teardown


class SessionState(Enum):
    ACCEPTED = "accepted"
    HANDSHAKING = "handshaking"
    DIALING = "dialing"
    FORWARDING = "forwarding"
    CLOSING = "closing"
    DONE = "done"


class SessionOutcome(str, Enum):
    NORMAL = "normal"
    TIMED_OUT = "timed-out"
    ERRORED = "errored"


class RelaySession:
    """Relay one client connection to the configured destination."""

    def __init__(
        self,
        inbound: socket.socket,
        peer_address: tuple,
        config: RelayConfig,
        stats: RelayStats | None = None,
    ) -> None:
        self.inbound = inbound
        self.outbound: socket.socket | None = None
        self.peer_address = peer_address
        self.peer = format_peer(peer_address)
        self.config = config
        self.stats = stats if stats is not None else relay_stats
        self.skip_filter = SkipFilter(config.skip_count)
        self.state = SessionState.ACCEPTED
        self.outcome: SessionOutcome | None = None
        self.error: RelayError | None = None
        self.pumps: list[ForwardingPump] = []
        self.start_time = time.monotonic()

        self._last_activity = self.start_time
        self._activity_lock = threading.Lock()
        self._pending_pumps = 0
        self._pumps_lock = threading.Lock()
        self._pumps_done = threading.Event()
        self._teardown = threading.Event()

    @property
    def tearing_down(self) -> bool:
        """Whether the session has started shutting its sockets down."""
        return self._teardown.is_set()

    @property
    def bytes_upstream(self) -> int:
        return sum(p.bytes_forwarded for p in self.pumps if p.direction is Direction.UPSTREAM)

    @property
    def bytes_downstream(self) -> int:
        return sum(p.bytes_forwarded for p in self.pumps if p.direction is Direction.DOWNSTREAM)

    @property
    def idle_deadline(self) -> float:
        with self._activity_lock:
            return self._last_activity + self.config.idle_timeout

    def mark_activity(self) -> None:
        """Push the idle deadline forward."""
        with self._activity_lock:
            self._last_activity = time.monotonic()

    def run(self) -> SessionOutcome:
        """Drive the session to completion and return how it ended.

        The caller must hold an admission permit for the whole call.
        """
        self.stats.session_started()
        try:
            self.state = SessionState.HANDSHAKING
            self._send_handshake()

            self.state = SessionState.DIALING
            self._dial()

            self.state = SessionState.FORWARDING
            self.outcome = self._forward()
        except (HandshakeWriteError, DialError) as exc:
            self.error = exc
            self.outcome = SessionOutcome.ERRORED
            logger.error(f"Session {self.peer} aborted: {exc}")
        except Exception:
            self.outcome = SessionOutcome.ERRORED
            logger.exception(f"Unexpected error in session {self.peer}")
        finally:
            if self.outcome is None:
                self.outcome = SessionOutcome.ERRORED
            self.state = SessionState.CLOSING
            if not all(pump.done.is_set() for pump in self.pumps):
                self.cancel()
            self._close()
            self.state = SessionState.DONE
            self.stats.session_ended(self.outcome)
            self._log_summary()
        return self.outcome

    def cancel(self) -> None:
        """Shut down both sockets so any blocked pump returns."""
        self._teardown.set()
        for sock in (self.inbound, self.outbound):
            if sock is not None:
                with contextlib.suppress(OSError):
                    sock.shutdown(socket.SHUT_RDWR)

    def pump_finished(self, pump: ForwardingPump) -> None:
        with self._pumps_lock:
            self._pending_pumps -= 1
            if self._pending_pumps == 0:
                self._pumps_done.set()

    def _send_handshake(self) -> None:
        try:
            self.inbound.sendall(HANDSHAKE_RESPONSE)
        except OSError as exc:
            raise HandshakeWriteError(f"Failed to send handshake to {self.peer}: {exc}") from exc

    def _dial(self) -> None:
        host, port = self.config.destination
        try:
            outbound = socket.create_connection((host, port), timeout=self.config.connect_timeout)
        except OSError as exc:
            raise DialError(f"Failed to connect to {host}:{port}: {exc}") from exc
        outbound.settimeout(None)
        self.outbound = outbound
        logger.debug(f"Session {self.peer} connected to {host}:{port}")

    def _forward(self) -> SessionOutcome:
        self.mark_activity()
        self.pumps = [
            ForwardingPump(
                Direction.UPSTREAM,
                self.inbound,
                self.outbound,
                self,
                buffer_size=self.config.buffer_size,
                skip_filter=self.skip_filter,
            ),
            ForwardingPump(
                Direction.DOWNSTREAM,
                self.outbound,
                self.inbound,
                self,
                buffer_size=self.config.buffer_size,
            ),
        ]
        self._pending_pumps = len(self.pumps)
        for pump in self.pumps:
            pump.start()

        finished = self._wait_for_pumps()
        if not finished:
            logger.warning(
                f"Session {self.peer} idle for {self.config.idle_timeout:g}s, closing"
            )
            self.cancel()

        for pump in self.pumps:
            if not pump.join(PUMP_JOIN_TIMEOUT):
                logger.warning(f"Pump {pump.direction.value} for {self.peer} did not stop")

        if not finished:
            return SessionOutcome.TIMED_OUT
        for pump in self.pumps:
            if pump.error is not None:
                self.error = pump.error
                return SessionOutcome.ERRORED
        return SessionOutcome.NORMAL

    def _wait_for_pumps(self) -> bool:
        """Wait until both pumps finish or the session goes idle.

        Returns:
            bool: True if the pumps finished first, False on idle timeout
        """
        if not self.config.idle_timeout_enabled:
            self._pumps_done.wait()
            return True

        while True:
            remaining = self.idle_deadline - time.monotonic()
            if remaining <= 0:
                return self._pumps_done.is_set()
            if self._pumps_done.wait(remaining):
                return True

    def _close(self) -> None:
        for sock in (self.outbound, self.inbound):
            if sock is None:
                continue
            with contextlib.suppress(OSError):
                sock.shutdown(socket.SHUT_WR)
            sock.close()

    def _log_summary(self) -> None:
        duration = time.monotonic() - self.start_time
        message = (
            f"Connection terminated for {self.peer} ({self.outcome.value}) after "
            f"{duration:.1f}s: {format_bytes(self.bytes_upstream)} to destination, "
            f"{format_bytes(self.bytes_downstream)} to client"
        )
        if self.skip_filter.limit:
            message += f", {self.skip_filter.count} chunks skipped"
        level = "INFO" if self.outcome is SessionOutcome.NORMAL else "WARNING"
        logger.log(level, message)
