"""Admission control for relay sessions.

The gate bounds how many sessions are serviced at once. Every session has
to hold a ``Permit`` before it writes the handshake or dials the
destination; when all permits are taken, new sessions wait in
``acquire()`` while the acceptor keeps accepting.

Example:
    gate = AdmissionGate(max_connections=100)

    with gate.admit():
        session.run()
"""

import contextlib
import threading
from collections.abc import Iterator

from proxy_stream.core.exceptions import AdmissionError


class Permit:
    """One occupied slot in an ``AdmissionGate``."""

    __slots__ = ("_gate", "_released", "_lock")

    def __init__(self, gate: "AdmissionGate") -> None:
        self._gate = gate
        self._released = False
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Return the slot to the gate.

        Raises:
            AdmissionError: If this permit was already released
        """
        with self._lock:
            if self._released:
                raise AdmissionError("permit released twice")
            self._released = True
        self._gate._release_slot()


class AdmissionGate:
    """Counting semaphore sized to the maximum number of concurrent sessions."""

    def __init__(self, max_connections: int) -> None:
        if max_connections < 1:
            raise ValueError(f"max_connections must be >= 1: {max_connections}")
        self.capacity = max_connections
        self._semaphore = threading.BoundedSemaphore(max_connections)
        self._in_use = 0
        self._lock = threading.Lock()

    @property
    def in_use(self) -> int:
        """Number of permits currently held."""
        with self._lock:
            return self._in_use

    @property
    def available(self) -> int:
        return self.capacity - self.in_use

    def acquire(self, timeout: float | None = None) -> Permit | None:
        """Wait for a free slot.

        Args:
            timeout: Seconds to wait, ``None`` waits indefinitely

        Returns:
            Permit | None: The permit, or ``None`` if the timeout elapsed
        """
        if not self._semaphore.acquire(timeout=timeout):
            return None
        with self._lock:
            self._in_use += 1
        return Permit(self)

    def _release_slot(self) -> None:
        with self._lock:
            self._in_use -= 1
        self._semaphore.release()

    @contextlib.contextmanager
    def admit(self) -> Iterator[Permit]:
        """Hold a permit for the duration of the ``with`` block."""
        permit = self.acquire()
        try:
            yield permit
        finally:
            if not permit.released:
                permit.release()
