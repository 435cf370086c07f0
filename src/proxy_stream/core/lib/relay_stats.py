"""Statistics tracking for the relay.

Sessions report into a ``RelayStats`` instance as they start, forward data
and finish. The dashboard and the terminal log lines read from it.

All updates go through an internal lock, so pumps and sessions on different
threads can report concurrently.

Example:
    from .relay_stats import relay_stats

    relay_stats.session_started()
    relay_stats.record_upstream(1024)
    relay_stats.session_ended(SessionOutcome.NORMAL)
"""

import threading
import time
from collections import Counter, deque
from datetime import UTC, datetime

BANDWIDTH_WINDOW = 5  # Seconds averaged by get_bandwidth


class RelayStats:
    """Thread-safe counters for sessions and forwarded bytes."""

    def __init__(self) -> None:
        self.active_sessions = 0
        self.total_sessions = 0
        self.bytes_upstream = 0
        self.bytes_downstream = 0
        self.chunks_skipped = 0
        self.outcomes: Counter[str] = Counter()
        # (wall-clock second, bytes forwarded during it), last 60 seconds
        self.bandwidth_history: deque[list[int]] = deque(maxlen=60)
        self.start_time = datetime.now(tz=UTC)
        self._lock = threading.Lock()

    def session_started(self) -> None:
        """Count a session that has been admitted."""
        with self._lock:
            self.active_sessions += 1
            self.total_sessions += 1

    def session_ended(self, outcome) -> None:
        """Count a finished session under its outcome.

        Args:
            outcome: ``SessionOutcome`` member or its string value
        """
        with self._lock:
            self.active_sessions -= 1
            self.outcomes[str(getattr(outcome, "value", outcome))] += 1

    def record_upstream(self, count: int) -> None:
        """Record bytes forwarded client to destination."""
        with self._lock:
            self.bytes_upstream += count
            self._add_to_history(count)

    def record_downstream(self, count: int) -> None:
        """Record bytes forwarded destination to client."""
        with self._lock:
            self.bytes_downstream += count
            self._add_to_history(count)

    def _add_to_history(self, count: int) -> None:
        # Caller holds the lock
        second = int(time.time())
        if self.bandwidth_history and self.bandwidth_history[-1][0] == second:
            self.bandwidth_history[-1][1] += count
        else:
            self.bandwidth_history.append([second, count])

    def record_skipped(self) -> None:
        with self._lock:
            self.chunks_skipped += 1

    @property
    def total_bytes(self) -> int:
        return self.bytes_upstream + self.bytes_downstream

    def get_bandwidth(self) -> float:
        """Calculate current bandwidth usage in bytes per second.

        Returns:
            float: Average over the last ``BANDWIDTH_WINDOW`` seconds
        """
        with self._lock:
            oldest = int(time.time()) - BANDWIDTH_WINDOW + 1
            recent = sum(count for second, count in self.bandwidth_history if second >= oldest)
        return recent / BANDWIDTH_WINDOW

    def outcome_count(self, outcome) -> int:
        with self._lock:
            return self.outcomes[str(getattr(outcome, "value", outcome))]


# Default statistics object used by the CLI
relay_stats = RelayStats()
