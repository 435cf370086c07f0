"""Core relay library components."""

from .gate import AdmissionGate, Permit
from .pump import Direction, ForwardingPump, SkipFilter
from .relay_server import RelayServer, SessionHandler, run_server
from .relay_stats import RelayStats, relay_stats
from .session import HANDSHAKE_RESPONSE, RelaySession, SessionOutcome, SessionState

__all__ = [
    "AdmissionGate",
    "Direction",
    "ForwardingPump",
    "HANDSHAKE_RESPONSE",
    "Permit",
    "RelayServer",
    "RelaySession",
    "RelayStats",
    "relay_stats",
    "run_server",
    "SessionHandler",
    "SessionOutcome",
    "SessionState",
    "SkipFilter",
]
