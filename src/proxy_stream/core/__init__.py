"""Core relay implementation.

This package contains the connection-forwarding engine:
- Configuration record and lenient option parsing
- Admission gate bounding concurrent sessions
- Per-connection session lifecycle and forwarding pumps
- Threaded acceptor
- Statistics, dashboard and logging helpers
"""
