"""Utility functions and helpers."""

from proxy_stream.core.utils.log_config import LOG_DIR, configure_logging
from proxy_stream.core.utils.utils import format_bytes, format_peer

__all__ = ["configure_logging", "format_bytes", "format_peer", "LOG_DIR"]
