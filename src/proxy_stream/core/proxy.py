"""Public entry point of the relay core.

Example:
    from proxy_stream.core.proxy import RelayConfig, run_server

    # Relay 0.0.0.0:30001 to a local POP3 server, dropping the first chunk
    run_server(RelayConfig(listen_port=30001, destination_port=110, skip_count=1))
"""

from .config import RelayConfig
from .lib import RelayServer, run_server

__all__ = ["RelayConfig", "RelayServer", "run_server"]
