import socket
import threading

import pytest

from proxy_stream.core.config import RelayConfig
from proxy_stream.core.lib import RelayServer, RelayStats
from proxy_stream.core.lib.session import HANDSHAKE_RESPONSE
from tests.support.servers import DestinationServer, recv_exactly


@pytest.fixture
def destination():
    server = DestinationServer()
    yield server
    server.close()


@pytest.fixture
def echo_destination():
    server = DestinationServer(echo=True)
    yield server
    server.close()


@pytest.fixture
def start_relay():
    """Start a relay on an ephemeral loopback port; stopped at teardown."""
    servers = []

    def start(**overrides) -> RelayServer:
        overrides.setdefault("listen_host", "127.0.0.1")
        overrides.setdefault("listen_port", 0)
        server = RelayServer(RelayConfig(**overrides), RelayStats())
        thread = threading.Thread(
            target=server.serve_forever, kwargs={"poll_interval": 0.05}, daemon=True
        )
        thread.start()
        servers.append(server)
        return server

    yield start

    for server in servers:
        server.shutdown()
        server.server_close()


@pytest.fixture
def connect():
    """Open client connections to a relay, closing them at teardown."""
    clients = []

    def open_client(server: RelayServer, read_handshake: bool = True) -> socket.socket:
        client = socket.create_connection(("127.0.0.1", server.port), timeout=5)
        client.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        clients.append(client)
        if read_handshake:
            assert recv_exactly(client, len(HANDSHAKE_RESPONSE)) == HANDSHAKE_RESPONSE
        return client

    yield open_client

    for client in clients:
        client.close()
