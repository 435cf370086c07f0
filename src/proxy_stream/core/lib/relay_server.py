"""Listening side of the relay.

``RelayServer`` accepts connections on ``listen_host:listen_port`` and hands
each one to a ``SessionHandler`` on its own thread, so a slow or blocked
session never holds up the accept loop. Before doing anything with the
client, the handler waits for a permit from the server's
``AdmissionGate``; the permit is returned when the session ends, however
it ends.

Example:
    # Relay 0.0.0.0:8888 to 127.0.0.1:8080
    run_server(RelayConfig(listen_port=8888, destination_port=8080))
"""

import socket
import socketserver

from loguru import logger

from proxy_stream.core.config import RelayConfig
from proxy_stream.core.exceptions import AcceptError, BindError
from proxy_stream.core.utils.utils import format_peer

from .gate import AdmissionGate
from .relay_stats import RelayStats, relay_stats
from .relay_ui import create_relay_ui
from .session import RelaySession


class SessionHandler(socketserver.BaseRequestHandler):
    """Run one ``RelaySession`` under an admission permit."""

    server: "RelayServer"

    def handle(self) -> None:
        server = self.server
        session = RelaySession(self.request, self.client_address, server.config, server.stats)
        logger.info(f"Connection received from {session.peer}")

        if server.gate.available == 0:
            logger.debug(
                f"All {server.gate.capacity} slots busy, {session.peer} waiting for admission"
            )
        with server.gate.admit():
            session.run()


class RelayServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    """Threaded TCP server relaying every connection to one destination."""

    allow_reuse_address = True
    daemon_threads = True
    request_queue_size = 128

    def __init__(
        self,
        config: RelayConfig,
        stats: RelayStats | None = None,
        bind_and_activate: bool = True,
    ) -> None:
        self.config = config
        self.stats = stats if stats is not None else relay_stats
        self.gate = AdmissionGate(config.max_connections)
        super().__init__(config.listen_address, SessionHandler, bind_and_activate)

    @property
    def port(self) -> int:
        return self.server_address[1]

    def server_bind(self) -> None:
        """Bind the listen socket, turning failures into ``BindError``."""
        try:
            super().server_bind()
        except OSError as exc:
            raise BindError(f"Cannot listen on {format_peer(self.server_address)}: {exc}") from exc

    def server_activate(self) -> None:
        try:
            super().server_activate()
        except OSError as exc:
            raise BindError(f"Cannot listen on {format_peer(self.server_address)}: {exc}") from exc

    def get_request(self) -> tuple[socket.socket, tuple]:
        """Accept a connection, logging failures before socketserver drops them."""
        try:
            return super().get_request()
        except OSError as exc:
            logger.warning(f"Failed to accept connection: {exc}")
            raise AcceptError(exc.errno, str(exc)) from exc

    def handle_error(self, request, client_address) -> None:
        logger.exception(f"Unhandled error for {format_peer(client_address)}")


def run_server(
    config: RelayConfig,
    stats: RelayStats | None = None,
    dashboard: bool = False,
) -> None:
    """Serve until interrupted.

    Args:
        config: Resolved relay configuration
        stats: Statistics sink, defaults to the module-level ``relay_stats``
        dashboard: Show the live terminal dashboard

    Raises:
        BindError: If the listen socket cannot be bound
    """
    stats = stats if stats is not None else relay_stats
    server = RelayServer(config, stats)
    ui = create_relay_ui(config, stats) if dashboard else None
    try:
        logger.info(f"Server started on port: {server.port}")
        logger.info(
            f"Redirecting requests to: {config.destination_host} at port {config.destination_port}"
        )
        logger.debug(
            f"Skipping {config.skip_count} chunks, idle timeout {config.idle_timeout:g}s, "
            f"max {config.max_connections} connections"
        )
        if ui is not None:
            ui.start()
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Relay stopping")
    finally:
        if ui is not None:
            ui.stop()
        server.server_close()
        logger.info("Server closed")
