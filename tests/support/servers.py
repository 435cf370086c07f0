"""Loopback helpers standing in for relay destinations and clients."""

import contextlib
import queue
import socket
import threading
import time


class DestinationConnection:
    """One connection accepted by a ``DestinationServer``."""

    def __init__(self, sock: socket.socket, echo: bool) -> None:
        self.sock = sock
        self.echo = echo
        self.data = bytearray()
        self.eof = threading.Event()
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def received(self) -> bytes:
        with self._lock:
            return bytes(self.data)

    def _serve(self):
        try:
            while True:
                chunk = self.sock.recv(65536)
                if not chunk:
                    break
                with self._lock:
                    self.data.extend(chunk)
                if self.echo:
                    self.sock.sendall(chunk)
        except OSError:
            pass
        finally:
            self.eof.set()
            with contextlib.suppress(OSError):
                self.sock.shutdown(socket.SHUT_WR)
            self.sock.close()


class DestinationServer:
    """Accepts loopback connections, recording (and optionally echoing) what arrives.

    Each connection is closed once its peer sends EOF.
    """

    def __init__(self, echo: bool = False) -> None:
        self.echo = echo
        self._server = socket.create_server(("127.0.0.1", 0))
        self.port = self._server.getsockname()[1]
        self.connections: queue.Queue[DestinationConnection] = queue.Queue()
        self.accepted = 0
        self._running = True
        self._thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._thread.start()

    def _accept_loop(self):
        while self._running:
            try:
                sock, _ = self._server.accept()
            except OSError:
                break
            self.accepted += 1
            self.connections.put(DestinationConnection(sock, self.echo))

    def next_connection(self, timeout: float = 5.0) -> DestinationConnection:
        return self.connections.get(timeout=timeout)

    def close(self):
        self._running = False
        with contextlib.suppress(OSError):
            self._server.shutdown(socket.SHUT_RDWR)
        self._server.close()
        self._thread.join(timeout=2)


def closed_port() -> int:
    """Return a loopback port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def recv_exactly(sock: socket.socket, count: int, timeout: float = 5.0) -> bytes:
    sock.settimeout(timeout)
    data = bytearray()
    while len(data) < count:
        chunk = sock.recv(count - len(data))
        if not chunk:
            break
        data.extend(chunk)
    return bytes(data)


def recv_until_eof(sock: socket.socket, timeout: float = 5.0) -> bytes:
    sock.settimeout(timeout)
    data = bytearray()
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            return bytes(data)
        data.extend(chunk)


def wait_for(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
