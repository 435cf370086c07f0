"""Relay configuration.

The configuration is resolved once at startup and never mutated afterwards;
every session reads the same ``RelayConfig`` instance without locking.

Numeric values coming from the command line are parsed leniently: anything
unparsable or out of range falls back to the documented default with a
warning, so a typo never prevents the relay from starting.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Final

from loguru import logger

DEFAULT_LISTEN_HOST: Final = "0.0.0.0"
DEFAULT_DESTINATION_HOST: Final = "127.0.0.1"
DEFAULT_SKIP_COUNT: Final = 0
DEFAULT_IDLE_TIMEOUT: Final = 30.0  # Seconds, 0 disables
DEFAULT_MAX_CONNECTIONS: Final = 1000
DEFAULT_CONNECT_TIMEOUT: Final = 10.0  # Seconds
DEFAULT_BUFFER_SIZE: Final = 4096

MAX_PORT: Final = 65535


class Profile(str, Enum):
    """Deployment profiles selecting default listen and destination ports."""

    WEB = "web"
    MAIL = "mail"

    @property
    def listen_port(self) -> int:
        return PROFILE_PORTS[self][0]

    @property
    def destination_port(self) -> int:
        return PROFILE_PORTS[self][1]


# profile: (listen port, destination port)
PROFILE_PORTS: Final = {
    Profile.WEB: (8888, 8080),
    Profile.MAIL: (30001, 110),
}


@dataclass(frozen=True)
class RelayConfig:
    """Resolved relay settings shared read-only by all sessions."""

    listen_port: int = Profile.WEB.listen_port
    destination_host: str = DEFAULT_DESTINATION_HOST
    destination_port: int = Profile.WEB.destination_port
    skip_count: int = DEFAULT_SKIP_COUNT
    idle_timeout: float = DEFAULT_IDLE_TIMEOUT
    max_connections: int = DEFAULT_MAX_CONNECTIONS
    listen_host: str = DEFAULT_LISTEN_HOST
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    buffer_size: int = DEFAULT_BUFFER_SIZE

    def __post_init__(self) -> None:
        if not 0 <= self.listen_port <= MAX_PORT:
            raise ValueError(f"listen_port out of range: {self.listen_port}")
        if not 1 <= self.destination_port <= MAX_PORT:
            raise ValueError(f"destination_port out of range: {self.destination_port}")
        if not self.destination_host:
            raise ValueError("destination_host must not be empty")
        if self.skip_count < 0:
            raise ValueError(f"skip_count must be >= 0: {self.skip_count}")
        if self.idle_timeout < 0:
            raise ValueError(f"idle_timeout must be >= 0: {self.idle_timeout}")
        if self.max_connections < 1:
            raise ValueError(f"max_connections must be >= 1: {self.max_connections}")
        if self.connect_timeout <= 0:
            raise ValueError(f"connect_timeout must be > 0: {self.connect_timeout}")
        if self.buffer_size < 1:
            raise ValueError(f"buffer_size must be >= 1: {self.buffer_size}")

    @property
    def destination(self) -> tuple[str, int]:
        return self.destination_host, self.destination_port

    @property
    def listen_address(self) -> tuple[str, int]:
        return self.listen_host, self.listen_port

    @property
    def idle_timeout_enabled(self) -> bool:
        return self.idle_timeout > 0


def parse_int(
    raw: str | int | None,
    default: int,
    name: str,
    minimum: int = 0,
    maximum: int | None = None,
) -> int:
    """Parse an integer option, falling back to ``default`` on bad input.

    Args:
        raw: Raw value from the command line (``None`` means not given)
        default: Value used when ``raw`` is missing, unparsable or out of range
        name: Option name used in the warning
        minimum: Smallest accepted value
        maximum: Largest accepted value, unbounded when ``None``

    Returns:
        int: The parsed value or ``default``
    """
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        logger.warning(f"Invalid {name} {raw!r}, using default {default}")
        return default
    if value < minimum or (maximum is not None and value > maximum):
        logger.warning(f"{name} {value} out of range, using default {default}")
        return default
    return value


def parse_float(
    raw: str | float | None,
    default: float,
    name: str,
    minimum: float = 0.0,
) -> float:
    """Parse a non-negative number of seconds, falling back to ``default``."""
    if raw is None:
        return default
    try:
        value = float(str(raw).strip())
    except ValueError:
        logger.warning(f"Invalid {name} {raw!r}, using default {default}")
        return default
    # Rejects nan and inf as well
    if not minimum <= value < float("inf"):
        logger.warning(f"{name} {value} out of range, using default {default}")
        return default
    return value


def build_config(
    profile: Profile = Profile.WEB,
    listen_port: str | None = None,
    destination_host: str | None = None,
    destination_port: str | None = None,
    skip_count: str | None = None,
    idle_timeout: str | None = None,
    max_connections: str | None = None,
    connect_timeout: str | None = None,
    listen_host: str | None = None,
) -> RelayConfig:
    """Assemble a ``RelayConfig`` from raw option values and a profile."""
    return RelayConfig(
        listen_port=parse_int(
            listen_port, profile.listen_port, "listen port", maximum=MAX_PORT
        ),
        destination_host=destination_host or DEFAULT_DESTINATION_HOST,
        destination_port=parse_int(
            destination_port,
            profile.destination_port,
            "target port",
            minimum=1,
            maximum=MAX_PORT,
        ),
        skip_count=parse_int(skip_count, DEFAULT_SKIP_COUNT, "skip count"),
        idle_timeout=parse_float(idle_timeout, DEFAULT_IDLE_TIMEOUT, "idle timeout"),
        max_connections=parse_int(
            max_connections, DEFAULT_MAX_CONNECTIONS, "max connections", minimum=1
        ),
        connect_timeout=parse_float(
            connect_timeout,
            DEFAULT_CONNECT_TIMEOUT,
            "connect timeout",
            minimum=0.001,
        ),
        listen_host=listen_host or DEFAULT_LISTEN_HOST,
    )
