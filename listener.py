# listener.py

import socket
from dataclasses import dataclass

from loguru import logger

from config import BACKLOG, LISTEN_ADDR, LISTEN_PORT
from errors import FatalError


@dataclass
class ListenerConfig:
    """Configuration for the listening endpoint."""
    host: str = LISTEN_ADDR
    port: int = LISTEN_PORT
    backlog: int = BACKLOG

    def __post_init__(self):
        if not self.host:
            raise ValueError("Host cannot be empty")
        if not (0 <= self.port <= 65535):
            raise ValueError("Port must be between 0 and 65535")
        if self.backlog < 1:
            raise ValueError("Backlog must be at least 1")


def resolve(config: ListenerConfig):
    """Resolve a literal IPv4 address and numeric port, never touching DNS."""
    try:
        infos = socket.getaddrinfo(
            config.host,
            str(config.port),
            socket.AF_INET,
            socket.SOCK_STREAM,
            0,
            socket.AI_NUMERICHOST | socket.AI_NUMERICSERV,
        )
    except socket.gaierror as e:
        logger.error(f"error on getaddrinfo(): {e}")
        raise FatalError(f"cannot resolve {config.host}:{config.port}: {e}") from e
    return infos[0]


def open_listener(config: ListenerConfig) -> socket.socket:
    """
    Create, bind and listen on the configured endpoint.

    The returned socket lives for the whole daemon run.

    Raises:
        FatalError: on resolution, socket, bind or listen failure.
    """
    family, socktype, proto, _, address = resolve(config)

    try:
        sock = socket.socket(family, socktype, proto)
    except OSError as e:
        logger.error(f"error on socket(): {e}")
        raise FatalError(f"cannot create socket: {e}") from e

    try:
        # Allow immediate reuse of the port after restart
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(address)
    except OSError as e:
        sock.close()
        logger.error(f"error on bind(): {e}")
        raise FatalError(f"cannot bind {config.host}:{config.port}: {e}") from e

    try:
        sock.listen(config.backlog)
    except OSError as e:
        sock.close()
        logger.error(f"error on listen(): {e}")
        raise FatalError(f"cannot listen on {config.host}:{config.port}: {e}") from e

    host, port = sock.getsockname()[:2]
    logger.info(f"Listening on {host}:{port} (backlog {config.backlog})")
    return sock
