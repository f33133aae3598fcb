# capture.py

import os
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from loguru import logger

from config import BUFSIZE, OUTPUT_MODE, POLL_INTERVAL
from filename_policy import FilenamePolicy
from signal_controller import SignalController


class LoopState(Enum):
    """Which descriptors the capture loop currently holds."""

    IDLE = "idle"
    AWAITING_CONNECTION = "awaiting_connection"
    CONNECTED = "connected"
    CAPTURING = "capturing"

    @property
    def client_open(self) -> bool:
        return self in (LoopState.CONNECTED, LoopState.CAPTURING)

    @property
    def file_open(self) -> bool:
        return self is LoopState.CAPTURING


@dataclass
class CaptureConfig:
    """Settings for the capture loop."""
    chunk_size: int = BUFSIZE
    poll_interval: float = POLL_INTERVAL
    file_mode: int = OUTPUT_MODE

    def __post_init__(self):
        if self.chunk_size < 1:
            raise ValueError("Chunk size must be positive")
        if self.poll_interval <= 0:
            raise ValueError("Poll interval must be positive")


def write_all(fd: int, data) -> None:
    """Write every byte of `data`, retrying short writes."""
    with memoryview(data) as view:
        while view:
            written = os.write(fd, view)
            view = view[written:]


def scrub(buffer: bytearray) -> None:
    buffer[:] = bytes(len(buffer))


class CaptureLoop:
    """
    Accepts print clients one at a time and copies each stream into its own file.

    Every open/close updates `state` right away, `SignalController.shutdown`
    relies on it to know what is left to close.
    """

    def __init__(
        self,
        server: socket.socket,
        policy: FilenamePolicy,
        controller: SignalController,
        config: Optional[CaptureConfig] = None,
    ):
        self.server = server
        self.policy = policy
        self.controller = controller
        self.config = config or CaptureConfig()
        self.buffer = bytearray(self.config.chunk_size)

        self.state = LoopState.IDLE
        self.client: Optional[socket.socket] = None
        self.fd: Optional[int] = None
        self.path: Optional[str] = None

        self.server.settimeout(self.config.poll_interval)

    def run(self) -> None:
        """Serve jobs until a stop is requested."""
        logger.info("Waiting for print clients")
        while not self.controller.stop_requested:
            self.serve_one()
        logger.info("Capture loop stopped")

    def serve_one(self) -> Optional[str]:
        """
        Run one job: accept, name, open, copy, finish.

        Returns:
            The path of the captured file, or None if the job was abandoned
            or interrupted by a stop request. After an interruption the
            descriptors stay open for the shutdown path.
        """
        self.state = LoopState.AWAITING_CONNECTION
        client = self._accept()
        if client is None:
            self.state = LoopState.IDLE
            return None

        self.client = client
        self.state = LoopState.CONNECTED
        logger.info("accepted new print client")
        if self.controller.stop_requested:
            return None

        try:
            self.fd, self.path = self._open_output()
        except OSError as e:
            logger.warning(f"error opening printfile {e.filename}: {e.strerror}")
            self.close_client()
            return None
        self.state = LoopState.CAPTURING

        total = self._copy()
        if total is None:
            return None

        logger.info(f"done printing to {self.path} ({total} bytes)")
        path = self.path
        self._finish()
        return path

    def _accept(self) -> Optional[socket.socket]:
        while not self.controller.stop_requested:
            try:
                client, _ = self.server.accept()
            except socket.timeout:
                continue
            except OSError as e:
                logger.warning(f"error on accept(): {e}")
                return None
            client.settimeout(self.config.poll_interval)
            return client
        return None

    def _open_output(self) -> Tuple[int, str]:
        while True:
            name = self.policy.derive()
            flags = os.O_CREAT | os.O_WRONLY
            if name.fallback:
                flags |= os.O_EXCL
            logger.info(f"start printing to {name.path}")
            try:
                return os.open(name.path, flags, self.config.file_mode), name.path
            except FileExistsError:
                # lost the race between the existence probe and the create
                logger.warning(f"{name.path} appeared before it could be created")

    def _copy(self) -> Optional[int]:
        """Copy the client stream into the file; None if interrupted by a stop."""
        total = 0
        with memoryview(self.buffer) as view:
            while True:
                if self.controller.stop_requested:
                    return None
                try:
                    count = self.client.recv_into(self.buffer)
                except socket.timeout:
                    continue
                except OSError as e:
                    logger.warning(f"error reading from print client: {e}")
                    break
                if not count:
                    break
                try:
                    write_all(self.fd, view[:count])
                except OSError as e:
                    logger.warning(f"error writing to {self.path}: {e}")
                    break
                total += count
        return total

    def _finish(self) -> None:
        scrub(self.buffer)
        self.close_output()
        self.close_client()

    def close_output(self) -> None:
        fd, self.fd = self.fd, None
        self.state = LoopState.CONNECTED
        try:
            os.close(fd)
        except OSError as e:
            logger.warning(f"error closing printfile {self.path}: {e}")

    def close_client(self) -> None:
        client, self.client = self.client, None
        self.state = LoopState.IDLE
        try:
            client.close()
        except OSError as e:
            logger.warning(f"error closing client socket: {e}")

    def close_server(self) -> None:
        try:
            self.server.close()
        except OSError as e:
            logger.warning(f"error closing socket: {e}")
