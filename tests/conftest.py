import os
import signal
import socket
import sys
import threading
import time

import pytest
from loguru import logger

from capture import CaptureConfig, CaptureLoop
from filename_policy import TIMESTAMP_FORMAT, FilenamePolicy
from listener import ListenerConfig, open_listener
from signal_controller import SIGNAL_POLICY, SignalController

BASE_TIME = 1_700_000_000.0


class StepClock:
    """Clock that advances by `step` seconds on every read."""

    def __init__(self, start: float = BASE_TIME, step: float = 0.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        current = self.now
        self.now += self.step
        return current


def expected_name(prefix: str, timestamp: float) -> str:
    return prefix + time.strftime(TIMESTAMP_FORMAT, time.localtime(timestamp))


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def log_messages():
    records = []
    handler_id = logger.add(
        lambda message: records.append((message.record["level"].name, message.record["message"])),
        level="DEBUG",
    )
    yield records
    try:
        logger.remove(handler_id)
    except ValueError:
        pass


@pytest.fixture
def restore_signals():
    saved = {signum: signal.getsignal(signum) for signum in SIGNAL_POLICY}
    yield
    for signum, handler in saved.items():
        signal.signal(signum, handler)


@pytest.fixture
def prefix(tmp_path) -> str:
    return str(tmp_path) + "/"


@pytest.fixture
def server():
    sock = open_listener(ListenerConfig(host="127.0.0.1", port=0, backlog=4))
    yield sock
    sock.close()


@pytest.fixture
def port(server) -> int:
    return server.getsockname()[1]


@pytest.fixture
def controller() -> SignalController:
    return SignalController()


@pytest.fixture
def make_loop(server, controller, prefix):
    def _make(clock=None, policy=None, chunk_size=512):
        policy = policy or FilenamePolicy(prefix=prefix, clock=clock or StepClock())
        config = CaptureConfig(chunk_size=chunk_size, poll_interval=0.05)
        return CaptureLoop(server, policy, controller, config)

    return _make


def run_client(target, *args) -> threading.Thread:
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


def send_job(port: int, payload: bytes) -> None:
    with socket.create_connection(("127.0.0.1", port), timeout=5) as conn:
        conn.sendall(payload)


def wait_for_size(path: str, size: int, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if os.path.exists(path) and os.path.getsize(path) >= size:
            return
        time.sleep(0.01)
    raise AssertionError(f"{path} never reached {size} bytes")
