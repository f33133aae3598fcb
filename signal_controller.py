# signal_controller.py

import os
import signal
from enum import Enum
from typing import Dict, Optional

from loguru import logger

from errors import FatalError


class SignalAction(Enum):
    """What the daemon does when a signal arrives."""

    TERMINATE = "terminate"
    IGNORE = "ignore"


SIGNAL_POLICY: Dict[signal.Signals, SignalAction] = {
    signal.SIGHUP: SignalAction.TERMINATE,
    signal.SIGINT: SignalAction.TERMINATE,
    signal.SIGTERM: SignalAction.TERMINATE,
    # terminal job control, irrelevant without a terminal
    signal.SIGTSTP: SignalAction.IGNORE,
    signal.SIGTTIN: SignalAction.IGNORE,
    signal.SIGTTOU: SignalAction.IGNORE,
}


class SignalController:
    """
    Turns terminate signals into a stop request and performs the shutdown.

    The handler only records the signal number. The capture loop polls
    `stop_requested` at its safe points and returns, after which `shutdown`
    closes whatever the loop state says is still open.
    """

    def __init__(self, policy: Optional[Dict[signal.Signals, SignalAction]] = None):
        self.policy = policy if policy is not None else SIGNAL_POLICY
        self.received: Optional[int] = None

    @property
    def stop_requested(self) -> bool:
        return self.received is not None

    def handle(self, signum: int, frame=None) -> None:
        # Runs between bytecodes of the main thread: no logging, no I/O.
        self.received = signum

    def install(self) -> None:
        """
        Install handlers for every signal in the policy.

        Raises:
            FatalError: if a handler cannot be installed.
        """
        for signum, action in self.policy.items():
            handler = self.handle if action is SignalAction.TERMINATE else signal.SIG_IGN
            try:
                signal.signal(signum, handler)
            except (OSError, ValueError) as e:
                logger.error(f"error installing signal handler for {signal.Signals(signum).name}: {e}")
                raise FatalError(f"cannot install handler for {signum}: {e}") from e

    def shutdown(self, loop) -> None:
        """Flush filesystem buffers and close every descriptor the loop still holds."""
        if self.received is not None:
            name = signal.Signals(self.received).name
            logger.success(f"received signal {name}, will close all open file descriptors and exit")
        os.sync()

        if loop.state.file_open:
            loop.close_output()
        if loop.state.client_open:
            loop.close_client()
        loop.close_server()
