# lifecycle.py

import os

from loguru import logger

from errors import FatalError
from logging_setup import setup_syslog


def _fork_and_exit_parent() -> None:
    """Fork and let only the child return."""
    try:
        pid = os.fork()
    except OSError as e:
        logger.error(f"error on fork(): {e}")
        raise FatalError(f"fork failed: {e}") from e

    if pid > 0:
        os._exit(0)


def detach_stdio() -> None:
    """Point stdin, stdout and stderr at /dev/null."""
    devnull = os.open(os.devnull, os.O_RDWR)
    try:
        for fd in (0, 1, 2):
            os.dup2(devnull, fd)
    finally:
        if devnull > 2:
            os.close(devnull)


def daemonize(program_name: str) -> None:
    """
    Turn the calling process into a detached background daemon.

    Double fork with a new session in between, so the surviving process is
    never a session leader and cannot reacquire a controlling terminal.
    The system log is opened in the first child, every step after that
    reports its failure there.

    Raises:
        FatalError: if any step fails.
    """
    _fork_and_exit_parent()
    setup_syslog(program_name)

    try:
        os.setsid()
    except OSError as e:
        logger.error(f"error on setsid(): {e}")
        raise FatalError(f"setsid failed: {e}") from e

    _fork_and_exit_parent()

    try:
        detach_stdio()
    except OSError as e:
        logger.error(f"error detaching standard streams: {e}")
        raise FatalError(f"detaching standard streams failed: {e}") from e

    try:
        os.chdir("/")
    except OSError as e:
        logger.error(f"error on chdir(): {e}")
        raise FatalError(f"chdir failed: {e}") from e

    os.umask(0)
    logger.debug(f"{program_name} daemonized with pid {os.getpid()}")
