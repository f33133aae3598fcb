import os
import sys

from loguru import logger

from capture import CaptureLoop
from errors import FatalError
from filename_policy import FilenamePolicy
from lifecycle import daemonize
from listener import ListenerConfig, open_listener
from logging_setup import setup_console_logging
from signal_controller import SignalController

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def main(argv=None) -> int:
    """Daemonize, listen and capture print jobs until a terminate signal arrives."""
    argv = sys.argv if argv is None else argv
    program_name = os.path.basename(argv[0]) if argv else "tcp-print2file"

    setup_console_logging()
    if len(argv) > 1:
        logger.warning(f"{program_name} does not take any arguments")

    controller = SignalController()
    try:
        controller.install()
        daemonize(program_name)
        server = open_listener(ListenerConfig())
    except FatalError as e:
        logger.error(f"Failed to start {program_name}: {e}")
        return EXIT_FAILURE

    logger.info(f"successfully started {program_name}")

    loop = CaptureLoop(server, FilenamePolicy(), controller)
    loop.run()
    controller.shutdown(loop)
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
