# logging_setup.py

import sys
import syslog

from loguru import logger

from config import SYSLOG_FACILITY

SYSLOG_PRIORITIES = {
    "TRACE": syslog.LOG_DEBUG,
    "DEBUG": syslog.LOG_DEBUG,
    "INFO": syslog.LOG_INFO,
    "SUCCESS": syslog.LOG_NOTICE,
    "WARNING": syslog.LOG_WARNING,
    "ERROR": syslog.LOG_ERR,
    "CRITICAL": syslog.LOG_CRIT,
}


def setup_console_logging(level: str = "INFO") -> None:
    """Log to stderr until the process detaches from its terminal."""
    logger.remove()
    logger.add(sys.stderr, level=level)


def syslog_sink(message) -> None:
    record = message.record
    priority = SYSLOG_PRIORITIES.get(record["level"].name, syslog.LOG_INFO)
    syslog.syslog(priority, record["message"])


def setup_syslog(ident: str, facility: int = SYSLOG_FACILITY, level: str = "INFO") -> None:
    """
    Route all further log records to the system log, tagged with `ident`.

    Replaces every other sink, console output is useless once daemonized.
    """
    syslog.openlog(ident, syslog.LOG_CONS, facility)
    logger.remove()
    logger.add(syslog_sink, level=level, format="{message}")
