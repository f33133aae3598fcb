# config.py

import syslog

LISTEN_ADDR = "127.0.0.1"
LISTEN_PORT = 12345
BACKLOG = 4  # pending connections queued by the kernel

BUFSIZE = 512
PRINTOUT_PREFIX = "/usb/tcp_fileprinter/"
# PRINTOUT_PREFIX = "/tmp/print"
OUTPUT_MODE = 0o600

# Upper bound on how long accept/recv block before the stop flag is re-checked
POLL_INTERVAL = 0.5

SYSLOG_FACILITY = syslog.LOG_DAEMON
