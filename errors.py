class FatalError(Exception):
    """Initialization failure after which the daemon cannot start."""
