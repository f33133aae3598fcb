# filename_policy.py

import os
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from config import PRINTOUT_PREFIX

TIMESTAMP_FORMAT = "%d.%m.%Y-%H:%M:%S"
RAND_MAX = 2**31 - 1


@dataclass(frozen=True)
class DerivedName:
    path: str
    fallback: bool = False


class FilenamePolicy:
    """
    Derives the output path for a print job.

    Normally the local wall-clock time, second-granular, appended to the
    prefix. If the clock cannot be read or formatted, random
    `file-<N>` candidates are probed until one does not exist yet.
    """

    def __init__(
        self,
        prefix: str = PRINTOUT_PREFIX,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        self.prefix = prefix
        self.clock = clock
        self.rng = rng or random.Random()

    def timestamp_name(self) -> str:
        """Format the current local time, raising if the clock is unusable."""
        return self.prefix + time.strftime(TIMESTAMP_FORMAT, time.localtime(self.clock()))

    def random_name(self) -> str:
        """Probe random candidates until one is free at the moment of the check."""
        while True:
            candidate = f"{self.prefix}file-{self.rng.randint(0, RAND_MAX)}"
            if not os.path.exists(candidate):
                return candidate
            logger.debug(f"{candidate} already exists, trying another name")

    def derive(self) -> DerivedName:
        try:
            return DerivedName(self.timestamp_name())
        except (OSError, OverflowError, ValueError) as e:
            logger.warning(f"error getting current time: {e}")
        return DerivedName(self.random_name(), fallback=True)
