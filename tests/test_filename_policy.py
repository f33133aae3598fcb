import os
import random
import time

import pytest

from conftest import BASE_TIME, StepClock, expected_name
from filename_policy import RAND_MAX, DerivedName, FilenamePolicy


def broken_clock() -> float:
    raise OSError("clock unavailable")


def test_timestamp_name_format(prefix):
    policy = FilenamePolicy(prefix=prefix, clock=lambda: BASE_TIME)

    name = policy.derive()

    assert name == DerivedName(expected_name(prefix, BASE_TIME))
    token = name.path[len(prefix):]
    assert len(token) == len("DD.MM.YYYY-HH:MM:SS")
    assert time.strptime(token, "%d.%m.%Y-%H:%M:%S")


def test_prefix_is_concatenated_verbatim():
    policy = FilenamePolicy(prefix="/tmp/print", clock=lambda: BASE_TIME)

    assert policy.derive().path.startswith("/tmp/print")
    assert not policy.derive().path.startswith("/tmp/print/")


def test_names_more_than_a_second_apart_differ(prefix):
    policy = FilenamePolicy(prefix=prefix, clock=StepClock(step=1.5))

    first, second = policy.derive(), policy.derive()

    assert first.path != second.path


@pytest.mark.parametrize("clock", [broken_clock, lambda: 1e20])
def test_unusable_clock_falls_back_to_random_name(prefix, clock, log_messages):
    policy = FilenamePolicy(prefix=prefix, clock=clock, rng=random.Random(7))

    name = policy.derive()

    assert name.fallback
    assert name.path.startswith(prefix + "file-")
    number = int(name.path[len(prefix + "file-"):])
    assert 0 <= number <= RAND_MAX
    assert any(level == "WARNING" and "error getting current time" in msg for level, msg in log_messages)


def test_fallback_skips_existing_candidates(prefix):
    probe = random.Random(1234)
    existing = [f"{prefix}file-{probe.randint(0, RAND_MAX)}" for _ in range(3)]
    for path in existing:
        open(path, "wb").close()
    policy = FilenamePolicy(prefix=prefix, clock=broken_clock, rng=random.Random(1234))

    name = policy.derive()

    assert name.path not in existing
    assert not os.path.exists(name.path)
