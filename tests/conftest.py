"""Pytest configuration: makes the top-level modules importable and provides a machine fixture."""
import random
import sys
from pathlib import Path

import pytest

_REPO_ROOT = Path(__file__).resolve().parents[1]
_root_str = str(_REPO_ROOT)
if _root_str not in sys.path:
    sys.path.insert(0, _root_str)

from chip8 import C8Computer  # noqa: E402


def words(*values):
    """Big-endian program bytes for a sequence of instruction words."""
    data = bytearray()
    for value in values:
        data += value.to_bytes(2, "big")
    return bytes(data)


@pytest.fixture
def c8():
    return C8Computer(rng=random.Random(1234))


@pytest.fixture
def run(c8):
    """Load the given words and execute one cycle per word (or `cycles`)."""
    def _run(*program, cycles=None):
        c8.load_program(words(*program))
        for i in range(len(program) if cycles is None else cycles):
            c8.cycle()
        return c8
    return _run
