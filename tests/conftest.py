"""Shared fixtures: scripted randomness and a virtual clock."""

import random

import pytest

from engine.scheduler import VirtualScheduler


class ScriptedRandom(random.Random):
    """Random whose draws come from fixed scripts.

    ``random()`` pops from ``values`` (0.5 once exhausted) and
    ``randint(a, b)`` pops from ``ints`` (``a`` once exhausted).
    With the defaults, bonus rolls land mid-range and no 8%/5%/50%
    chance ever succeeds.
    """

    def __init__(self, values=(), ints=()):
        super().__init__(0)
        self.values = list(values)
        self.ints = list(ints)

    def random(self):
        return self.values.pop(0) if self.values else 0.5

    def randint(self, a, b):
        return self.ints.pop(0) if self.ints else a


@pytest.fixture
def scripted_rng():
    """Factory for ScriptedRandom instances."""
    return ScriptedRandom


@pytest.fixture
def scheduler():
    return VirtualScheduler()
