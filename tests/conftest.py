"""Pytest fixtures for board engine tests."""

import random

import pytest

from board_engine import HighScore, reset_high_score


@pytest.fixture(autouse=True)
def clear_high_score():
    """Reset the process-wide high score around each test."""
    reset_high_score()
    yield
    reset_high_score()


@pytest.fixture
def high_score():
    return HighScore()


@pytest.fixture
def rng():
    return random.Random(2048)


class FixedRandom(random.Random):
    """Random source whose random() always returns the same value."""

    def __init__(self, value, seed=0):
        super().__init__(seed)
        self.value = value

    def random(self):
        return self.value


@pytest.fixture
def fixed_random():
    return FixedRandom
