"""Pytest configuration."""

import os
import sys
from pathlib import Path

import chess
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from models import OpeningFamily, Variation


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "slow: mark test as waiting on a real event-loop timer"
    )


# Tests drive the opponent through FakeScheduler; keep real timers short.
os.environ.setdefault("TRAINER_OPPONENT_DELAY", "0.01")


class FakeHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Stands in for an event loop: call_later() queues, run_pending() fires."""

    def __init__(self):
        self.handles: list[FakeHandle] = []

    def call_later(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def run_pending(self) -> int:
        """Fire every queued, uncancelled callback (including ones queued meanwhile)."""
        fired = 0
        while True:
            ready = self.pending
            if not ready:
                return fired
            for handle in ready:
                self.handles.remove(handle)
                handle.callback()
                fired += 1


@pytest.fixture
def scheduler():
    return FakeScheduler()


ITALIAN = OpeningFamily(
    name="Italian Game",
    eco_code="C50",
    description="White develops Bc4 targeting f7.",
    default_color=chess.WHITE,
    variations=(
        Variation(
            name="Giuoco Piano",
            moves=("e4", "e5", "Nf3", "Nc6", "Bc4", "Bc5", "c3", "Nf6"),
            explanation="The quiet game.",
        ),
        Variation(
            name="Two Knights",
            moves=("e4", "e5", "Nf3", "Nc6", "Bc4", "Nf6", "Ng5"),
            explanation="Black counterattacks e4.",
        ),
    ),
)

OPEN_GAMES = OpeningFamily(
    name="Open Games",
    eco_code="C60",
    default_color=chess.WHITE,
    variations=(
        Variation(name="Ruy Lopez", moves=("e4", "e5", "Nf3", "Nc6", "Bb5")),
        Variation(name="Italian Game", moves=("e4", "e5", "Nf3", "Nc6", "Bc4")),
    ),
)

SICILIAN = OpeningFamily(
    name="Sicilian Defense",
    eco_code="B20",
    default_color=chess.BLACK,
    variations=(
        Variation(name="Open Sicilian", moves=("e4", "c5", "Nf3", "d6", "d4", "cxd4", "Nxd4")),
    ),
)


@pytest.fixture
def italian():
    return ITALIAN


@pytest.fixture
def open_games():
    return OPEN_GAMES


@pytest.fixture
def sicilian():
    return SICILIAN
