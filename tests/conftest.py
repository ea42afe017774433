# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable

import pytest

from letterbox.core.identity import AuthorKeypair, generate_author_keypair
from letterbox.core.settings import Settings
from letterbox.replica.memory import MemoryReplica
from letterbox.services.letterbox_layer import LetterboxLayer

START_MICROS = 1_700_000_000_000_000


class TickClock:
    """Deterministic microsecond clock advancing by ``step`` on every read."""

    def __init__(self, start: int = START_MICROS, step: int = 1) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        current = self.now
        self.now += self.step
        return current


@pytest.fixture()
def test_settings() -> Settings:
    """Provide settings isolated from the environment."""
    return Settings(_env_file=None)


@pytest.fixture()
def replica(test_settings: Settings) -> MemoryReplica:
    """Return an empty in-memory replica."""
    return MemoryReplica("+test.a123", settings=test_settings)


@pytest.fixture()
def clock() -> TickClock:
    """Return a clock that advances one microsecond per call."""
    return TickClock()


@pytest.fixture()
def frozen_clock() -> TickClock:
    """Return a clock stuck on a single microsecond."""
    return TickClock(step=0)


@pytest.fixture()
def make_identity() -> Callable[[str], AuthorKeypair]:
    """Return a factory for fresh author keypairs."""
    return generate_author_keypair


@pytest.fixture()
def make_layer(
    replica: MemoryReplica,
    clock: TickClock,
    test_settings: Settings,
) -> Callable[..., LetterboxLayer]:
    """Return a factory building layers that share one replica and clock."""

    def _make(
        identity: AuthorKeypair | None,
        *,
        layer_clock: TickClock | None = None,
        settings: Settings | None = None,
    ) -> LetterboxLayer:
        return LetterboxLayer(
            replica,
            identity,
            settings=settings or test_settings,
            clock=layer_clock or clock,
        )

    return _make


@pytest.fixture()
def make_clock() -> Callable[..., TickClock]:
    """Return a factory for deterministic clocks."""
    return TickClock
