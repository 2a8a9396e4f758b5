"""Shared test fixtures for the Hellarr test suite."""

from __future__ import annotations

import pytest

from hellarr.domain.entities.media import (
    EpisodeRef,
    MediaKind,
    MediaRequest,
)

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def episode_request() -> MediaRequest:
    """Series request for season 1, episode 4."""
    return MediaRequest(
        external_id="tt1234567",
        kind=MediaKind.SERIES,
        episode=EpisodeRef(season=1, number=4),
    )


@pytest.fixture()
def movie_request() -> MediaRequest:
    return MediaRequest(external_id="tt0133093", kind=MediaKind.MOVIE, year=1999)
