"""Round-robin background refresh."""

from __future__ import annotations

import pytest

from services.sentiment.poller import Poller
from services.sentiment.types import MarketContext
from tests.fakes.fake_clock import settle
from tests.fakes.fake_provider import FakeProvider

SUBJECTS = ("Wheat", "Cashew", "Maize", "Chana", "Sugar")


@pytest.mark.asyncio
async def test_ticks_visit_every_subject_once_per_cycle(make_session) -> None:
    provider = FakeProvider()
    session = make_session(provider, subjects=SUBJECTS)
    n = len(SUBJECTS)
    cursors = []

    for _ in range(3 * n):
        before = session.state.cursor
        await session.poller.tick()
        assert session.state.cursor == (before + 1) % n
        assert 0 <= session.state.cursor < n
        cursors.append(session.state.cursor)

    refreshed = [subject for subject, _ in provider.calls]
    for cycle in range(3):
        assert sorted(refreshed[cycle * n:(cycle + 1) * n]) == sorted(SUBJECTS)
    assert refreshed[:n] == list(SUBJECTS[1:]) + [SUBJECTS[0]]
    await session.aclose()


@pytest.mark.asyncio
async def test_one_dispatch_per_period(make_session, clock) -> None:
    provider = FakeProvider()
    session = make_session(provider, subjects=SUBJECTS, refresh_period_sec=45)
    session.poller.start()
    await settle()

    await clock.advance(44)
    assert provider.calls == []
    await clock.advance(1)
    assert provider.calls == [("Cashew", MarketContext.INDIA)]
    await clock.advance(45 * 3)
    assert [s for s, _ in provider.calls] == ["Cashew", "Maize", "Chana", "Sugar"]
    await session.aclose()


@pytest.mark.asyncio
async def test_tick_does_not_wait_for_outstanding_dispatch(make_session, clock) -> None:
    provider = FakeProvider(gated=["Wheat", "Sugar"])
    session = make_session(provider)
    session.poller.start()
    await settle()

    await clock.advance(45)
    await clock.advance(45)
    await clock.advance(45)

    assert [s for s, _ in provider.calls] == ["Sugar", "Wheat", "Sugar"]
    assert provider.max_active == 3
    provider.release_all()
    await settle()
    assert len(session.store) == 2
    await session.aclose()


@pytest.mark.asyncio
async def test_stop_cancels_timer(make_session, clock) -> None:
    provider = FakeProvider()
    session = make_session(provider)
    task = session.poller.start()
    await settle()
    assert clock.sleepers == 1

    await session.poller.stop()

    assert task.cancelled()
    assert clock.sleepers == 0
    await clock.advance(450)
    assert provider.calls == []
    await session.aclose()


def test_rejects_non_positive_period(make_session) -> None:
    session = make_session(FakeProvider())
    with pytest.raises(ValueError):
        Poller(session.dispatcher, session.state, session.scope, period=0)
