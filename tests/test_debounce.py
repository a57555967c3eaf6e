"""Tests for search-as-you-type debouncing."""
import asyncio

import pytest

from nextpage.debounce import Debouncer


class CountingSearch:
    def __init__(self):
        self.queries = []

    async def __call__(self, query):
        self.queries.append(query)
        return [query.upper()]


def test_short_query_never_fires():
    """Two characters schedule nothing and make no call."""
    search = CountingSearch()

    async def run():
        debouncer = Debouncer(search, delay=0.01)
        assert not debouncer.feed("ab")
        assert not debouncer.pending
        await asyncio.sleep(0.05)
        return await debouncer.flush()

    assert asyncio.run(run()) is None
    assert search.queries == []


def test_three_characters_fire_once_after_window():
    search = CountingSearch()

    async def run():
        debouncer = Debouncer(search, delay=0.02)
        assert debouncer.feed("abc")
        await asyncio.sleep(0)
        assert search.queries == []
        return await debouncer.flush()

    assert asyncio.run(run()) == ["ABC"]
    assert search.queries == ["abc"]


def test_burst_of_keystrokes_only_sends_last():
    search = CountingSearch()

    async def run():
        debouncer = Debouncer(search, delay=0.1)
        for text in ("dun", "dune", "dune ", "dune m"):
            debouncer.feed(text)
            await asyncio.sleep(0.001)
        return await debouncer.flush()

    assert asyncio.run(run()) == ["DUNE M"]
    assert search.queries == ["dune m"]


def test_shortening_query_cancels_pending():
    search = CountingSearch()

    async def run():
        debouncer = Debouncer(search, delay=0.02)
        debouncer.feed("abcd")
        debouncer.feed("a")
        await asyncio.sleep(0.05)

    asyncio.run(run())
    assert search.queries == []


def test_flush_after_pending_cancelled_returns_last_result():
    search = CountingSearch()

    async def run():
        debouncer = Debouncer(search, delay=0.5)
        debouncer.result = ["EARLIER"]
        debouncer.feed("abc")
        waiter = asyncio.ensure_future(debouncer.flush())
        await asyncio.sleep(0)
        debouncer.cancel()
        return await waiter

    assert asyncio.run(run()) == ["EARLIER"]
    assert search.queries == []


def test_cancelling_flush_caller_propagates():
    """The caller sees its own cancellation; the pending search still runs."""
    search = CountingSearch()

    async def run():
        debouncer = Debouncer(search, delay=0.02)
        debouncer.feed("abc")
        waiter = asyncio.ensure_future(debouncer.flush())
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        assert debouncer.pending
        return await debouncer.flush()

    assert asyncio.run(run()) == ["ABC"]
    assert search.queries == ["abc"]
