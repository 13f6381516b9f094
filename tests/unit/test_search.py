"""Tests for the debounced search."""

import asyncio

import pytest

from pipekit.errors import TransportError
from pipekit.forms import Search


class ControlledFetch:
    """Fetcher whose responses are released by the test."""

    def __init__(self):
        self.calls = []
        self.gates = {}

    async def __call__(self, text):
        self.calls.append(text)
        gate = self.gates.setdefault(text, asyncio.Event())
        await gate.wait()
        if text == "boom":
            raise TransportError("search failed")
        return [f"{text}-result"]

    def release(self, text):
        self.gates.setdefault(text, asyncio.Event()).set()


@pytest.mark.asyncio
async def test_only_last_text_in_window_is_fetched():
    fetch = ControlledFetch()
    for text in ("a", "al", "alp"):
        fetch.release(text)
    search = Search(fetch, debounce=0.01)

    search.search("a")
    search.search("al")
    search.search("alp")
    await search.wait()

    assert fetch.calls == ["alp"]
    assert search.results == ["alp-result"]


@pytest.mark.asyncio
async def test_late_response_of_older_request_is_discarded():
    fetch = ControlledFetch()
    updates = []
    search = Search(fetch, debounce=0, on_update=updates.append)

    older = asyncio.ensure_future(search.fetch("old"))
    newer = asyncio.ensure_future(search.fetch("new"))
    await asyncio.sleep(0)

    fetch.release("new")
    await newer
    fetch.release("old")
    assert await older == ["old-result"]

    assert search.results == ["new-result"]
    assert updates == [["new-result"]]


@pytest.mark.asyncio
async def test_in_flight_requests_are_not_cancelled():
    fetch = ControlledFetch()
    search = Search(fetch, debounce=0)

    search.search("first")
    await asyncio.sleep(0.01)
    assert fetch.calls == ["first"]

    search.search("second")
    fetch.release("second")
    await asyncio.sleep(0.01)
    fetch.release("first")
    await search.wait()

    assert fetch.calls == ["first", "second"]
    assert search.results == ["second-result"]


@pytest.mark.asyncio
async def test_error_is_recorded_and_cleared_by_next_success():
    fetch = ControlledFetch()
    fetch.release("boom")
    fetch.release("ok")
    search = Search(fetch, debounce=0)

    with pytest.raises(TransportError):
        await search.fetch("boom")
    assert isinstance(search.error, TransportError)

    await search.fetch("ok")
    assert search.error is None
    assert search.results == ["ok-result"]


@pytest.mark.asyncio
async def test_reset_ignores_outstanding_responses():
    fetch = ControlledFetch()
    search = Search(fetch, debounce=0)

    pending = asyncio.ensure_future(search.fetch("stale"))
    await asyncio.sleep(0)
    search.reset()
    fetch.release("stale")
    await pending

    assert search.results == []
