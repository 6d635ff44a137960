import asyncio

import pytest

from cityhub.models.suggestions import (
    NETWORK_ERROR_MESSAGE,
    SHORT_QUERY_MESSAGE,
    SuggestionOutcome,
    SuggestionState,
)
from cityhub.search.session import SearchSession, SessionClosedError
from cityhub.search.store import SuggestionStore

from conftest import PARIS, PARIS_TX, FakeSource, settle

DEBOUNCE = 0.02
BLUR_GRACE = 0.02


def make_session(source, on_select=None):
    return SearchSession(source, on_select=on_select, debounce=DEBOUNCE, blur_grace=BLUR_GRACE)


async def wait_for_debounce():
    await asyncio.sleep(DEBOUNCE * 3)
    await settle()


@pytest.mark.asyncio
async def test_happy_path_requests_five_and_keeps_order():
    source = FakeSource()
    session = make_session(source)

    session.set_query("Par")
    assert session.state.is_loading is True
    assert source.calls == []

    await wait_for_debounce()
    assert source.calls == [("Par", 5)]

    source.resolve("Par", SuggestionOutcome.results([PARIS, PARIS_TX]))
    await settle()

    state = session.state
    assert [p.city for p in state.results] == ["Paris", "Paris (TX)"]
    assert state.is_open is True
    assert state.is_loading is False
    assert state.error is None


@pytest.mark.asyncio
async def test_burst_of_keystrokes_issues_one_lookup_for_last_value():
    source = FakeSource()
    session = make_session(source)

    session.set_query("P")
    session.set_query("Pa")
    session.set_query("Par")
    await wait_for_debounce()

    assert source.calls == [("Par", 5)]


@pytest.mark.asyncio
async def test_retyping_inside_window_restarts_timer():
    source = FakeSource()
    session = SearchSession(source, debounce=0.2)

    session.set_query("Pa")
    await asyncio.sleep(0.02)
    session.set_query("Par")
    await asyncio.sleep(0.02)
    session.set_query("Pari")
    await asyncio.sleep(0.1)
    assert source.calls == []
    await asyncio.sleep(0.2)
    await settle()

    assert source.calls == [("Pari", 5)]


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "P", " P ", "   "])
async def test_short_query_clears_state_without_lookup(text):
    source = FakeSource()
    session = make_session(source)

    session.set_query("Par")
    await wait_for_debounce()
    source.resolve("Par", SuggestionOutcome.results([PARIS]))
    await settle()
    assert session.state.is_open is True

    session.set_query(text)
    await wait_for_debounce()

    assert source.calls == [("Par", 5)]
    assert session.state == SuggestionState()


@pytest.mark.asyncio
async def test_short_query_cancels_pending_timer_and_lookup():
    source = FakeSource()
    session = make_session(source)

    session.set_query("Par")
    await wait_for_debounce()
    session.set_query("Pari")
    session.set_query("P")
    await wait_for_debounce()

    assert source.calls == [("Par", 5)]
    assert source.cancelled == ["Par"]
    assert session.state.is_loading is False


@pytest.mark.asyncio
async def test_older_lookup_resolving_last_is_discarded():
    source = FakeSource(stubborn=True)
    session = make_session(source)

    session.set_query("Par")
    await wait_for_debounce()
    session.set_query("Pari")
    await wait_for_debounce()
    assert source.calls == [("Par", 5), ("Pari", 5)]

    source.resolve("Pari", SuggestionOutcome.results([PARIS]))
    await settle()
    source.resolve("Par", SuggestionOutcome.results([PARIS_TX]))
    await settle()

    assert session.state.results == [PARIS]
    assert session.state.is_loading is False


@pytest.mark.asyncio
async def test_older_lookup_resolving_first_does_not_end_loading():
    source = FakeSource(stubborn=True)
    session = make_session(source)

    session.set_query("Par")
    await wait_for_debounce()
    session.set_query("Pari")
    await wait_for_debounce()

    source.resolve("Par", SuggestionOutcome.upstream_failed(502))
    await settle()
    assert session.state.is_loading is True
    assert session.state.error is None

    source.resolve("Pari", SuggestionOutcome.results([PARIS]))
    await settle()
    assert session.state.results == [PARIS]
    assert session.state.is_loading is False


@pytest.mark.asyncio
async def test_not_found_opens_empty_dropdown_without_error():
    source = FakeSource()
    session = make_session(source)

    session.set_query("Zzzz")
    await wait_for_debounce()
    source.resolve("Zzzz", SuggestionOutcome.not_found())
    await settle()

    assert session.state == SuggestionState(results=[], is_open=True, is_loading=False, error=None)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "outcome, is_open, error",
    [
        (SuggestionOutcome.rejected_input(), False, SHORT_QUERY_MESSAGE),
        (SuggestionOutcome.upstream_failed(502), True, "Search failed (502)."),
        (SuggestionOutcome.upstream_failed(500), True, "Search failed (500)."),
        (SuggestionOutcome.transport_failed(), True, NETWORK_ERROR_MESSAGE),
    ],
)
async def test_failures_clear_results_and_set_message(outcome, is_open, error):
    source = FakeSource()
    session = make_session(source)

    session.set_query("Par")
    await wait_for_debounce()
    source.resolve("Par", SuggestionOutcome.results([PARIS]))
    await settle()

    session.set_query("Pari")
    await wait_for_debounce()
    source.resolve("Pari", outcome)
    await settle()

    assert session.state.results == []
    assert session.state.is_open is is_open
    assert session.state.is_loading is False
    assert session.state.error == error


@pytest.mark.asyncio
async def test_source_crash_is_reported_as_network_error():
    class BrokenSource:
        async def lookup(self, query, count):
            raise RuntimeError("boom")

    session = make_session(BrokenSource())
    session.set_query("Par")
    await wait_for_debounce()

    assert session.state.error == NETWORK_ERROR_MESSAGE
    assert session.state.is_loading is False


@pytest.mark.asyncio
async def test_pick_shows_label_closes_dropdown_and_notifies():
    source = FakeSource()
    picked = []
    session = make_session(source, on_select=picked.append)

    session.set_query("Par")
    await wait_for_debounce()
    source.resolve("Par", SuggestionOutcome.results([PARIS, PARIS_TX]))
    await settle()

    session.handle_pick(PARIS)

    assert session.query == "Paris, Île-de-France, France"
    assert session.state.is_open is False
    assert picked == [PARIS]

    # Picking does not start another lookup
    await wait_for_debounce()
    assert source.calls == [("Par", 5)]


@pytest.mark.asyncio
async def test_pick_label_skips_missing_region():
    session = make_session(FakeSource())
    session.handle_pick(PARIS.model_copy(update={"region": None}))
    assert session.query == "Paris, France"


@pytest.mark.asyncio
async def test_blur_closes_after_grace_and_focus_reopens_without_lookup():
    source = FakeSource()
    session = make_session(source)

    session.set_query("Par")
    await wait_for_debounce()
    source.resolve("Par", SuggestionOutcome.results([PARIS]))
    await settle()

    session.handle_blur()
    assert session.state.is_open is True
    await asyncio.sleep(BLUR_GRACE * 3)
    assert session.state.is_open is False

    session.handle_focus()
    assert session.state.is_open is True
    assert source.calls == [("Par", 5)]


@pytest.mark.asyncio
async def test_focus_within_grace_keeps_dropdown_open():
    source = FakeSource()
    session = make_session(source)

    session.set_query("Par")
    await wait_for_debounce()
    source.resolve("Par", SuggestionOutcome.results([PARIS]))
    await settle()

    session.handle_blur()
    session.handle_focus()
    await asyncio.sleep(BLUR_GRACE * 3)
    assert session.state.is_open is True


@pytest.mark.asyncio
async def test_focus_without_results_stays_closed():
    session = make_session(FakeSource())
    session.handle_focus()
    assert session.state.is_open is False


@pytest.mark.asyncio
async def test_close_while_in_flight_prevents_later_changes():
    source = FakeSource(stubborn=True)
    session = make_session(source)
    changes = []
    session.store.subscribe(changes.append)

    session.set_query("Par")
    await wait_for_debounce()
    before = session.state
    seen = len(changes)

    session.close()
    source.resolve("Par", SuggestionOutcome.results([PARIS]))
    await asyncio.sleep(DEBOUNCE * 3)
    await settle()

    assert session.state == before
    assert len(changes) == seen


@pytest.mark.asyncio
async def test_close_cancels_pending_debounce():
    source = FakeSource()
    session = make_session(source)

    session.set_query("Par")
    session.close()
    await wait_for_debounce()

    assert source.calls == []


@pytest.mark.asyncio
async def test_closed_session_rejects_input():
    session = make_session(FakeSource())
    session.close()
    session.close()
    assert session.closed

    with pytest.raises(SessionClosedError):
        session.set_query("Par")
    with pytest.raises(SessionClosedError):
        session.handle_pick(PARIS)
    with pytest.raises(SessionClosedError):
        session.handle_blur()


def test_store_unsubscribe_stops_notifications():
    store = SuggestionStore()
    seen = []
    unsubscribe = store.subscribe(seen.append)

    store.update(is_loading=True)
    unsubscribe()
    store.update(is_loading=False)

    assert [state.is_loading for state in seen] == [True]
