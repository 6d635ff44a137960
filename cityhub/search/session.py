"""
Live place search: keystrokes in, SuggestionState snapshots out.

A SearchSession wires the pieces together on a single event loop:

    set_query() -> DebounceScheduler -> RequestArbiter -> ResultReconciler -> SuggestionStore

Typing below the minimum length clears the dropdown without a lookup.
Otherwise the session shows a loading state and issues one lookup once the
input has been quiet for the debounce delay. Only the most recently issued
lookup may change the store; older outcomes are dropped whenever they arrive.
"""

from typing import Callable, Optional

import structlog

from cityhub.core.config import settings
from cityhub.models.dto import Place
from cityhub.models.suggestions import SuggestionOutcome, SuggestionState
from cityhub.search.arbiter import RequestArbiter
from cityhub.search.reconciler import ResultReconciler
from cityhub.search.scheduler import DebounceScheduler
from cityhub.search.sources import SuggestionSource
from cityhub.search.store import SuggestionStore

logger = structlog.get_logger(__name__)


class SessionClosedError(RuntimeError):
    """A closed session was asked to change state."""


class SearchSession:
    def __init__(
        self,
        source: SuggestionSource,
        on_select: Optional[Callable[[Place], None]] = None,
        *,
        debounce: float = settings.SUGGEST_DEBOUNCE_SECONDS,
        blur_grace: float = settings.SUGGEST_BLUR_GRACE_SECONDS,
        min_chars: int = settings.SUGGEST_MIN_CHARS,
        count: int = settings.SUGGEST_COUNT,
    ):
        self.query = ""
        self.min_chars = min_chars
        self.store = SuggestionStore()
        self._on_select = on_select
        self._arbiter = RequestArbiter(source, self._on_outcome, count=count)
        self._reconciler = ResultReconciler(self._arbiter, self.store)
        self._debounce = DebounceScheduler(debounce, self._fire)
        self._blur = DebounceScheduler(blur_grace, self._close_dropdown)
        self._closed = False

    @property
    def state(self) -> SuggestionState:
        return self.store.state

    @property
    def closed(self) -> bool:
        return self._closed

    def set_query(self, text: str) -> None:
        self._ensure_active()
        self.query = text

        if len(text.strip()) < self.min_chars:
            self._debounce.cancel()
            self._arbiter.cancel()
            self.store.reset()
            return

        # Whatever is in flight was issued for an older query
        self._arbiter.cancel()
        self.store.update(is_loading=True, error=None)
        self._debounce.restart()

    def handle_pick(self, place: Place) -> None:
        """Show the picked place in the input, close the dropdown and report the pick."""
        self._ensure_active()
        self._debounce.cancel()
        self._arbiter.cancel()
        self._blur.cancel()
        self.query = place.label
        self.store.reset()
        logger.info("place_selected", place=place.label)
        if self._on_select is not None:
            self._on_select(place)

    def handle_blur(self) -> None:
        # Deferred so a pointer-down on a suggestion still lands as a pick
        self._ensure_active()
        self._blur.restart()

    def handle_focus(self) -> None:
        self._ensure_active()
        self._blur.cancel()
        if self.state.results:
            self.store.update(is_open=True)

    def close(self) -> None:
        """Cancel timers and any lookup in flight. The session is inert afterwards."""
        if self._closed:
            return
        self._closed = True
        self._debounce.cancel()
        self._blur.cancel()
        self._arbiter.cancel()

    def _ensure_active(self) -> None:
        if self._closed:
            raise SessionClosedError("search session is closed")

    def _fire(self) -> None:
        self._arbiter.supersede(self.query)

    def _on_outcome(self, token: int, outcome: SuggestionOutcome) -> None:
        self._reconciler.apply(token, outcome)

    def _close_dropdown(self) -> None:
        self.store.update(is_open=False)
