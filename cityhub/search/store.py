from typing import Callable, List

from cityhub.models.suggestions import SuggestionState

Listener = Callable[[SuggestionState], None]


class SuggestionStore:
    """Current SuggestionState plus change listeners (the UI binding)."""

    def __init__(self):
        self._state = SuggestionState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> SuggestionState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update(self, **changes) -> None:
        new_state = self._state.model_copy(update=changes)
        if new_state == self._state:
            return
        self._state = new_state
        for listener in list(self._listeners):
            listener(new_state)

    def reset(self) -> None:
        self.update(results=[], is_open=False, is_loading=False, error=None)
