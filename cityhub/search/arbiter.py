import asyncio
import itertools
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from cityhub.models.suggestions import SuggestionOutcome
from cityhub.search.sources import SuggestionSource

logger = structlog.get_logger(__name__)

OutcomeHandler = Callable[[int, SuggestionOutcome], None]


@dataclass
class PendingRequest:
    token: int
    task: "asyncio.Task[None]"


class RequestArbiter:
    """
    Keeps at most one authoritative suggestion lookup.

    Every issued lookup gets a fresh token; its outcome is handed to
    `on_outcome` together with that token, and the handler decides whether the
    token is still authoritative. Cancelling the superseded task only saves
    bandwidth; correctness comes from the token comparison.
    """

    def __init__(self, source: SuggestionSource, on_outcome: OutcomeHandler, count: int = 5):
        self.source = source
        self.count = count
        self._on_outcome = on_outcome
        self._tokens = itertools.count(1)
        self._current: Optional[PendingRequest] = None

    def is_authoritative(self, token: int) -> bool:
        return self._current is not None and self._current.token == token

    def supersede(self, query: str) -> int:
        """Cancel whatever is in flight, then issue a lookup for `query`."""
        self.cancel()
        token = next(self._tokens)
        task = asyncio.get_running_loop().create_task(self._run(token, query))
        self._current = PendingRequest(token=token, task=task)
        logger.debug("suggestion_issued", token=token, query=query)
        return token

    def settle(self, token: int) -> None:
        """The authoritative lookup resolved; nothing is in flight any more."""
        if self.is_authoritative(token):
            self._current = None

    def cancel(self) -> None:
        if self._current is not None:
            self._current.task.cancel()
            self._current = None

    async def _run(self, token: int, query: str) -> None:
        try:
            outcome = await self.source.lookup(query, self.count)
        except Exception:
            logger.exception("suggestion_source_crashed", token=token, query=query)
            outcome = SuggestionOutcome.transport_failed()
        self._on_outcome(token, outcome)
