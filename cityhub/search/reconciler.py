import structlog

from cityhub.models.suggestions import (
    NETWORK_ERROR_MESSAGE,
    SHORT_QUERY_MESSAGE,
    OutcomeKind,
    SuggestionOutcome,
    upstream_failed_message,
)
from cityhub.search.arbiter import RequestArbiter
from cityhub.search.store import SuggestionStore

logger = structlog.get_logger(__name__)


class ResultReconciler:
    """Applies lookup outcomes to the store, but only for the authoritative token."""

    def __init__(self, arbiter: RequestArbiter, store: SuggestionStore):
        self.arbiter = arbiter
        self.store = store

    def apply(self, token: int, outcome: SuggestionOutcome) -> None:
        if not self.arbiter.is_authoritative(token):
            # A newer lookup was issued (or the session closed); expected, not an error
            logger.debug("suggestion_superseded", token=token, kind=outcome.kind.value)
            return
        self.arbiter.settle(token)

        kind = outcome.kind
        if kind is OutcomeKind.RESULTS:
            self.store.update(results=list(outcome.places), is_open=True, is_loading=False, error=None)
        elif kind is OutcomeKind.NOT_FOUND:
            # Rendered as "no places found", not as a failure
            self.store.update(results=[], is_open=True, is_loading=False, error=None)
        elif kind is OutcomeKind.REJECTED_INPUT:
            self.store.update(results=[], is_open=False, is_loading=False, error=SHORT_QUERY_MESSAGE)
        elif kind is OutcomeKind.UPSTREAM_FAILED:
            self.store.update(
                results=[],
                is_open=True,
                is_loading=False,
                error=upstream_failed_message(outcome.status_code),
            )
        else:
            self.store.update(results=[], is_open=True, is_loading=False, error=NETWORK_ERROR_MESSAGE)

        logger.debug("suggestion_applied", token=token, kind=kind.value, count=len(outcome.places))
