# cityhub/models/suggestions.py
# Live search state and the outcome of one suggestion lookup.

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Sequence
from cityhub.models.dto import Place

SHORT_QUERY_MESSAGE = "Type at least 2 letters."
NETWORK_ERROR_MESSAGE = "Network error. Please try again."

def upstream_failed_message(status_code: Optional[int]) -> str:
    return f"Search failed ({status_code})."

class OutcomeKind(str, Enum):
    RESULTS = "results"
    NOT_FOUND = "not_found"
    REJECTED_INPUT = "rejected_input"
    UPSTREAM_FAILED = "upstream_failed"
    TRANSPORT_FAILED = "transport_failed"

class SuggestionOutcome(BaseModel):
    """
    What a suggestion source resolved to. Sources translate their own
    conventions (HTTP status codes, service exceptions) into one of these.
    """
    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    places: List[Place] = Field(default_factory=list, description="Ranked as the source returned them.")
    status_code: Optional[int] = Field(None, description="Upstream status, when there was one.")

    @classmethod
    def results(cls, places: Sequence[Place]) -> "SuggestionOutcome":
        return cls(kind=OutcomeKind.RESULTS, places=list(places), status_code=200)

    @classmethod
    def not_found(cls) -> "SuggestionOutcome":
        return cls(kind=OutcomeKind.NOT_FOUND, status_code=404)

    @classmethod
    def rejected_input(cls) -> "SuggestionOutcome":
        return cls(kind=OutcomeKind.REJECTED_INPUT, status_code=400)

    @classmethod
    def upstream_failed(cls, status_code: int) -> "SuggestionOutcome":
        return cls(kind=OutcomeKind.UPSTREAM_FAILED, status_code=status_code)

    @classmethod
    def transport_failed(cls) -> "SuggestionOutcome":
        return cls(kind=OutcomeKind.TRANSPORT_FAILED)

class SuggestionState(BaseModel):
    """What the dropdown renders from. An error always comes with empty results."""
    model_config = ConfigDict(frozen=True)

    results: List[Place] = Field(default_factory=list)
    is_open: bool = False
    is_loading: bool = False
    error: Optional[str] = None
