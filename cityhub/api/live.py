# cityhub/api/live.py
# WS /ws/search: hosts one SearchSession per connection.
#
# Client -> server: {"type": "input", "value": str} | {"type": "focus"}
#                   | {"type": "blur"} | {"type": "pick", "index": int}
# Server -> client: {"type": "state", "query": str, "state": SuggestionState}
#                   | {"type": "selected", "place": Place} | {"type": "error", "detail": str}

import asyncio
import json
from typing import Any, Dict

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from structlog.contextvars import bind_contextvars, clear_contextvars

from cityhub.models.dto import Place
from cityhub.models.suggestions import SuggestionState
from cityhub.search.session import SearchSession
from cityhub.search.sources import GeocoderSuggestionSource
from cityhub.services.history_repository import HistoryStore, HistoryUnavailable

router = APIRouter()
log = structlog.get_logger(__name__)


class BadMessage(ValueError):
    pass


def dispatch(session: SearchSession, message: Any) -> None:
    """Apply one client message to the session."""
    if not isinstance(message, dict):
        raise BadMessage("message must be a JSON object")
    kind = message.get("type")
    if kind == "input":
        value = message.get("value")
        if not isinstance(value, str):
            raise BadMessage("input.value must be a string")
        session.set_query(value)
    elif kind == "focus":
        session.handle_focus()
    elif kind == "blur":
        session.handle_blur()
    elif kind == "pick":
        index = message.get("index")
        results = session.state.results
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(results):
            raise BadMessage("pick.index does not match a suggestion")
        session.handle_pick(results[index])
    else:
        raise BadMessage(f"unknown message type: {kind!r}")


async def record_history(store: HistoryStore, place: Place) -> None:
    try:
        await store.add(place.city, place.region, place.country)
    except HistoryUnavailable:
        log.warning("history_record_failed", place=place.label)


async def pump(websocket: WebSocket, outbox: "asyncio.Queue[Dict[str, Any]]") -> None:
    while True:
        payload = await outbox.get()
        await websocket.send_json(payload)


@router.websocket("/ws/search")
async def live_search(websocket: WebSocket):
    await websocket.accept()
    clear_contextvars()
    bind_contextvars(ws_path=websocket.url.path, client_ip=websocket.client.host if websocket.client else "unknown")

    app_state = websocket.app.state
    outbox: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
    background = set()

    def on_select(place: Place) -> None:
        outbox.put_nowait({"type": "selected", "place": place.model_dump()})
        task = asyncio.get_running_loop().create_task(record_history(app_state.history_store, place))
        background.add(task)
        task.add_done_callback(background.discard)

    session = SearchSession(GeocoderSuggestionSource(app_state.http_client), on_select=on_select)

    def on_state(state: SuggestionState) -> None:
        outbox.put_nowait({"type": "state", "query": session.query, "state": state.model_dump()})

    unsubscribe = session.store.subscribe(on_state)
    sender = asyncio.create_task(pump(websocket, outbox))
    log.info("live_search_opened")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                dispatch(session, json.loads(raw))
            except ValueError as e:
                outbox.put_nowait({"type": "error", "detail": str(e)})
    except WebSocketDisconnect:
        log.info("live_search_closed")
    finally:
        unsubscribe()
        session.close()
        sender.cancel()
        await asyncio.wait([sender])
        if not sender.cancelled() and sender.exception() is not None:
            log.warning("live_search_send_failed", error=str(sender.exception()))
