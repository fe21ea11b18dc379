import logging
from typing import Any, Dict, List

from fastapi import HTTPException, Request

from dal.history_dal import HistoryStore
from models.events import BroadcastEvent
from services.errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 200


def _store(request: Request) -> HistoryStore:
    return request.app.state.history_store


async def list_history(request: Request, limit: int | None = None) -> List[Dict[str, Any]]:
    """Return the most recent records, newest first.

    Args:
        request: FastAPI Request (to access app.state.history_store).
        limit: Maximum number of records; defaults to `history_list_limit`, capped at 200.
    """
    if limit is None:
        limit = request.app.state.settings.history_list_limit
    limit = max(0, min(int(limit), MAX_LIST_LIMIT))
    records = await _store(request).recent(limit)
    return [r.to_payload() for r in records]


async def get_record(request: Request, record_id: int) -> Dict[str, Any]:
    """Return one record, raising HTTPException(404) if it does not exist."""
    try:
        record = await _store(request).by_id(int(record_id))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return record.to_payload()


async def delete_record(request: Request, record_id: int) -> Dict[str, Any]:
    try:
        await _store(request).delete(int(record_id))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"deleted": True, "id": record_id}


async def build_history_snapshot(store: HistoryStore, limit: int) -> BroadcastEvent:
    """Return the `history_snapshot` event replayed to a newly attached viewer.

    A failing read yields an empty snapshot rather than refusing the viewer.
    """
    try:
        records = await store.recent(limit)
    except PersistenceError as exc:
        logger.error("Could not load history for replay: %s", exc)
        records = []
    return BroadcastEvent.history_snapshot(records)
