"""WebSocket endpoint streaming processing events to viewers."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketDisconnect

from controllers.history_controller import build_history_snapshot
from services.realtime.subscriber_registry import Subscriber

logger = logging.getLogger(__name__)

router = APIRouter()


async def _pump(websocket: WebSocket, subscriber: Subscriber) -> None:
	"""Forward queued messages to the socket until the subscriber is closed."""
	try:
		while True:
			message = await subscriber.next_message()
			if message is None:
				break
			await websocket.send_text(message)
	except Exception as exc:
		logger.info("Subscriber %s write failed: %s", subscriber.id, exc)
		subscriber.close()
		return
	try:
		await websocket.close()
	except Exception:
		pass


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket):
	"""Replay recent history, then stream live processing events."""
	await websocket.accept()
	state = websocket.app.state
	registry = state.subscriber_registry
	store = state.history_store
	replay_limit = state.settings.history_replay_limit

	subscriber = await registry.attach(lambda: build_history_snapshot(store, replay_limit))
	writer = asyncio.create_task(_pump(websocket, subscriber), name=f"ws-writer-{subscriber.id}")
	try:
		while True:
			# Inbound frames only keep the connection alive.
			await websocket.receive_text()
	except WebSocketDisconnect:
		pass
	except Exception as exc:
		logger.info("Subscriber %s receive failed: %s", subscriber.id, exc)
	finally:
		await registry.detach(subscriber)
		writer.cancel()
		try:
			await writer
		except asyncio.CancelledError:
			pass
