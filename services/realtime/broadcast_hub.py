"""Single-writer fan-out of broadcast events to every live subscriber."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from models.events import BroadcastEvent, EventType
from services.realtime.subscriber_registry import SubscriberRegistry

logger = logging.getLogger(__name__)


class BroadcastHub:
	"""Queue published events and deliver them in publish order.

	`publish` hands the event to an unbounded queue and returns immediately.
	One delivery task drains that queue and offers each serialized event to
	every subscriber through the registry. Offers never block: a subscriber
	whose bounded buffer is full is dropped by the registry instead of
	stalling the hub.
	"""

	def __init__(self, registry: SubscriberRegistry) -> None:
		self.registry = registry
		self._queue: asyncio.Queue[Optional[BroadcastEvent]] = asyncio.Queue()
		self._task: Optional[asyncio.Task] = None

	@property
	def running(self) -> bool:
		return self._task is not None and not self._task.done()

	def start(self) -> None:
		"""Start the delivery task on the running event loop."""
		if self.running:
			return
		self._task = asyncio.create_task(self._deliver_forever(), name="broadcast-hub")
		logger.info("Broadcast hub started")

	def publish(self, event: BroadcastEvent) -> None:
		"""Enqueue `event` for delivery without waiting."""
		self._queue.put_nowait(event)

	async def join(self) -> None:
		"""Wait until every event published so far has been offered to subscribers."""
		await self._queue.join()

	async def stop(self) -> None:
		"""Deliver what is already queued, then end the delivery task."""
		if self._task is None:
			return
		self._queue.put_nowait(None)
		try:
			await self._task
		finally:
			self._task = None
			logger.info("Broadcast hub stopped")

	async def _deliver_forever(self) -> None:
		while True:
			event = await self._queue.get()
			try:
				if event is None:
					return
				await self._deliver(event)
			except Exception:
				logger.exception("Failed to deliver %s event", event.type.value if event else "?")
			finally:
				self._queue.task_done()

	async def _deliver(self, event: BroadcastEvent) -> None:
		message = event.to_json()
		record_id = event.payload.get("id") if event.type is EventType.PROCESS_COMPLETE else None
		delivered = await self.registry.for_each(lambda subscriber: subscriber.offer(message), record_id)
		logger.debug(
			"Delivered %s (%s) to %d subscriber(s)",
			event.type.value,
			event.correlation_id or "-",
			delivered,
		)
