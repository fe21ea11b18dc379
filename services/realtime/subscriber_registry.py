"""Registry of live viewer connections."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Awaitable, Callable, List, Optional

from models.events import BroadcastEvent

logger = logging.getLogger(__name__)

_CLOSED = None
_ids = itertools.count(1)


class Subscriber:
	"""One live connection: a bounded outbound queue plus a liveness flag.

	The hub only ever calls `offer`, which never blocks. The connection's
	writer task drains the queue with `next_message`.
	"""

	def __init__(self, max_pending: int) -> None:
		self.id = next(_ids)
		self.alive = True
		self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=max_pending)

	def offer(self, message: str) -> bool:
		"""Enqueue `message`; returns False if the subscriber is closed or its buffer is full."""
		if not self.alive:
			return False
		try:
			self._queue.put_nowait(message)
		except asyncio.QueueFull:
			return False
		return True

	async def next_message(self) -> Optional[str]:
		"""Wait for the next outbound message; None once the subscriber is closed."""
		if not self.alive and self._queue.empty():
			return _CLOSED
		return await self._queue.get()

	@property
	def pending(self) -> int:
		return self._queue.qsize()

	def close(self) -> None:
		"""Mark dead and wake the writer. Undelivered messages are discarded."""
		if not self.alive:
			return
		self.alive = False
		while not self._queue.empty():
			self._queue.get_nowait()
		self._queue.put_nowait(_CLOSED)


SnapshotFactory = Callable[[], Awaitable[BroadcastEvent]]


class SubscriberRegistry:
	"""Serialized set of subscribers.

	A single lock guards membership changes and iteration, so attach/replay,
	detach, and delivery never observe a partially updated set.

	The registry also tracks the newest record id whose `process_complete`
	has been delivered. Snapshots drop records above it: those completions
	are still queued in the hub and will reach the new subscriber live.

	Args:
		max_pending: Outbound queue size for each subscriber.
		delivered_record_id: Newest record id already settled before any
			live delivery, usually the highest id in history at startup.
			None disables snapshot filtering.
	"""

	def __init__(self, max_pending: int = 64, delivered_record_id: Optional[int] = None) -> None:
		self._max_pending = max_pending
		self._subscribers: List[Subscriber] = []
		self._lock = asyncio.Lock()
		self._delivered_record_id = delivered_record_id

	@property
	def delivered_record_id(self) -> Optional[int]:
		return self._delivered_record_id

	async def attach(self, snapshot: Optional[SnapshotFactory] = None) -> Subscriber:
		"""Create a subscriber, queue its history snapshot, and add it to the set.

		The snapshot is built and queued while holding the lock, so an event
		broadcast concurrently lands either entirely before membership (not
		delivered) or after the snapshot (delivered exactly once). A record
		whose completion is still waiting in the hub is left out of the
		snapshot, so each record reaches the subscriber once.
		"""
		subscriber = Subscriber(self._max_pending)
		async with self._lock:
			if snapshot is not None:
				event = (await snapshot()).records_through(self._delivered_record_id)
				subscriber.offer(event.to_json())
			self._subscribers.append(subscriber)
			count = len(self._subscribers)
		logger.info("Subscriber %s attached (%d connected)", subscriber.id, count)
		return subscriber

	async def detach(self, subscriber: Subscriber) -> None:
		async with self._lock:
			removed = self._remove(subscriber)
		subscriber.close()
		if removed:
			logger.info("Subscriber %s detached", subscriber.id)

	async def for_each(self, fn: Callable[[Subscriber], bool], record_id: Optional[int] = None) -> int:
		"""Apply `fn` to every subscriber; returns how many accepted.

		A subscriber for which `fn` returns False or raises is removed
		immediately; delivery to the others continues. `record_id` marks the
		message as the completion of that record.
		"""
		delivered = 0
		async with self._lock:
			for subscriber in list(self._subscribers):
				try:
					ok = fn(subscriber)
				except Exception:
					logger.exception("Delivery to subscriber %s raised", subscriber.id)
					ok = False
				if ok:
					delivered += 1
					continue
				self._remove(subscriber)
				subscriber.close()
				logger.warning("Dropped subscriber %s (closed or buffer full)", subscriber.id)
			if record_id is not None and self._delivered_record_id is not None:
				self._delivered_record_id = max(self._delivered_record_id, record_id)
		return delivered

	async def count(self) -> int:
		async with self._lock:
			return len(self._subscribers)

	def _remove(self, subscriber: Subscriber) -> bool:
		try:
			self._subscribers.remove(subscriber)
		except ValueError:
			return False
		return True
