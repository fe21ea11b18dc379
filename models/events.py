"""Broadcast event models pushed to connected viewers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from models.screenshot_record import ScreenshotRecord


class EventType(str, Enum):
	"""Wire tags understood by the viewer frontend."""

	PROCESS_START = "process_start"
	OCR_COMPLETE = "ocr_complete"
	PROCESS_ERROR = "process_error"
	PROCESS_COMPLETE = "process_complete"
	HISTORY_SNAPSHOT = "history_snapshot"


@dataclass(frozen=True)
class BroadcastEvent:
	"""Immutable event with a tag-specific payload."""

	type: EventType
	payload: Dict[str, Any] = field(default_factory=dict)
	correlation_id: Optional[str] = None

	def to_message(self) -> Dict[str, Any]:
		return {"type": self.type.value, "payload": self.payload}

	def to_json(self) -> str:
		return json.dumps(self.to_message(), ensure_ascii=False)

	def records_through(self, record_id: Optional[int]) -> "BroadcastEvent":
		"""Return this snapshot without records newer than `record_id`; None keeps all."""
		if record_id is None or self.type is not EventType.HISTORY_SNAPSHOT:
			return self
		records = [r for r in self.payload.get("records", []) if r.get("id") is None or r["id"] <= record_id]
		return BroadcastEvent(self.type, {**self.payload, "records": records}, self.correlation_id)

	@classmethod
	def process_start(cls, correlation_id: str) -> "BroadcastEvent":
		return cls(
			EventType.PROCESS_START,
			{"id": correlation_id, "status": "Processing image..."},
			correlation_id,
		)

	@classmethod
	def ocr_complete(cls, correlation_id: str, text: str) -> "BroadcastEvent":
		return cls(
			EventType.OCR_COMPLETE,
			{"id": correlation_id, "text": text, "status": "Text recognized, generating answer..."},
			correlation_id,
		)

	@classmethod
	def process_error(
		cls,
		correlation_id: str,
		stage: str,
		error: str,
		record: Optional[ScreenshotRecord] = None,
	) -> "BroadcastEvent":
		"""Build an error event; `record` carries content computed before a persistence failure."""
		payload: Dict[str, Any] = {"id": correlation_id, "stage": stage, "error": error}
		if record is not None:
			payload.update(
				text=record.text,
				answer=record.answer,
				title=record.title,
				timestamp=record.iso_timestamp,
				thumbnail=record.thumbnail,
			)
		return cls(EventType.PROCESS_ERROR, payload, correlation_id)

	@classmethod
	def process_complete(cls, correlation_id: str, record: ScreenshotRecord) -> "BroadcastEvent":
		return cls(
			EventType.PROCESS_COMPLETE,
			{
				"id": record.id,
				"process_id": correlation_id,
				"text": record.text,
				"answer": record.answer,
				"title": record.title,
				"timestamp": record.iso_timestamp,
				"thumbnail": record.thumbnail,
			},
			correlation_id,
		)

	@classmethod
	def history_snapshot(cls, records: Iterable[ScreenshotRecord]) -> "BroadcastEvent":
		return cls(EventType.HISTORY_SNAPSHOT, {"records": [r.to_payload() for r in records]})
