"""Ephemeral state for a single capture processing run."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet


class RunStage(str, Enum):
	STARTED = "started"
	RECOGNIZING = "recognizing"
	RECOGNIZED = "recognized"
	GENERATING = "generating"
	COMPLETED = "completed"
	ERRORED = "errored"


TERMINAL_STAGES: FrozenSet[RunStage] = frozenset({RunStage.COMPLETED, RunStage.ERRORED})

_ALLOWED: Dict[RunStage, FrozenSet[RunStage]] = {
	RunStage.STARTED: frozenset({RunStage.RECOGNIZING}),
	RunStage.RECOGNIZING: frozenset({RunStage.RECOGNIZED, RunStage.ERRORED}),
	RunStage.RECOGNIZED: frozenset({RunStage.GENERATING}),
	RunStage.GENERATING: frozenset({RunStage.COMPLETED, RunStage.ERRORED}),
	RunStage.COMPLETED: frozenset(),
	RunStage.ERRORED: frozenset(),
}


def new_correlation_id() -> str:
	"""Return a time-based token that stays unique across runs started in the same instant."""
	return f"proc_{time.time_ns()}_{uuid.uuid4().hex[:8]}"


@dataclass
class ProcessingRun:
	"""Tracks the image, stage, and start time of one pipeline invocation."""

	correlation_id: str
	image_bytes: bytes
	stage: RunStage = RunStage.STARTED
	started_at: float = field(default_factory=time.monotonic)
	# Set once the terminal event (process_complete or process_error) has been published.
	reported: bool = False

	@property
	def finished(self) -> bool:
		return self.stage in TERMINAL_STAGES

	@property
	def elapsed(self) -> float:
		return time.monotonic() - self.started_at

	def advance(self, stage: RunStage) -> None:
		"""Move to `stage`, rejecting transitions the run state machine does not allow."""
		if stage not in _ALLOWED[self.stage]:
			raise RuntimeError(f"Run {self.correlation_id} cannot move from {self.stage.value} to {stage.value}")
		self.stage = stage
