"""Orchestrate capture processing runs: recognize, generate, persist, broadcast."""

from __future__ import annotations

import asyncio
import base64
import dataclasses
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Optional

from dal.history_dal import HistoryStore
from models.events import BroadcastEvent
from models.processing_run import ProcessingRun, RunStage, new_correlation_id
from models.screenshot_record import ScreenshotRecord
from services.capabilities import AnswerGenerator, GeneratedAnswer, TextRecognizer
from services.errors import GenerationError, PersistenceError, RecognitionError
from services.realtime.broadcast_hub import BroadcastHub
from services.thumbnail_generator import ThumbnailGenerator

logger = logging.getLogger(__name__)

FALLBACK_ANSWER = "AI processing failed, but you can still view the recognized text."


class PipelineCoordinator:
	"""Run each submitted screenshot through OCR, answer generation, and persistence.

	Every run is an `asyncio.Task` tracked by its correlation id until it
	reaches a terminal stage. Events for one run are published sequentially
	to the hub, so viewers see them in causal order:
	`process_start` -> `ocr_complete`? -> `process_error` XOR `process_complete`.

	Args:
		recognizer: TextRecognizer capability.
		generator: AnswerGenerator capability.
		store: History store receiving completed records.
		hub: Broadcast hub for progress events.
		recognition_timeout: Seconds allowed for one recognition call.
		generation_timeout: Seconds allowed for one generation call.
		persistence_timeout: Seconds a run waits for the history write slot.
		max_concurrent_runs: Cap on runs doing blocking work at once; 0 means unbounded.
		thumbnails: Thumbnail generator for the stored inline image reference.
		clock: Wall clock used for record timestamps.
	"""

	def __init__(
		self,
		recognizer: TextRecognizer,
		generator: AnswerGenerator,
		store: HistoryStore,
		hub: BroadcastHub,
		*,
		recognition_timeout: float = 30.0,
		generation_timeout: float = 60.0,
		persistence_timeout: float = 10.0,
		max_concurrent_runs: int = 0,
		thumbnails: Optional[ThumbnailGenerator] = None,
		clock: Callable[[], float] = time.time,
	) -> None:
		self.recognizer = recognizer
		self.generator = generator
		self.store = store
		self.hub = hub
		self.recognition_timeout = recognition_timeout
		self.generation_timeout = generation_timeout
		self.persistence_timeout = persistence_timeout
		self.thumbnails = thumbnails or ThumbnailGenerator()
		self._clock = clock
		self._slots = asyncio.Semaphore(max_concurrent_runs) if max_concurrent_runs > 0 else None
		self._runs: Dict[str, asyncio.Task] = {}

	@property
	def in_flight(self) -> int:
		return len(self._runs)

	def submit(self, image_bytes: bytes) -> str:
		"""Start processing `image_bytes` and return the run's correlation id immediately.

		`process_start` is published before this returns. Must be called from
		the event loop thread.
		"""
		if not image_bytes:
			raise ValueError("Image bytes are required.")
		run = ProcessingRun(correlation_id=new_correlation_id(), image_bytes=image_bytes)
		self.hub.publish(BroadcastEvent.process_start(run.correlation_id))
		logger.info("Run %s started (%d bytes)", run.correlation_id, len(image_bytes))

		task = asyncio.create_task(self._run(run), name=f"pipeline-{run.correlation_id}")
		self._runs[run.correlation_id] = task
		task.add_done_callback(lambda _t, cid=run.correlation_id: self._runs.pop(cid, None))
		return run.correlation_id

	def task_for(self, correlation_id: str) -> Optional[asyncio.Task]:
		"""Return the task of an in-flight run, or None once it has finished."""
		return self._runs.get(correlation_id)

	async def wait(self, correlation_id: str) -> None:
		task = self._runs.get(correlation_id)
		if task is not None:
			await asyncio.shield(task)

	async def drain(self) -> None:
		"""Wait for every in-flight run to reach a terminal stage."""
		while self._runs:
			await asyncio.gather(*list(self._runs.values()), return_exceptions=True)

	@asynccontextmanager
	async def _admission(self) -> AsyncIterator[None]:
		if self._slots is None:
			yield
			return
		async with self._slots:
			yield

	async def _run(self, run: ProcessingRun) -> None:
		try:
			async with self._admission():
				await self._execute(run)
		except Exception as exc:
			logger.exception("Run %s failed unexpectedly in stage %s", run.correlation_id, run.stage.value)
			if not run.reported:
				self._report(run, BroadcastEvent.process_error(run.correlation_id, "internal", str(exc)))
		finally:
			logger.debug("Run %s ended in %s after %.2fs", run.correlation_id, run.stage.value, run.elapsed)

	async def _execute(self, run: ProcessingRun) -> None:
		cid = run.correlation_id

		run.advance(RunStage.RECOGNIZING)
		text = await self._recognize(run)
		if text is None:
			return
		run.advance(RunStage.RECOGNIZED)
		self.hub.publish(BroadcastEvent.ocr_complete(cid, text))
		logger.info("Run %s recognized %d characters", cid, len(text))

		run.advance(RunStage.GENERATING)
		generated = await self._generate(run, text)
		run.advance(RunStage.COMPLETED)

		record = ScreenshotRecord(
			id=None,
			timestamp=self._clock(),
			text=text,
			answer=generated.answer,
			title=generated.title,
			thumbnail=await self._thumbnail(run),
		)
		try:
			record_id = await self.store.append(record, lock_timeout=self.persistence_timeout)
		except PersistenceError as exc:
			logger.error("Run %s could not be saved: %s", cid, exc)
			self._report(run, BroadcastEvent.process_error(cid, "persistence", str(exc), record))
			return

		saved = dataclasses.replace(record, id=record_id)
		self._report(run, BroadcastEvent.process_complete(cid, saved))
		logger.info("Run %s completed as record %s", cid, record_id)

	async def _recognize(self, run: ProcessingRun) -> Optional[str]:
		"""Return the transcript, or None after reporting a recognition failure."""
		image_b64 = base64.b64encode(run.image_bytes).decode("ascii")
		try:
			return await asyncio.wait_for(self.recognizer.recognize(image_b64), timeout=self.recognition_timeout)
		except RecognitionError as exc:
			detail = f"OCR failed: {exc}"
		except asyncio.TimeoutError:
			detail = f"OCR timed out after {self.recognition_timeout:.0f}s"
		except Exception as exc:
			logger.exception("Recognizer %s raised unexpectedly", self.recognizer.name)
			detail = f"OCR failed: {exc}"

		logger.warning("Run %s: %s", run.correlation_id, detail)
		run.advance(RunStage.ERRORED)
		self._report(run, BroadcastEvent.process_error(run.correlation_id, "recognition", detail))
		return None

	async def _generate(self, run: ProcessingRun, text: str) -> GeneratedAnswer:
		"""Return the generated answer, or the fallback answer on any failure."""
		try:
			return await asyncio.wait_for(self.generator.generate_answer(text), timeout=self.generation_timeout)
		except GenerationError as exc:
			logger.warning("Run %s answer generation failed: %s", run.correlation_id, exc)
		except asyncio.TimeoutError:
			logger.warning("Run %s answer generation timed out after %.0fs", run.correlation_id, self.generation_timeout)
		except Exception:
			logger.exception("Generator %s raised unexpectedly", self.generator.name)
		return GeneratedAnswer(answer=FALLBACK_ANSWER)

	async def _thumbnail(self, run: ProcessingRun) -> str:
		try:
			return await asyncio.to_thread(self.thumbnails.create_thumbnail_data_url, run.image_bytes)
		except ValueError as exc:
			logger.warning("Run %s: no thumbnail stored (%s)", run.correlation_id, exc)
			return ""

	def _report(self, run: ProcessingRun, event: BroadcastEvent) -> None:
		run.reported = True
		self.hub.publish(event)
