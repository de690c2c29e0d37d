"""Batch progression and background prefetch.

Counters advance only on correct answers. When the position inside the current
batch reaches the prefetch threshold a single background task asks for the next
batch; when it reaches the batch size it wraps to zero and the summary flag is
raised for the caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Set

from .models import Question
from .store import SessionState

logger = logging.getLogger(__name__)

BatchFetcher = Callable[[], Awaitable[List[Question]]]


class BatchCoordinator:
	def __init__(self, fetch_batch: BatchFetcher, *, batch_size: int = 10, prefetch_threshold: int = 7) -> None:
		if not 0 < prefetch_threshold < batch_size:
			raise ValueError("prefetch_threshold must satisfy 0 < prefetch_threshold < batch_size")
		self._fetch_batch = fetch_batch
		self.batch_size = batch_size
		self.prefetch_threshold = prefetch_threshold
		self._tasks: Set[asyncio.Task] = set()

	def record_correct(self, state: SessionState) -> bool:
		"""Advance the counters of ``state`` after a correct answer.

		The caller must hold ``state.lock``. Returns True when this call started
		a prefetch.
		"""
		state.current_index += 1
		state.batch_position += 1
		state.total_correct += 1

		started = False
		if state.batch_position == self.prefetch_threshold and not state.prefetch_in_flight:
			self._start_prefetch(state)
			started = True

		if state.batch_position >= self.batch_size:
			state.batch_position = 0
			state.pending_summary = True
		return started

	def _start_prefetch(self, state: SessionState) -> None:
		# Flag goes up before the task exists so no second trigger can slip in
		state.prefetch_in_flight = True
		task = asyncio.create_task(self._prefetch(state), name=f"prefetch-{state.session_id}")
		state.prefetch_task = task
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)
		logger.info("Prefetching next batch for session %s", state.session_id)

	async def _prefetch(self, state: SessionState) -> None:
		try:
			batch = await self._fetch_batch()
		except asyncio.CancelledError:
			state.prefetch_in_flight = False
			raise
		except Exception:
			logger.exception("Prefetch failed for session %s", state.session_id)
			batch = []
		async with state.lock:
			state.questions.extend(batch)
			state.prefetch_in_flight = False
			total = len(state.questions)
		logger.info("Added %d more questions to session %s. Total: %d", len(batch), state.session_id, total)

	async def wait(self, state: SessionState) -> None:
		"""Join the prefetch of ``state`` if one is running. Never raises."""
		task = state.prefetch_task
		if task is None or task.done():
			return
		try:
			await asyncio.shield(task)
		except asyncio.CancelledError:
			if not task.cancelled():
				raise

	@property
	def in_flight(self) -> int:
		return len(self._tasks)

	async def drain(self) -> None:
		"""Wait for every running prefetch (shutdown, tests)."""
		if self._tasks:
			await asyncio.gather(*list(self._tasks), return_exceptions=True)
