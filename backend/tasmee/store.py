"""In-process session registry.

Each ``SessionState`` carries its own ``asyncio.Lock``; every mutation of a
session, and every snapshot taken of it, happens while holding that lock. The
store is a plain mapping; none of its operations await.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .errors import SessionNotFoundError
from .models import HistoryEntry, Question, SessionView


class SessionState:
	"""
	Mutable state of one quiz run.

	Attributes:
		session_id: Unique identifier for the session
		topic_label: Display name of the passage the first batch came from
		questions: Append-only list of questions (grows through prefetch)
		current_index: Index of the next unanswered question
		batch_position: Correct answers so far in the current batch
		total_correct: Correct answers over the whole session
		history: Every answer attempt, in processing order
		prefetch_in_flight: True while a background batch fetch is running
		prefetch_task: Handle of the running (or last) prefetch task
		pending_summary: Set when a batch boundary was crossed, cleared once reported
	"""

	def __init__(self, topic_label: str, questions: Optional[List[Question]] = None) -> None:
		self.session_id: str = uuid.uuid4().hex
		self.topic_label: str = topic_label
		self.questions: List[Question] = list(questions or [])
		self.current_index: int = 0
		self.batch_position: int = 0
		self.total_correct: int = 0
		self.history: List[HistoryEntry] = []
		self.prefetch_in_flight: bool = False
		self.prefetch_task: Optional[asyncio.Task] = None
		self.pending_summary: bool = False
		self.created_at: datetime = datetime.now(timezone.utc)
		self.lock: asyncio.Lock = asyncio.Lock()

	def current_question(self) -> Optional[Question]:
		if self.current_index < len(self.questions):
			return self.questions[self.current_index]
		return None

	def snapshot(self) -> SessionView:
		return SessionView(
			session_id=self.session_id,
			topic_label=self.topic_label,
			questions=list(self.questions),
			current_index=self.current_index,
			batch_position=self.batch_position,
			total_correct=self.total_correct,
			history=list(self.history),
			prefetch_in_flight=self.prefetch_in_flight,
			created_at=self.created_at,
		)


class SessionStore:
	def __init__(self) -> None:
		self._sessions: Dict[str, SessionState] = {}

	def add(self, state: SessionState) -> SessionState:
		self._sessions[state.session_id] = state
		return state

	def get(self, session_id: str) -> Optional[SessionState]:
		return self._sessions.get(session_id)

	def require(self, session_id: str) -> SessionState:
		state = self._sessions.get(session_id)
		if state is None:
			raise SessionNotFoundError(f"Session not found: {session_id}")
		return state

	def __contains__(self, session_id: object) -> bool:
		return session_id in self._sessions

	def __len__(self) -> int:
		return len(self._sessions)
