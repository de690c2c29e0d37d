from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import ErrorCode, QuizError
from .verifier import MatchTier


class Question(BaseModel):
	"""One cloze item. ``cloze_text`` shows the verse with the target replaced by ``.....``."""
	model_config = ConfigDict(frozen=True)

	id: str = Field(default_factory=lambda: uuid.uuid4().hex)
	cloze_text: str
	target_word: str
	options: List[str] = Field(default_factory=list)
	source_label: Optional[str] = None


class HistoryEntry(BaseModel):
	model_config = ConfigDict(frozen=True)

	question_id: str
	user_utterance: str
	expected_word: str
	cloze_text: str = ""
	is_correct: bool
	match_tier: MatchTier = MatchTier.NO_MATCH


class SessionView(BaseModel):
	"""Read-only snapshot of a session, safe to hand to the transport layer."""
	session_id: str
	topic_label: str
	questions: List[Question]
	current_index: int
	batch_position: int
	total_correct: int
	history: List[HistoryEntry]
	prefetch_in_flight: bool
	created_at: datetime


class StartResult(BaseModel):
	session: SessionView
	generation_unavailable: bool = False


class AnswerResult(BaseModel):
	is_correct: bool
	user_text: str
	target: str
	cloze_text: str
	options: List[str]
	match_tier: MatchTier
	feedback_audio: Optional[str] = None  # base64 encoded audio/mpeg
	current_index: int
	total_correct: int
	batch_position: int
	show_summary: bool


class WrongAnswer(BaseModel):
	question: str
	correct: str
	user_said: str


class BatchSummary(BaseModel):
	total_questions: int
	correct_count: int
	wrong_count: int
	wrong_answers: List[WrongAnswer]
	analysis: str
	overall_score: int


class SessionAnalysis(BaseModel):
	session_id: str
	answered: int
	analysis: str


class QuizFailure(BaseModel):
	error: ErrorCode
	detail: str

	@classmethod
	def from_error(cls, err: QuizError) -> "QuizFailure":
		return cls(error=err.code, detail=err.detail)
