"""
Quiz Session Lifecycle
======================

Composes the verifier, the session store and the batch coordinator into the
operations the transport layer calls: start a session, submit an answer (text
or audio), summarize the last batch, analyze the whole session and read a
session snapshot.

Every collaborator (question generation, speech-to-text, text-to-speech,
analysis) is best effort: its failures are logged and replaced by a neutral
default. Only an unknown session, an exhausted question list and a malformed
question come back to the caller, as ``QuizFailure`` results.
"""

from __future__ import annotations

import base64
import logging
import re
from typing import List, Optional, Protocol, Tuple, Union

from .batching import BatchCoordinator
from .errors import InvalidQuestionError, QuestionsExhaustedError, QuizError
from .models import (
	AnswerResult,
	BatchSummary,
	HistoryEntry,
	Question,
	QuizFailure,
	SessionAnalysis,
	SessionView,
	StartResult,
	WrongAnswer,
)
from .passages import UNKNOWN_SURAH, PassageLibrary
from .settings import Settings, settings as default_settings
from .store import SessionState, SessionStore
from .verifier import MatchPolicy, verify

logger = logging.getLogger(__name__)

NO_MISTAKES_MESSAGE = "ممتاز! أداء رائع بدون أخطاء في هذه الجولة! 🎉"
ANALYSIS_FALLBACK_MESSAGE = "تحتاج لمراجعة بعض الكلمات. حاول التركيز أكثر على النطق الصحيح."
NO_DATA_MESSAGE = "لا توجد بيانات كافية."
UNCLEAR_SPEECH = "غير واضح"

_GAP = re.compile(r"\.{3,}")


# ============================================================================
# COLLABORATOR INTERFACES
# ============================================================================

class BatchSource(Protocol):
	async def generate_questions(
		self, source_text: str, difficulty: str = "easy", count: int = 10, *, source_label: Optional[str] = None
	) -> List[Question]: ...


class Analyst(Protocol):
	async def analyze_mistakes(self, entries: List[HistoryEntry]) -> str: ...


class Transcriber(Protocol):
	async def transcribe(self, audio: bytes, *, context_hint: str = "", filename: str = "audio.webm") -> str: ...


class Synthesizer(Protocol):
	async def synthesize_correction(self, spoken_text: str, correct_word: str, is_correct: bool) -> Optional[bytes]: ...


def context_hint_for(question: Optional[Question]) -> str:
	"""The full verse (gap filled with the target) used to bias speech recognition."""
	if question is None:
		return ""
	return _GAP.sub(question.target_word, question.cloze_text)


# ============================================================================
# SERVICE
# ============================================================================

class QuizService:
	def __init__(
		self,
		*,
		generator: BatchSource,
		passages: PassageLibrary,
		analyst: Optional[Analyst] = None,
		transcriber: Optional[Transcriber] = None,
		synthesizer: Optional[Synthesizer] = None,
		store: Optional[SessionStore] = None,
		settings: Optional[Settings] = None,
	) -> None:
		self.settings = settings or default_settings
		self.generator = generator
		self.passages = passages
		self.analyst = analyst
		self.transcriber = transcriber
		self.synthesizer = synthesizer
		self.store = store or SessionStore()
		self.policy = MatchPolicy.from_settings(self.settings)
		self.coordinator = BatchCoordinator(
			self._next_batch,
			batch_size=self.settings.batch_size,
			prefetch_threshold=self.settings.prefetch_threshold,
		)

	# -- batch generation ----------------------------------------------------

	async def _generate_batch(self) -> Tuple[str, List[Question]]:
		"""Pick a random passage and ask for one batch of questions from it."""
		passage = self.passages.random_passage()
		label = passage.name or UNKNOWN_SURAH
		chunk = passage.text[: self.settings.source_chunk_chars]
		try:
			questions = await self.generator.generate_questions(
				chunk,
				self.settings.question_difficulty,
				self.settings.batch_size,
				source_label=label,
			)
		except Exception:
			logger.exception("Question generation failed for %s", label)
			questions = []
		return label, list(questions or [])

	async def _next_batch(self) -> List[Question]:
		_, questions = await self._generate_batch()
		return questions

	# -- operations ------------------------------------------------------------

	async def start_session(self) -> StartResult:
		label, questions = await self._generate_batch()
		state = self.store.add(SessionState(topic_label=label, questions=questions))
		if not questions:
			logger.warning("Session %s started without questions; generation unavailable", state.session_id)
		else:
			logger.info("New session %s [%s, %d questions]", state.session_id, label, len(questions))
		async with state.lock:
			view = state.snapshot()
		return StartResult(session=view, generation_unavailable=not questions)

	async def submit_answer(self, session_id: str, transcribed_text: Optional[str]) -> Union[AnswerResult, QuizFailure]:
		"""Check one answer against the current question of ``session_id``."""
		text = transcribed_text or ""
		try:
			state = self.store.require(session_id)
			result = await self._check_answer(state, text)
		except QuizError as err:
			logger.info("Answer rejected for session %s: %s", session_id, err.detail)
			return QuizFailure.from_error(err)

		if self.synthesizer is not None:
			result.feedback_audio = await self._feedback_audio(text, result.target, result.is_correct)
		return result

	async def _check_answer(self, state: SessionState, text: str) -> AnswerResult:
		async with state.lock:
			question = state.current_question()
			waiting = question is None and state.prefetch_in_flight
		if waiting:
			# Questions may be on their way; join the prefetch before giving up
			await self.coordinator.wait(state)

		async with state.lock:
			question = state.current_question()
			if question is None:
				raise QuestionsExhaustedError(
					f"No question available at index {state.current_index} of {len(state.questions)}"
				)
			try:
				verdict = verify(text, question.target_word, self.policy)
			except InvalidQuestionError as err:
				logger.error("Invalid question %s in session %s: %s", question.id, state.session_id, err.detail)
				raise

			logger.info(
				"Session %s: said %r (%s) expected %r (%s) -> %s",
				state.session_id, text, verdict.transcript, question.target_word, verdict.target, verdict.tier.value,
			)
			state.history.append(
				HistoryEntry(
					question_id=question.id,
					user_utterance=text,
					expected_word=question.target_word,
					cloze_text=question.cloze_text,
					is_correct=verdict.correct,
					match_tier=verdict.tier,
				)
			)
			if verdict.correct:
				self.coordinator.record_correct(state)

			show_summary = state.pending_summary
			state.pending_summary = False
			return AnswerResult(
				is_correct=verdict.correct,
				user_text=text,
				target=question.target_word,
				cloze_text=question.cloze_text,
				options=list(question.options),
				match_tier=verdict.tier,
				current_index=state.current_index,
				total_correct=state.total_correct,
				batch_position=state.batch_position,
				show_summary=show_summary,
			)

	async def _feedback_audio(self, spoken: str, target: str, is_correct: bool) -> Optional[str]:
		try:
			audio = await self.synthesizer.synthesize_correction(spoken or UNCLEAR_SPEECH, target, is_correct)
		except Exception:
			logger.exception("TTS generation failed")
			return None
		if not audio:
			return None
		return base64.b64encode(audio).decode("ascii")

	async def submit_audio_answer(
		self, session_id: str, audio: bytes, *, filename: str = "audio.webm"
	) -> Union[AnswerResult, QuizFailure]:
		"""Transcribe a recording (biased toward the current verse) and check it."""
		try:
			state = self.store.require(session_id)
		except QuizError as err:
			return QuizFailure.from_error(err)
		async with state.lock:
			hint = context_hint_for(state.current_question())

		text = ""
		if self.transcriber is None:
			logger.warning("No transcriber configured; treating recording as silence")
		else:
			try:
				text = (await self.transcriber.transcribe(audio, context_hint=hint, filename=filename)) or ""
			except Exception:
				logger.exception("STT error for session %s", session_id)
				text = ""
		return await self.submit_answer(session_id, text.strip())

	async def get_batch_summary(self, session_id: str) -> Union[BatchSummary, QuizFailure]:
		try:
			state = self.store.require(session_id)
		except QuizError as err:
			return QuizFailure.from_error(err)
		async with state.lock:
			last_batch = state.history[-self.settings.batch_size:]
			overall = state.total_correct
		wrong = [h for h in last_batch if not h.is_correct]
		correct_count = len(last_batch) - len(wrong)

		if wrong:
			analysis = await self._analyze(wrong, ANALYSIS_FALLBACK_MESSAGE)
		else:
			analysis = NO_MISTAKES_MESSAGE

		return BatchSummary(
			total_questions=len(last_batch),
			correct_count=correct_count,
			wrong_count=len(wrong),
			wrong_answers=[
				WrongAnswer(question=w.cloze_text, correct=w.expected_word, user_said=w.user_utterance)
				for w in wrong
			],
			analysis=analysis,
			overall_score=overall,
		)

	async def get_session_analysis(self, session_id: str) -> Union[SessionAnalysis, QuizFailure]:
		"""Analysis of the whole session history (not just the last batch)."""
		try:
			state = self.store.require(session_id)
		except QuizError as err:
			return QuizFailure.from_error(err)
		async with state.lock:
			history = list(state.history)
		analysis = await self._analyze(history, NO_DATA_MESSAGE) if history else NO_DATA_MESSAGE
		return SessionAnalysis(session_id=session_id, answered=len(history), analysis=analysis)

	async def _analyze(self, entries: List[HistoryEntry], fallback: str) -> str:
		if self.analyst is None:
			return fallback
		try:
			text = await self.analyst.analyze_mistakes(entries)
		except Exception:
			logger.exception("Performance analysis failed")
			return fallback
		return text or fallback

	async def get_session(self, session_id: str) -> Union[SessionView, QuizFailure]:
		try:
			state = self.store.require(session_id)
		except QuizError as err:
			return QuizFailure.from_error(err)
		async with state.lock:
			return state.snapshot()

	async def wait_for_prefetch(self, session_id: str) -> None:
		state = self.store.get(session_id)
		if state is not None:
			await self.coordinator.wait(state)

	async def aclose(self) -> None:
		await self.coordinator.drain()
