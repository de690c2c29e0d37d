from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
	NOT_FOUND = "session_not_found"
	EXHAUSTED = "no_question_available"
	INVALID_QUESTION = "invalid_question"


class QuizError(Exception):
	"""Base for the conditions reported back to callers as a ``QuizFailure``."""

	code: ErrorCode

	def __init__(self, detail: str = "") -> None:
		super().__init__(detail or self.code.value)
		self.detail = detail or self.code.value


class SessionNotFoundError(QuizError):
	code = ErrorCode.NOT_FOUND


class QuestionsExhaustedError(QuizError):
	code = ErrorCode.EXHAUSTED


class InvalidQuestionError(QuizError):
	code = ErrorCode.INVALID_QUESTION
