"""Shared fixtures and fake collaborators for Tasmee tests."""

from __future__ import annotations

import asyncio
from typing import List, Optional

import pytest

from tasmee.models import HistoryEntry, Question
from tasmee.passages import PassageLibrary
from tasmee.service import QuizService
from tasmee.settings import Settings


def make_questions(count: int = 10, target: str = "السلام", label: str = "الفاتحة") -> List[Question]:
	return [
		Question(
			cloze_text=f"{i} ..... عليكم",
			target_word=target,
			options=[target, "الكلام", "الغمام"],
			source_label=label,
		)
		for i in range(count)
	]


class FakeGenerator:
	"""Hands out pre-built batches; can block on a gate or fail on chosen calls."""

	def __init__(self, batches: Optional[List[List[Question]]] = None, *, default_size: int = 10, target: str = "السلام") -> None:
		self.batches = list(batches or [])
		self.default_size = default_size
		self.target = target
		self.calls: List[dict] = []
		self.gate: Optional[asyncio.Event] = None
		self.gate_from_call = 1
		self.fail_calls: set = set()

	async def generate_questions(self, source_text, difficulty="easy", count=10, *, source_label=None):
		call_no = len(self.calls)
		self.calls.append({"source_text": source_text, "difficulty": difficulty, "count": count, "label": source_label})
		if self.gate is not None and call_no >= self.gate_from_call:
			await self.gate.wait()
		if call_no in self.fail_calls:
			raise RuntimeError("generation backend down")
		if self.batches:
			return self.batches.pop(0)
		return make_questions(self.default_size, self.target)


class FakeAnalyst:
	def __init__(self, reply: str = "ركز على مخارج الحروف", *, fail: bool = False) -> None:
		self.reply = reply
		self.fail = fail
		self.received: List[List[HistoryEntry]] = []

	async def analyze_mistakes(self, entries):
		self.received.append(list(entries))
		if self.fail:
			raise RuntimeError("analysis unavailable")
		return self.reply


class FakeTranscriber:
	def __init__(self, text: str = "", *, fail: bool = False) -> None:
		self.text = text
		self.fail = fail
		self.calls: List[dict] = []

	async def transcribe(self, audio, *, context_hint="", filename="audio.webm"):
		self.calls.append({"audio": audio, "context_hint": context_hint, "filename": filename})
		if self.fail:
			raise RuntimeError("stt down")
		return self.text


class FakeSynthesizer:
	def __init__(self, audio: Optional[bytes] = b"mp3", *, fail: bool = False) -> None:
		self.audio = audio
		self.fail = fail
		self.calls: List[tuple] = []

	async def synthesize_correction(self, spoken_text, correct_word, is_correct):
		self.calls.append((spoken_text, correct_word, is_correct))
		if self.fail:
			raise RuntimeError("tts down")
		return self.audio


@pytest.fixture
def settings():
	return Settings(_env_file=None)


@pytest.fixture
def passages():
	return PassageLibrary(None)


@pytest.fixture
def generator():
	return FakeGenerator()


@pytest.fixture
def analyst():
	return FakeAnalyst()


@pytest.fixture
def service(settings, passages, generator, analyst):
	return QuizService(generator=generator, analyst=analyst, passages=passages, settings=settings)
