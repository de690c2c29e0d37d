"""
Question generation and performance analysis via Gemini.

Builds fill-the-gap questions from a passage of Quranic text and writes short
Arabic feedback on a learner's mistakes. Both calls go through ``GeminiClient``
(OpenRouter fallback when configured).
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Iterable, List, Optional

from .gemini_client import GeminiClient
from .models import HistoryEntry, Question
from .normalizer import normalize
from .settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)

CLOZE_GAP = "....."
_GAP_PATTERN = re.compile(r"\.{3,}|…+")


def _extract_json_array(text: str) -> List[Any]:
	"""Extract a JSON array from LLM response text.

	Markdown code fences are stripped first; if the whole text does not parse,
	the first ``[...]`` block is tried.

	Raises:
		ValueError: If no JSON array can be extracted from the text
	"""
	cleaned = re.sub(r"```(?:json)?", "", text or "").strip()
	try:
		data = json.loads(cleaned)
		if isinstance(data, dict):
			# Some models wrap the list: {"questions": [...]}
			for value in data.values():
				if isinstance(value, list):
					return value
		if isinstance(data, list):
			return data
	except ValueError:
		pass
	match = re.search(r"\[[\s\S]*\]", cleaned)
	if match:
		try:
			data = json.loads(match.group(0))
			if isinstance(data, list):
				return data
		except ValueError:
			pass
	raise ValueError("Failed to parse JSON array from model output")


def _normalize_gap(cloze: str) -> str:
	return _GAP_PATTERN.sub(CLOZE_GAP, cloze)


def parse_questions(raw: str, *, source_label: Optional[str] = None) -> List[Question]:
	"""Turn model output into ``Question`` objects, skipping malformed items."""
	questions: List[Question] = []
	for item in _extract_json_array(raw):
		if not isinstance(item, dict):
			continue
		target = str(item.get("targetWord") or item.get("correctAnswer") or "").strip()
		cloze = str(item.get("clozeText") or "").strip()
		if not target or not cloze:
			logger.warning("Dropping generated item without target or cloze text: %r", item)
			continue
		if not normalize(target):
			# Such a target could never be answered
			logger.warning("Dropping generated item with no Arabic letters in its target: %r", item)
			continue
		if CLOZE_GAP[:3] not in cloze and target in cloze:
			cloze = cloze.replace(target, CLOZE_GAP, 1)
		options = [str(o).strip() for o in (item.get("options") or []) if str(o).strip()]
		if target not in options:
			options.insert(0, target)
		questions.append(
			Question(
				cloze_text=_normalize_gap(cloze),
				target_word=target,
				options=options,
				source_label=source_label,
			)
		)
	return questions


def _build_question_prompt(source_text: str, difficulty: str, count: int) -> str:
	return f"""
You are an experienced Quran teacher. Write fill-in-the-gap recall questions from the Quranic text below.

Generate exactly {count} questions at "{difficulty}" difficulty.

For each question:
1. Pick one complete verse from the text.
2. Pick one meaningful word of that verse to hide (targetWord).
3. Write clozeText: the verse with the hidden word replaced by "{CLOZE_GAP}" and nothing else changed.
4. Give 3 options: the correct word plus two plausible but wrong words.

Rules:
- Never put the correct word inside clozeText.
- Keep the full diacritics (tashkeel) in every Arabic string.
- Output Arabic text exactly as written in the source.

Quranic text:
{source_text}

Return STRICT JSON only, no markdown, following exactly this schema:
[
  {{
    "clozeText": string,
    "targetWord": string,
    "options": [string, string, string]
  }}
]

Example: for the verse "إِنَّا أَعْطَيْنَاكَ الْكَوْثَرَ" hiding "الْكَوْثَرَ", clozeText is "إِنَّا أَعْطَيْنَاكَ {CLOZE_GAP}".
""".strip()


def _build_analysis_prompt(entries: Iterable[HistoryEntry]) -> str:
	rows = [
		{
			"question": e.cloze_text,
			"expected": e.expected_word,
			"said": e.user_utterance,
			"correct": e.is_correct,
		}
		for e in entries
	]
	return f"""
Analyze the following student performance history in Quran recitation recall:
{json.dumps(rows, ensure_ascii=False)}

Give a concise summary of weaknesses (for example letters or sounds the student confuses, words that are cut short) and practical tips for improvement.
Answer in Arabic, in at most five sentences.
""".strip()


class QuestionGenerator:
	"""Gemini-backed question source and mistake analyst."""

	def __init__(
		self,
		settings: Optional[Settings] = None,
		*,
		client_factory: Optional[Callable[[], GeminiClient]] = None,
	) -> None:
		self.settings = settings or default_settings
		self._client_factory = client_factory or (lambda: GeminiClient(settings=self.settings))

	async def generate_questions(
		self,
		source_text: str,
		difficulty: str = "easy",
		count: int = 10,
		*,
		source_label: Optional[str] = None,
	) -> List[Question]:
		"""Generate up to ``count`` questions. Any failure yields an empty list."""
		client: Optional[GeminiClient] = None
		try:
			client = self._client_factory()
			raw = await client.generate(_build_question_prompt(source_text, difficulty, count), json_output=True)
			questions = parse_questions(raw, source_label=source_label)
		except Exception:
			logger.exception("Question generation failed")
			return []
		finally:
			if client is not None:
				await client.aclose()
		if len(questions) > count:
			questions = questions[:count]
		logger.info("Generated %d questions (%s)", len(questions), source_label or "unlabelled")
		return questions

	async def analyze_mistakes(self, entries: List[HistoryEntry]) -> str:
		client = self._client_factory()
		try:
			text = await client.generate(_build_analysis_prompt(entries))
		finally:
			await client.aclose()
		return text.strip()
