from __future__ import annotations

import json
import logging
import os
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

UNKNOWN_SURAH = "سورة غير معروفة"


@dataclass(frozen=True)
class Passage:
	name: str
	text: str


# Used when the corpus file is missing or unreadable
_FALLBACK_SURAHS: List[Dict[str, Any]] = [
	{
		"name": "الكوثر",
		"text": {
			"1": "إِنَّا أَعْطَيْنَاكَ الْكَوْثَرَ",
			"2": "فَصَلِّ لِرَبِّكَ وَانْحَرْ",
			"3": "إِنَّ شَانِئَكَ هُوَ الْأَبْتَرُ",
		},
	},
	{
		"name": "الإخلاص",
		"text": {
			"1": "قُلْ هُوَ اللَّهُ أَحَدٌ",
			"2": "اللَّهُ الصَّمَدُ",
			"3": "لَمْ يَلِدْ وَلَمْ يُولَدْ",
			"4": "وَلَمْ يَكُن لَّهُ كُفُوًا أَحَدٌ",
		},
	},
	{
		"name": "العصر",
		"text": {
			"1": "وَالْعَصْرِ",
			"2": "إِنَّ الْإِنسَانَ لَفِي خُسْرٍ",
			"3": "إِلَّا الَّذِينَ آمَنُوا وَعَمِلُوا الصَّالِحَاتِ وَتَوَاصَوْا بِالْحَقِّ وَتَوَاصَوْا بِالصَّبْرِ",
		},
	},
]


def _passage_from_entry(entry: Dict[str, Any]) -> Optional[Passage]:
	text = entry.get("text")
	if isinstance(text, dict):
		joined = " ".join(str(v) for v in text.values())
	elif isinstance(text, list):
		joined = " ".join(str(v) for v in text)
	elif isinstance(text, str):
		joined = text
	else:
		return None
	joined = joined.strip()
	if not joined:
		return None
	return Passage(name=str(entry.get("name") or UNKNOWN_SURAH), text=joined)


class PassageLibrary:
	"""Loads the surah corpus and hands out random passages for question generation.

	The corpus is a JSON array of ``{"name": str, "text": {verse_no: verse}}``.
	"""

	def __init__(self, path: Optional[str] = None, *, rng: Optional[random.Random] = None) -> None:
		self.path = path
		self._rng = rng or random.Random()
		self.passages: List[Passage] = []
		self.load_all()

	def load_all(self) -> None:
		entries: List[Dict[str, Any]] = []
		if self.path and os.path.exists(self.path):
			try:
				with open(self.path, encoding="utf-8") as fh:
					data = json.load(fh)
				if isinstance(data, list):
					entries = [e for e in data if isinstance(e, dict)]
				else:
					logger.error("Skipping %s: expected a JSON array of surahs", self.path)
			except (OSError, ValueError) as e:
				logger.error("Failed to load %s: %s", self.path, e)
		elif self.path:
			logger.warning("Corpus file %s not found", self.path)

		self.passages = [p for p in (_passage_from_entry(e) for e in entries) if p is not None]
		if self.passages:
			logger.info("Loaded %d passages from %s", len(self.passages), self.path)
		else:
			logger.warning("No passages loaded. Using built-in fallback surahs.")
			self.passages = [p for p in (_passage_from_entry(e) for e in _FALLBACK_SURAHS) if p is not None]

	def random_passage(self) -> Passage:
		return self._rng.choice(self.passages)

	def __len__(self) -> int:
		return len(self.passages)
