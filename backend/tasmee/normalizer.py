"""Arabic text normalization for answer comparison.

Speech recognizers emit plain dictation spelling while the quiz passages keep
full Quranic orthography (harakat, superscript alef, hamza seats). Both sides
are folded into the same letters-only form before they are compared.
"""

from __future__ import annotations

import re
from typing import Dict, Optional

SUPERSCRIPT_ALEF = "\u0670"
ALEF = "ا"

# Letter variants folded onto their base letter
_LETTER_FOLDS = (
	(re.compile("[أإآ\u0671]"), "ا"),  # hamza seats, madda, wasla
	(re.compile("ى"), "ي"),  # alef maksura
	(re.compile("ة"), "ه"),  # ta marbuta
	(re.compile("ؤ"), "و"),  # waw with hamza
	(re.compile("ئ"), "ي"),  # ya with hamza
)

_DIACRITICS = re.compile("[\u064B-\u065F\u0640]")
_NON_LETTERS = re.compile("[^\u0621-\u064A]")

# Quranic spellings that recognizers write in their common contracted form
SPELLING_EXCEPTIONS: Dict[str, str] = {
	"الرحمان": "الرحمن",
	"هاذا": "هذا",
	"هاذه": "هذه",
	"ذالك": "ذلك",
}


_MAX_EXCEPTION_PASSES = 8


def _apply_exceptions(text: str, table: Dict[str, str]) -> str:
	# Repeat whole passes until one leaves the text as it was
	for _ in range(_MAX_EXCEPTION_PASSES):
		rewritten = text
		for key, replacement in table.items():
			if key and key in rewritten:
				rewritten = rewritten.replace(key, replacement)
		if rewritten == text:
			break
		text = rewritten
	return text


def normalize(text: Optional[str], *, exceptions: Optional[Dict[str, str]] = None) -> str:
	"""Return the comparison form of ``text``.

	Steps, in order: superscript alef to alef, letter-variant folding, removal of
	harakat and tatweel, removal of everything that is not an Arabic letter
	(spaces included), spelling-exception rewrites, trim. Folding has to run
	before the diacritic pass so folded letters are never taken for marks.
	"""
	if not text:
		return ""
	normalized = text.replace(SUPERSCRIPT_ALEF, ALEF)
	for pattern, replacement in _LETTER_FOLDS:
		normalized = pattern.sub(replacement, normalized)
	normalized = _DIACRITICS.sub("", normalized)
	normalized = _NON_LETTERS.sub("", normalized)
	normalized = _apply_exceptions(normalized, SPELLING_EXCEPTIONS if exceptions is None else exceptions)
	return normalized.strip()
