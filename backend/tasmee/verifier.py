"""Tiered answer verification.

A transcription is judged against the target word by an ordered list of rules;
the first rule that accepts wins and is reported as the verdict's tier:

1. exact match of the normalized forms
2. the target appears inside the transcription (extra words spoken)
3. the transcription is a long enough piece of the target (clipped short word)
4. edit similarity above a length-dependent threshold (recognizer noise)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import InvalidQuestionError
from .normalizer import normalize
from .similarity import similarity

logger = logging.getLogger(__name__)


class MatchTier(str, Enum):
	EXACT = "exact"
	CONTAINS_TARGET = "contains_target"
	PARTIAL = "partial"
	FUZZY = "fuzzy"
	NO_MATCH = "no_match"


@dataclass(frozen=True)
class MatchPolicy:
	partial_min_len: int = 2
	partial_min_ratio: float = 0.65
	fuzzy_min_len: int = 3
	short_word_max_len: int = 4
	short_threshold: float = 0.65
	long_threshold: float = 0.8

	@classmethod
	def from_settings(cls, settings) -> "MatchPolicy":
		return cls(
			partial_min_len=settings.partial_min_len,
			partial_min_ratio=settings.partial_min_ratio,
			fuzzy_min_len=settings.fuzzy_min_len,
			short_word_max_len=settings.short_word_max_len,
			short_threshold=settings.similarity_threshold_short,
			long_threshold=settings.similarity_threshold_long,
		)

	def threshold_for(self, target_len: int) -> float:
		return self.short_threshold if target_len <= self.short_word_max_len else self.long_threshold


DEFAULT_POLICY = MatchPolicy()


@dataclass(frozen=True)
class Verdict:
	correct: bool
	tier: MatchTier
	transcript: str
	target: str
	score: Optional[float] = None


def verify(transcribed: Optional[str], target: Optional[str], policy: MatchPolicy = DEFAULT_POLICY) -> Verdict:
	"""Judge one answer.

	Raises:
		InvalidQuestionError: the target word is missing or has no letters left
			after normalization, so there is nothing to compare against.
	"""
	g = normalize(target)
	if not g:
		raise InvalidQuestionError(f"question has no usable target word: {target!r}")
	t = normalize(transcribed)

	if t == g:
		return Verdict(True, MatchTier.EXACT, t, g)
	if g in t:
		return Verdict(True, MatchTier.CONTAINS_TARGET, t, g)
	if t and t in g and len(t) >= policy.partial_min_len:
		ratio = len(t) / len(g)
		if ratio >= policy.partial_min_ratio:
			logger.debug("Partial match accepted: %s in %s (%.2f)", t, g, ratio)
			return Verdict(True, MatchTier.PARTIAL, t, g, ratio)
	if len(t) >= policy.fuzzy_min_len and len(g) >= policy.fuzzy_min_len:
		score = similarity(t, g)
		if score >= policy.threshold_for(len(g)):
			logger.debug("Fuzzy match accepted: %s vs %s (%.2f)", t, g, score)
			return Verdict(True, MatchTier.FUZZY, t, g, score)
		return Verdict(False, MatchTier.NO_MATCH, t, g, score)
	return Verdict(False, MatchTier.NO_MATCH, t, g)


def is_correct(transcribed: Optional[str], target: Optional[str], policy: MatchPolicy = DEFAULT_POLICY) -> bool:
	return verify(transcribed, target, policy).correct
