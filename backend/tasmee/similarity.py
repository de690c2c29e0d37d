from __future__ import annotations


def levenshtein(a: str, b: str) -> int:
	"""Unit-cost edit distance (insert, delete, substitute)."""
	if len(a) < len(b):
		a, b = b, a
	if not b:
		return len(a)
	prev = list(range(len(b) + 1))
	for i, ca in enumerate(a):
		curr = [i + 1]
		for j, cb in enumerate(b):
			cost = 0 if ca == cb else 1
			curr.append(min(curr[j] + 1, prev[j + 1] + 1, prev[j] + cost))
		prev = curr
	return prev[-1]


def similarity(a: str, b: str) -> float:
	"""Normalised edit similarity in [0, 1]; 1.0 for two empty strings."""
	longest = max(len(a), len(b))
	if longest == 0:
		return 1.0
	if not a or not b:
		return 0.0
	return (longest - levenshtein(a, b)) / longest
