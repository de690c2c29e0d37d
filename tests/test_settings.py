import pytest
from pydantic import ValidationError

from tasmee.settings import Settings


def test_defaults():
	s = Settings(_env_file=None)
	assert s.batch_size == 10
	assert s.prefetch_threshold == 7
	assert s.similarity_threshold_short == 0.65
	assert s.similarity_threshold_long == 0.8
	assert s.short_word_max_len == 4
	assert s.partial_min_len == 2
	assert s.partial_min_ratio == 0.65


@pytest.mark.parametrize("threshold", [0, 10, 11])
def test_prefetch_threshold_must_sit_inside_batch(threshold):
	with pytest.raises(ValidationError):
		Settings(_env_file=None, prefetch_threshold=threshold)


def test_environment_overrides(monkeypatch):
	monkeypatch.setenv("BATCH_SIZE", "12")
	monkeypatch.setenv("PREFETCH_THRESHOLD", "9")
	monkeypatch.setenv("SIMILARITY_THRESHOLD_LONG", "0.85")
	s = Settings(_env_file=None)
	assert s.batch_size == 12
	assert s.prefetch_threshold == 9
	assert s.similarity_threshold_long == 0.85


def test_env_file(tmp_path):
	env = tmp_path / ".env"
	env.write_text("BATCH_SIZE=5\nPREFETCH_THRESHOLD=3\n", encoding="utf-8")
	s = Settings(_env_file=str(env))
	assert (s.batch_size, s.prefetch_threshold) == (5, 3)
