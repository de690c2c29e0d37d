"""Spoken feedback after each answer (ElevenLabs text-to-speech)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)

ELEVENLABS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"


def correction_text(correct_word: str, is_correct: bool) -> str:
	if is_correct:
		return f"أحسنت! {correct_word}"
	return f"الإجابة الصحيحة هي: {correct_word}"


class ElevenLabsSynthesizer:
	def __init__(self, settings: Optional[Settings] = None, *, client: Optional[httpx.AsyncClient] = None) -> None:
		self.settings = settings or default_settings
		self._client = client or httpx.AsyncClient(timeout=30)

	async def synthesize_correction(self, spoken_text: str, correct_word: str, is_correct: bool) -> Optional[bytes]:
		"""Return MP3 bytes praising or correcting the learner, or None on any failure.

		``spoken_text`` is what the learner said; the voice line only repeats the
		correct word.
		"""
		api_key = self.settings.elevenlabs_api_key
		if not api_key:
			logger.warning("ElevenLabs API key missing; skipping feedback audio")
			return None
		payload: Dict[str, Any] = {
			"text": correction_text(correct_word, is_correct),
			"model_id": self.settings.elevenlabs_model_id,
			"voice_settings": {
				"stability": 0.75,
				"similarity_boost": 0.85,
				"style": 0.5,
				"use_speaker_boost": True,
			},
		}
		headers = {
			"Accept": "audio/mpeg",
			"xi-api-key": api_key,
			"Content-Type": "application/json",
		}
		try:
			r = await self._client.post(
				ELEVENLABS_URL.format(voice_id=self.settings.elevenlabs_voice_id),
				params={"output_format": "mp3_44100_128"},
				headers=headers,
				json=payload,
			)
			r.raise_for_status()
		except httpx.HTTPStatusError as e:
			logger.error("TTS error %s: %s", e.response.status_code, e.response.text[:200])
			return None
		except httpx.RequestError as e:
			logger.error("TTS request failed: %s", e)
			return None
		return r.content or None

	async def aclose(self) -> None:
		await self._client.aclose()
