"""Speech-to-text for spoken answers (Google Cloud Speech-to-Text)."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import List, Optional

from google.cloud import speech_v1p1beta1 as speech

from .settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)

# Phrase hints are capped at 100 characters each by the API
_MAX_PHRASE_CHARS = 100
_MAX_PHRASES = 50

_ENCODINGS = {
	".webm": (speech.RecognitionConfig.AudioEncoding.WEBM_OPUS, 48000),
	".ogg": (speech.RecognitionConfig.AudioEncoding.OGG_OPUS, 48000),
	".opus": (speech.RecognitionConfig.AudioEncoding.OGG_OPUS, 48000),
	".mp3": (speech.RecognitionConfig.AudioEncoding.MP3, 44100),
	".flac": (speech.RecognitionConfig.AudioEncoding.FLAC, None),
	".wav": (speech.RecognitionConfig.AudioEncoding.LINEAR16, None),
}


def phrase_hints(context_hint: str) -> List[str]:
	"""Split the expected verse into speech-context phrases (whole verse first, then words)."""
	hint = " ".join((context_hint or "").split())
	if not hint:
		return []
	phrases: List[str] = []
	if len(hint) <= _MAX_PHRASE_CHARS:
		phrases.append(hint)
	for word in hint.split(" "):
		if word and word not in phrases:
			phrases.append(word[:_MAX_PHRASE_CHARS])
	return phrases[:_MAX_PHRASES]


class GoogleSpeechTranscriber:
	"""Transcribes short Arabic recordings, biased toward the verse being quizzed."""

	def __init__(self, settings: Optional[Settings] = None, *, client: Optional[speech.SpeechClient] = None) -> None:
		self.settings = settings or default_settings
		self._client = client

	def _get_client(self) -> speech.SpeechClient:
		if self._client is None:
			self._client = speech.SpeechClient()
		return self._client

	def _build_config(self, filename: str, context_hint: str) -> speech.RecognitionConfig:
		ext = os.path.splitext(filename or "")[1].lower() or ".webm"
		encoding, sample_rate = _ENCODINGS.get(ext, _ENCODINGS[".webm"])
		config = speech.RecognitionConfig(
			encoding=encoding,
			language_code=self.settings.speech_language_code,
			model="default",
			enable_automatic_punctuation=False,
			max_alternatives=1,
		)
		if sample_rate:
			config.sample_rate_hertz = sample_rate
		phrases = phrase_hints(context_hint)
		if phrases:
			config.speech_contexts = [speech.SpeechContext(phrases=phrases)]
		return config

	def _recognize(self, audio: bytes, filename: str, context_hint: str) -> str:
		config = self._build_config(filename, context_hint)
		response = self._get_client().recognize(config=config, audio=speech.RecognitionAudio(content=audio))
		parts = [r.alternatives[0].transcript for r in response.results if r.alternatives]
		return " ".join(p.strip() for p in parts if p.strip())

	async def transcribe(self, audio: bytes, *, context_hint: str = "", filename: str = "audio.webm") -> str:
		"""Return the transcript, "" when nothing was recognized. API errors propagate."""
		if not audio:
			return ""
		text = await asyncio.to_thread(self._recognize, audio, filename, context_hint)
		logger.info("Transcribed with context %r: %r", context_hint, text)
		return text
