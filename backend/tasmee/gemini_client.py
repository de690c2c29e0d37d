"""Thin async client for Gemini ``generateContent`` with an OpenRouter fallback.

Question generation asks for JSON output; the analysis call asks for plain
text. Both go through ``GeminiClient.generate``. When a Gemini key is missing
or the call fails, the same prompt is replayed against OpenRouter's chat
completions API if an OpenRouter key is configured.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from .settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def _gemini_endpoint(cfg: Settings, model: str) -> Tuple[str, bool]:
	"""Return ``(url, key_in_query)`` for the configured Gemini provider."""
	if cfg.gemini_provider == "vertex":
		region = cfg.vertex_region
		project = cfg.vertex_project or "placeholder-project"
		# Vertex AI Express takes the key as a header
		url = (
			f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}"
			f"/locations/{region}/publishers/google/models/{model}:generateContent"
		)
		return url, False
	return f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent", True


def _candidate_text(response: httpx.Response) -> str:
	try:
		return response.json()["candidates"][0]["content"]["parts"][0]["text"]
	except (ValueError, KeyError, IndexError, TypeError):
		raise RuntimeError(f"Unexpected Gemini response: {response.text[:500]}")


def _choice_text(response: httpx.Response) -> str:
	try:
		return response.json()["choices"][0]["message"]["content"]
	except (ValueError, KeyError, IndexError, TypeError):
		raise RuntimeError(f"Unexpected OpenRouter response: {response.text[:500]}")


class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		settings: Optional[Settings] = None,
		timeout: float = 30,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		cfg = settings or default_settings
		self.api_key = api_key or cfg.gemini_api_key
		self.openrouter_key = cfg.openrouter_api_key
		if not self.api_key and not self.openrouter_key:
			raise ValueError("Neither GEMINI_API_KEY nor OPENROUTER_API_KEY is configured")
		self.model = model or cfg.gemini_model
		url, self._key_in_query = _gemini_endpoint(cfg, self.model)
		self.base_url = base_url or url
		self._openrouter_url = cfg.openrouter_base_url
		self._openrouter_model = cfg.openrouter_model
		self._openrouter_headers = {
			"Authorization": f"Bearer {self.openrouter_key}",
			"HTTP-Referer": cfg.openrouter_referer,
			"X-Title": cfg.openrouter_title,
		}
		# One pooled client serves both providers
		self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

	async def __aenter__(self) -> "GeminiClient":
		return self

	async def __aexit__(self, *exc_info: Any) -> None:
		await self.aclose()

	async def generate(self, prompt: str, *, json_output: bool = False, temperature: Optional[float] = None) -> str:
		"""Return the model's text for ``prompt``.

		``json_output`` asks either provider for a JSON response body. Gemini
		errors propagate unless OpenRouter is configured, in which case the
		prompt is retried there.
		"""
		if not self.api_key:
			return await self._openrouter(prompt, json_output=json_output, temperature=temperature)
		try:
			return await self._gemini(prompt, json_output=json_output, temperature=temperature)
		except (httpx.HTTPError, RuntimeError) as err:
			if not self.openrouter_key:
				raise
			logger.warning("Gemini call failed (%s); retrying via OpenRouter", err)
			try:
				return await self._openrouter(prompt, json_output=json_output, temperature=temperature)
			except (httpx.HTTPError, RuntimeError) as fallback_err:
				raise RuntimeError(
					f"Gemini call failed ({err}); OpenRouter fallback also failed ({fallback_err})"
				) from fallback_err

	async def _gemini(self, prompt: str, *, json_output: bool, temperature: Optional[float]) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
		config: Dict[str, Any] = {}
		if json_output:
			config["responseMimeType"] = "application/json"
		if temperature is not None:
			config["temperature"] = temperature
		if config:
			payload["generationConfig"] = config
		params: Dict[str, str] = {}
		headers: Dict[str, str] = {}
		if self._key_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		r = await self._http.post(self.base_url, params=params, headers=headers, json=payload)
		r.raise_for_status()
		return _candidate_text(r)

	async def _openrouter(self, prompt: str, *, json_output: bool, temperature: Optional[float]) -> str:
		payload: Dict[str, Any] = {
			"model": self._openrouter_model,
			"messages": [{"role": "user", "content": prompt}],
		}
		if json_output:
			payload["response_format"] = {"type": "json_object"}
		if temperature is not None:
			payload["temperature"] = temperature
		headers = {k: v for k, v in self._openrouter_headers.items() if v}
		r = await self._http.post(self._openrouter_url, headers=headers, json=payload)
		r.raise_for_status()
		return _choice_text(r)

	async def aclose(self) -> None:
		await self._http.aclose()
