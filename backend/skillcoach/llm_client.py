from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import httpx

from .errors import GenerationFailed
from .settings import settings


logger = logging.getLogger(__name__)


class LLMClient:
	"""Gemini REST caller with an optional OpenRouter fallback."""

	def __init__(self, api_key: Optional[str] = None, *, model: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise GenerationFailed("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		if settings.gemini_provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			self.base_url = (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			self.base_url = f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		self._client = httpx.AsyncClient(timeout=settings.llm_timeout_seconds, transport=transport)
		self._fallback_enabled = bool(settings.openrouter_api_key)

	async def generate(self, prompt: str) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		payload = {"contents": [{"parts": [{"text": prompt}]}]}
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
			data = r.json()
			return data["candidates"][0]["content"]["parts"][0]["text"]
		except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as primary_err:
			if not self._fallback_enabled:
				raise GenerationFailed("Language model call failed", details={"reason": primary_err.__class__.__name__}) from primary_err
			logger.warning("gemini call failed (%s), trying OpenRouter", primary_err.__class__.__name__)
			return await self._fallback_generate(prompt, primary_err)

	async def _fallback_generate(self, prompt: str, primary_error: Exception) -> str:
		headers = {
			"Authorization": f"Bearer {settings.openrouter_api_key}",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		payload: Dict[str, Any] = {
			"model": settings.openrouter_model,
			"messages": [{"role": "user", "content": prompt}],
		}
		try:
			r = await self._client.post(settings.openrouter_base_url, headers=headers, json=payload)
			r.raise_for_status()
			return r.json()["choices"][0]["message"]["content"]
		except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as fallback_err:
			raise GenerationFailed(
				f"Gemini primary call failed ({primary_error.__class__.__name__}); fallback via OpenRouter also failed"
			) from fallback_err

	async def aclose(self) -> None:
		await self._client.aclose()


async def get_llm_client():
	client = LLMClient()
	try:
		yield client
	finally:
		await client.aclose()
