from __future__ import annotations
import httpx
from typing import Any, Dict, Optional, Tuple
from .errors import ModelNotFoundError, ProviderError
from .settings import settings

ANTHROPIC_BASE_URL = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class LLMClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		provider: Optional[str] = None,
		base_url: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.llm_api_key
		if not self.api_key:
			raise ProviderError("LLM API key is not configured")
		self.provider = provider or settings.llm_provider
		if self.provider == "anthropic":
			self.base_url = (base_url or settings.llm_base_url or ANTHROPIC_BASE_URL).rstrip("/")
		elif self.provider == "gemini":
			# Google AI Studio (Generative Language API)
			self.base_url = (base_url or settings.llm_base_url or GEMINI_BASE_URL).rstrip("/")
		else:
			raise ProviderError(f"Unsupported LLM provider: {self.provider}")
		self._client = httpx.AsyncClient(timeout=timeout or settings.llm_timeout_seconds, transport=transport)

	async def generate(
		self,
		prompt: str,
		*,
		model: str,
		max_tokens: Optional[int] = None,
		temperature: Optional[float] = None,
	) -> str:
		max_tokens = max_tokens or settings.llm_max_tokens
		if temperature is None:
			temperature = settings.llm_temperature
		if self.provider == "anthropic":
			url, headers, params, payload = self._anthropic_request(prompt, model, max_tokens, temperature)
		else:
			url, headers, params, payload = self._gemini_request(prompt, model, max_tokens, temperature)
		try:
			r = await self._client.post(url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			raise self._status_error(http_err.response, model) from http_err
		except httpx.RequestError as net_err:
			raise ProviderError(f"LLM request failed: {net_err}") from net_err
		try:
			data = r.json()
			if self.provider == "anthropic":
				return data["content"][0]["text"]
			return data["candidates"][0]["content"]["parts"][0]["text"]
		except Exception:
			raise ProviderError(f"Unexpected LLM response: {r.text}")

	async def aclose(self) -> None:
		await self._client.aclose()

	def _anthropic_request(
		self, prompt: str, model: str, max_tokens: int, temperature: float
	) -> Tuple[str, Dict[str, str], Dict[str, Any], Dict[str, Any]]:
		headers = {
			"x-api-key": self.api_key,
			"anthropic-version": ANTHROPIC_VERSION,
			"content-type": "application/json",
		}
		payload: Dict[str, Any] = {
			"model": model,
			"max_tokens": max_tokens,
			"temperature": temperature,
			"messages": [{"role": "user", "content": prompt}],
		}
		return f"{self.base_url}/messages", headers, {}, payload

	def _gemini_request(
		self, prompt: str, model: str, max_tokens: int, temperature: float
	) -> Tuple[str, Dict[str, str], Dict[str, Any], Dict[str, Any]]:
		payload: Dict[str, Any] = {
			"contents": [{"parts": [{"text": prompt}]}],
			"generationConfig": {"maxOutputTokens": max_tokens, "temperature": temperature},
		}
		return f"{self.base_url}/models/{model}:generateContent", {}, {"key": self.api_key}, payload

	def _status_error(self, response: httpx.Response, model: str) -> ProviderError:
		message = response.text
		kind = ""
		try:
			err = response.json().get("error") or {}
			message = err.get("message") or message
			# Anthropic reports {"type": "not_found_error"}, Gemini {"status": "NOT_FOUND"}
			kind = str(err.get("type") or err.get("status") or "").lower()
		except Exception:
			pass
		if response.status_code == 404 and "not_found" in kind:
			return ModelNotFoundError(model, message)
		return ProviderError(f"LLM provider error {response.status_code}: {message}", status_code=response.status_code)
