from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, List, Optional, Sequence
from .errors import ConfigurationMissing, ContentBlocked, MalformedResponse, NetworkError, RequestFailed
from .models import Message
from .settings import settings

logger = logging.getLogger(__name__)


class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key if api_key is not None else settings.gemini_api_key
		self.model = model or settings.gemini_model
		# Google AI Studio (Generative Language API), key travels as a query parameter
		self.base_url = base_url or settings.gemini_base_url.format(model=self.model)
		self._client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds, transport=transport)

	@property
	def configured(self) -> bool:
		return bool(self.api_key)

	async def send(self, messages: Sequence[Message], response_schema: Optional[Dict[str, Any]] = None) -> str:
		"""Issue one generateContent call and return the primary text verbatim.

		When ``response_schema`` is given the service is asked for JSON matching it;
		decoding that JSON is left to the caller. A single attempt is made.
		"""
		if not self.api_key:
			raise ConfigurationMissing()
		if not messages or not any(m.has_text() for m in messages):
			raise ValueError("at least one message with non-empty text is required")
		payload: Dict[str, Any] = {"contents": [m.model_dump() for m in messages]}
		if response_schema is not None:
			payload["generationConfig"] = {
				"responseMimeType": "application/json",
				"responseSchema": response_schema,
			}
		return await self._post_payload(payload)

	async def generate(self, prompt: str, *, response_schema: Optional[Dict[str, Any]] = None) -> str:
		return await self.send([Message.user(prompt)], response_schema)

	async def _post_payload(self, payload: Dict[str, Any]) -> str:
		params: Dict[str, Any] = {"key": self.api_key}
		try:
			r = await self._client.post(self.base_url, params=params, json=payload)
		except httpx.RequestError as net_err:
			logger.warning("Gemini request could not be sent: %s", type(net_err).__name__)
			raise NetworkError(f"Could not reach the AI service ({type(net_err).__name__}).") from net_err
		if r.is_error:
			logger.warning("Gemini API error response (status %s): %s", r.status_code, r.text[:500])
			raise RequestFailed(r.status_code)
		try:
			data = r.json()
		except ValueError as err:
			raise MalformedResponse() from err
		return _extract_text(data)

	async def aclose(self) -> None:
		await self._client.aclose()


def _extract_text(data: Any) -> str:
	try:
		parts: List[Dict[str, Any]] = data["candidates"][0]["content"]["parts"]
		text = parts[0]["text"]
	except (KeyError, IndexError, TypeError):
		block_reason = None
		prompt_feedback = data.get("promptFeedback") if isinstance(data, dict) else None
		if isinstance(prompt_feedback, dict):
			block_reason = prompt_feedback.get("blockReason")
		if block_reason:
			logger.warning("Gemini blocked the prompt: %s", block_reason)
			raise ContentBlocked(str(block_reason))
		logger.warning("Unexpected Gemini response structure: %s", str(data)[:500])
		raise MalformedResponse()
	if not isinstance(text, str):
		raise MalformedResponse()
	return text
