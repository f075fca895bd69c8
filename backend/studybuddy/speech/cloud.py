from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from google.api_core.exceptions import GoogleAPIError
from google.cloud import speech

from ..errors import NoSpeechDetected, RecognitionError
from .capture import Recognizer

logger = logging.getLogger(__name__)


class CloudRecognizer(Recognizer):
	"""Single-utterance recognition of uploaded audio via Google Cloud Speech-to-Text.

	Credentials come from the usual Google application-default lookup
	(``GOOGLE_APPLICATION_CREDENTIALS``).
	"""
	name = "cloud"
	accepts_audio = True

	def __init__(self, client: Optional[Any] = None) -> None:
		super().__init__()
		self._client = client

	def _get_client(self) -> Any:
		if self._client is None:
			self._client = speech.SpeechClient()
		return self._client

	async def recognize(self, audio: bytes, language: str) -> str:
		if not audio:
			raise NoSpeechDetected()
		# The page uploads MediaRecorder output (audio/webm;codecs=opus)
		config = speech.RecognitionConfig(
			encoding=speech.RecognitionConfig.AudioEncoding.WEBM_OPUS,
			sample_rate_hertz=48000,
			language_code=language,
			enable_automatic_punctuation=True,
			max_alternatives=1,
		)
		try:
			client = self._get_client()
			response = await asyncio.to_thread(
				client.recognize,
				config=config,
				audio=speech.RecognitionAudio(content=audio),
			)
		except GoogleAPIError as e:
			logger.warning("Cloud speech recognition failed: %s", e)
			raise RecognitionError(type(e).__name__) from e
		# First final result only, matching the single-utterance browser behaviour
		for result in response.results:
			if result.alternatives and result.alternatives[0].transcript.strip():
				return result.alternatives[0].transcript
		raise NoSpeechDetected()
