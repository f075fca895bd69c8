"""
Speech Capture Adapter
======================

Wraps a single-utterance speech-to-text capability. The recognizer itself is
provided by the host: the page's Web Speech API (relayed over HTTP) or Google
Cloud Speech-to-Text for uploaded audio. Whatever the backend, one capture
session emits at most one of ``TranscriptReady`` / ``CaptureError`` and then
exactly one ``CaptureEnded``.
"""

from __future__ import annotations

import logging
import re
from typing import Awaitable, Callable, List, Optional, Union

from ..errors import InvalidTransition, NoSpeechDetected, RecognitionError, StudyBuddyError

logger = logging.getLogger(__name__)

# Error code the Web Speech API reports when the silence timeout expires
NO_SPEECH_CODE = "no-speech"


class TranscriptReady:
	def __init__(self, transcript: str) -> None:
		self.transcript = transcript


class CaptureError:
	def __init__(self, error: StudyBuddyError) -> None:
		self.error = error


class CaptureEnded:
	pass


CaptureEvent = Union[TranscriptReady, CaptureError, CaptureEnded]
Listener = Callable[[CaptureEvent], Awaitable[None]]


def _normalize_transcript(text: str) -> str:
	return re.sub(r"\s+", " ", text or "").strip()


class Recognizer:
	"""Host speech-to-text capability.

	``command`` and ``language`` hold the last instruction issued; the toggle
	endpoint returns them so the page can apply them to its own recognizer or
	recorder.
	"""
	name = "recognizer"
	accepts_audio = False
	# Whether results arrive as events relayed by the page
	relays_events = False

	def __init__(self) -> None:
		self.command: Optional[str] = None
		self.language: Optional[str] = None

	def start(self, language: str) -> None:
		self.command = "start"
		self.language = language

	def stop(self) -> None:
		self.command = "stop"

	async def recognize(self, audio: bytes, language: str) -> str:
		raise InvalidTransition(f"The {self.name} speech backend does not accept uploaded audio")


class BrowserRecognizer(Recognizer):
	# Web Speech API: continuous=false, interimResults=false, results relayed by the page
	name = "browser"
	relays_events = True


class SpeechCapture:
	def __init__(self, recognizer: Recognizer, language: str = "en-US") -> None:
		self.recognizer = recognizer
		self.language = language
		self.active = False
		self._settled = False
		self._listeners: List[Listener] = []

	def subscribe(self, listener: Listener) -> Callable[[], None]:
		self._listeners.append(listener)

		def unsubscribe() -> None:
			if listener in self._listeners:
				self._listeners.remove(listener)

		return unsubscribe

	@property
	def listener_count(self) -> int:
		return len(self._listeners)

	def start(self) -> None:
		if self.active:
			raise InvalidTransition("A capture session is already active")
		self.active = True
		self._settled = False
		self.recognizer.start(self.language)
		logger.debug("Capture started (%s, %s)", self.recognizer.name, self.language)

	async def stop(self) -> None:
		"""End the capture session now, without waiting for the host to confirm.

		A result or end event the host reports afterwards is dropped, so a page
		that reloaded mid-recording can never leave the session open.
		"""
		if not self.active:
			return
		self.recognizer.stop()
		logger.debug("Capture stopped")
		await self.deliver_end()

	async def deliver_transcript(self, transcript: str) -> None:
		if not self._accepting():
			return
		self._settled = True
		text = _normalize_transcript(transcript)
		if not text:
			await self._emit(CaptureError(NoSpeechDetected()))
			return
		await self._emit(TranscriptReady(text))

	async def deliver_error(self, code: str) -> None:
		if not self._accepting():
			return
		self._settled = True
		error: StudyBuddyError = NoSpeechDetected() if code == NO_SPEECH_CODE else RecognitionError(code)
		logger.info("Capture error: %s", code)
		await self._emit(CaptureError(error))

	async def deliver_end(self) -> None:
		if not self.active:
			return
		self.active = False
		await self._emit(CaptureEnded())

	async def submit_audio(self, audio: bytes) -> None:
		"""Recognize an uploaded utterance and close the capture session."""
		if not self.recognizer.accepts_audio:
			raise InvalidTransition(f"The {self.recognizer.name} speech backend does not accept uploaded audio")
		if not self.active:
			raise InvalidTransition("No capture session is active")
		try:
			transcript = await self.recognizer.recognize(audio, self.language)
		except NoSpeechDetected:
			await self.deliver_error(NO_SPEECH_CODE)
		except RecognitionError as e:
			await self.deliver_error(e.error_code)
		else:
			await self.deliver_transcript(transcript)
		finally:
			await self.deliver_end()

	def _accepting(self) -> bool:
		if not self.active or self._settled:
			logger.debug("Dropping capture event outside an open capture session")
			return False
		return True

	async def _emit(self, event: CaptureEvent) -> None:
		# Copy: listeners may unsubscribe while handling CaptureEnded
		for listener in list(self._listeners):
			await listener(event)
