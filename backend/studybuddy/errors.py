from __future__ import annotations
from typing import Optional


class StudyBuddyError(Exception):
	"""Base class for every failure the study session can surface.

	Each failure carries a stable ``code`` (used by the page and in logs) and a
	``message`` suitable for showing to the user as a dismissible notice.
	"""
	code: str = "error"

	def __init__(self, message: str) -> None:
		super().__init__(message)
		self.message = message


class ConfigurationMissing(StudyBuddyError):
	code = "configuration_missing"

	def __init__(self, message: str = "API Key is missing. Please set GEMINI_API_KEY in your environment or .env file.") -> None:
		super().__init__(message)


class InsufficientInput(StudyBuddyError):
	code = "insufficient_input"

	def __init__(self, min_chars: int = 50) -> None:
		super().__init__(
			f"Please paste a more substantial amount of text (at least {min_chars} characters) for better question generation."
		)
		self.min_chars = min_chars


class NetworkError(StudyBuddyError):
	code = "network_error"


class RequestFailed(StudyBuddyError):
	code = "request_failed"

	def __init__(self, status: int) -> None:
		super().__init__(f"API request failed with status {status}.")
		self.status = status


class ContentBlocked(StudyBuddyError):
	code = "content_blocked"

	def __init__(self, reason: str) -> None:
		super().__init__(f"Request was blocked: {reason}")
		self.reason = reason


class MalformedResponse(StudyBuddyError):
	code = "malformed_response"

	def __init__(self, message: str = "The AI returned an empty or invalid response.") -> None:
		super().__init__(message)


class GenerationFailed(StudyBuddyError):
	code = "generation_failed"

	def __init__(self, message: str = "The AI failed to generate questions in the expected format.") -> None:
		super().__init__(message)


class NoSpeechDetected(StudyBuddyError):
	code = "no_speech"

	def __init__(self) -> None:
		super().__init__("I didn't hear anything. Please try speaking again.")


class RecognitionError(StudyBuddyError):
	code = "recognition_error"

	def __init__(self, error_code: str) -> None:
		super().__init__(f"Speech recognition error: {error_code}")
		self.error_code = error_code


class PlaybackUnavailable(StudyBuddyError):
	code = "playback_unavailable"

	def __init__(self, message: str = "Text-to-speech is not supported or there is no feedback to read.") -> None:
		super().__init__(message)


# Caller errors: the UI contract forbids these, so they are rejected rather than surfaced


class CallInFlight(StudyBuddyError):
	code = "call_in_flight"

	def __init__(self, label: Optional[str] = None) -> None:
		detail = f" ({label})" if label else ""
		super().__init__(f"Another request is still in progress{detail}.")


class InvalidTransition(StudyBuddyError):
	code = "invalid_transition"
