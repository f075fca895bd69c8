"""
Study Session Router
====================

HTTP surface of the single study session. Every endpoint applies one
transition and returns the resulting session snapshot. The page owns the
browser speech APIs: it applies the capture command returned by
``/capture/toggle``. With the browser backend it relays recognizer events to
``/capture/events``; with the cloud backend it records the answer and uploads
it to ``/capture/audio``. It plays the utterance returned by ``/speak``.

Failures the user can recover from (bad notes, Gemini errors, no speech) come
back as HTTP 200 with ``error`` set on the snapshot. Requests the UI should
never send (advancing without feedback, overlapping calls) answer 409.

API Endpoints:
- GET  /session: Current snapshot
- POST /session/start: Generate questions from notes and enter the quiz
- POST /session/capture/toggle: Start or stop answer capture
- POST /session/capture/events: Relay a recognizer event (result triggers evaluation)
- POST /session/capture/audio: Recognize an uploaded utterance (cloud backend)
- POST /session/next: Next question, or finish after the last one
- POST /session/restart: Back to note entry after completion
- POST /session/speak: Read the current feedback aloud
- POST /session/error/dismiss: Clear the error notice
"""

from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel

from ..errors import CallInFlight, InvalidTransition
from ..evaluator import AnswerEvaluator
from ..gemini_client import GeminiClient
from ..models import SessionView, Utterance
from ..questions import QuestionGenerator
from ..session import SessionController
from ..settings import settings
from ..speech.capture import BrowserRecognizer, Recognizer, SpeechCapture
from ..speech.playback import RelaySynthesizer, SpeechPlayback

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/session", tags=["session"])


# ============================================================================
# CONTROLLER WIRING
# ============================================================================

_controller: Optional[SessionController] = None


def _build_recognizer() -> Recognizer:
	if settings.speech_backend == "cloud":
		from ..speech.cloud import CloudRecognizer
		return CloudRecognizer()
	return BrowserRecognizer()


def build_controller(client: Optional[GeminiClient] = None, recognizer: Optional[Recognizer] = None) -> SessionController:
	client = client or GeminiClient()
	return SessionController(
		generator=QuestionGenerator(client),
		evaluator=AnswerEvaluator(client),
		capture=SpeechCapture(recognizer or _build_recognizer(), language=settings.speech_language),
		playback=SpeechPlayback(RelaySynthesizer(), language=settings.speech_language),
	)


def get_controller() -> SessionController:
	global _controller
	if _controller is None:
		_controller = build_controller()
	return _controller


async def close_controller() -> None:
	global _controller
	if _controller is not None:
		await _controller.generator.client.aclose()
		_controller = None


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class StartRequest(BaseModel):
	notes: str


class CaptureEventRequest(BaseModel):
	"""A Web Speech API callback relayed by the page (onstart/onresult/onerror/onend)."""
	type: Literal["start", "result", "error", "end"]
	transcript: Optional[str] = None
	code: Optional[str] = None


class ToggleResponse(BaseModel):
	command: Literal["start", "stop"]
	lang: str
	# "browser": run the Web Speech API and relay events; "cloud": record and upload audio
	backend: str
	session: SessionView


class SpeakRequest(BaseModel):
	# False when the page has no speechSynthesis
	speech_synthesis: bool = True


class SpeakResponse(BaseModel):
	utterance: Optional[Utterance] = None
	session: SessionView


def _conflict(e: Exception) -> HTTPException:
	return HTTPException(status_code=409, detail=str(e))


# ============================================================================
# API ENDPOINTS
# ============================================================================

@router.get("", response_model=SessionView)
async def get_session(controller: SessionController = Depends(get_controller)):
	return controller.snapshot()


@router.post("/start", response_model=SessionView)
async def start(req: StartRequest, controller: SessionController = Depends(get_controller)):
	try:
		await controller.start_session(req.notes)
	except (CallInFlight, InvalidTransition) as e:
		raise _conflict(e)
	return controller.snapshot()


@router.post("/capture/toggle", response_model=ToggleResponse)
async def toggle_capture(controller: SessionController = Depends(get_controller)):
	try:
		await controller.toggle_capture()
	except (CallInFlight, InvalidTransition) as e:
		raise _conflict(e)
	recognizer = controller.capture.recognizer
	return ToggleResponse(
		command=recognizer.command,
		lang=recognizer.language or controller.capture.language,
		backend=recognizer.name,
		session=controller.snapshot(),
	)


@router.post("/capture/events", response_model=SessionView)
async def capture_event(req: CaptureEventRequest, controller: SessionController = Depends(get_controller)):
	capture = controller.capture
	if req.type != "start" and not capture.recognizer.relays_events:
		raise _conflict(InvalidTransition(f"The {capture.recognizer.name} speech backend does not take relayed events"))
	try:
		if req.type == "result":
			await capture.deliver_transcript(req.transcript or "")
		elif req.type == "error":
			await capture.deliver_error(req.code or "unknown")
		elif req.type == "end":
			await capture.deliver_end()
		else:
			logger.debug("Recognizer started")
	except (CallInFlight, InvalidTransition) as e:
		raise _conflict(e)
	return controller.snapshot()


@router.post("/capture/audio", response_model=SessionView)
async def capture_audio(file: UploadFile = File(...), controller: SessionController = Depends(get_controller)):
	content = await file.read()
	try:
		await controller.capture.submit_audio(content)
	except (CallInFlight, InvalidTransition) as e:
		raise _conflict(e)
	return controller.snapshot()


@router.post("/next", response_model=SessionView)
async def next_question(controller: SessionController = Depends(get_controller)):
	try:
		await controller.next_question()
	except (CallInFlight, InvalidTransition) as e:
		raise _conflict(e)
	return controller.snapshot()


@router.post("/restart", response_model=SessionView)
async def restart(controller: SessionController = Depends(get_controller)):
	try:
		controller.restart()
	except InvalidTransition as e:
		raise _conflict(e)
	return controller.snapshot()


@router.post("/speak", response_model=SpeakResponse)
async def speak(req: Optional[SpeakRequest] = None, controller: SessionController = Depends(get_controller)):
	host_supported = req.speech_synthesis if req is not None else True
	utterance: Optional[Utterance] = None
	if controller.speak_feedback(host_supported=host_supported):
		synthesizer = controller.playback.synthesizer
		if isinstance(synthesizer, RelaySynthesizer):
			utterance = synthesizer.current
	return SpeakResponse(utterance=utterance, session=controller.snapshot())


@router.post("/error/dismiss", response_model=SessionView)
async def dismiss_error(controller: SessionController = Depends(get_controller)):
	controller.dismiss_error()
	return controller.snapshot()
