"""
Session State Machine
=====================

The study session moves ``initial -> quiz -> complete`` and back to ``initial``
on restart. The transition functions below are pure: each takes a ``Session``
and returns the next one, raising when the UI contract forbids the move.
``SessionController`` owns the single process-wide session and sequences the
question generator, answer evaluator and speech adapters around them.

Only one outbound call (generation or evaluation) may be in flight; the
loading flag is set before the call and cleared in ``finally`` so a failure
never leaves the session stuck.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .errors import (
	CallInFlight,
	ConfigurationMissing,
	InsufficientInput,
	InvalidTransition,
	PlaybackUnavailable,
	StudyBuddyError,
)
from .evaluator import AnswerEvaluator
from .models import Feedback, LoadingState, Session, SessionView, View
from .questions import QuestionGenerator
from .speech.capture import CaptureEnded, CaptureError, CaptureEvent, SpeechCapture, TranscriptReady
from .speech.playback import SpeechPlayback

logger = logging.getLogger(__name__)

GENERATING_LABEL = "Generating questions from your notes..."
EVALUATING_LABEL = "Evaluating your answer..."


# ============================================================================
# TRANSITIONS
# ============================================================================

def begin_call(session: Session, label: str) -> Session:
	if session.loading.active:
		raise CallInFlight(session.loading.label)
	return session.model_copy(update={"loading": LoadingState(active=True, label=label)})


def end_call(session: Session) -> Session:
	return session.model_copy(update={"loading": LoadingState()})


def set_notes(session: Session, notes: str) -> Session:
	if session.view != View.initial:
		raise InvalidTransition("Notes can only be changed before the quiz starts")
	return session.model_copy(update={"notes": notes})


def enter_quiz(session: Session, questions: List[str]) -> Session:
	if not questions:
		raise InvalidTransition("Cannot start a quiz without questions")
	return session.model_copy(update={
		"view": View.quiz,
		"questions": list(questions),
		"current_index": 0,
		"transcript": "",
		"feedback": None,
		"error": None,
	})


def clear_answer(session: Session) -> Session:
	return session.model_copy(update={"transcript": "", "feedback": None})


def record_transcript(session: Session, transcript: str) -> Session:
	return session.model_copy(update={"transcript": transcript})


def record_feedback(session: Session, feedback: Feedback) -> Session:
	return session.model_copy(update={"feedback": feedback})


def advance(session: Session) -> Session:
	"""Move to the next question, or to ``complete`` after the last one."""
	if session.view != View.quiz:
		raise InvalidTransition("Not in a quiz")
	if session.loading.active:
		raise CallInFlight(session.loading.label)
	if session.feedback is None:
		raise InvalidTransition("Answer the current question before moving on")
	if session.is_last_question:
		return session.model_copy(update={"view": View.complete})
	return session.model_copy(update={
		"current_index": session.current_index + 1,
		"transcript": "",
		"feedback": None,
	})


def restart(session: Session) -> Session:
	if session.view != View.complete:
		raise InvalidTransition("The quiz is not complete yet")
	return Session()


def surface_error(session: Session, message: str) -> Session:
	return session.model_copy(update={"error": message})


def dismiss_error(session: Session) -> Session:
	return session.model_copy(update={"error": None})


# ============================================================================
# CONTROLLER
# ============================================================================

class SessionController:
	def __init__(
		self,
		generator: QuestionGenerator,
		evaluator: AnswerEvaluator,
		capture: SpeechCapture,
		playback: SpeechPlayback,
	) -> None:
		self.generator = generator
		self.evaluator = evaluator
		self.capture = capture
		self.playback = playback
		self.session = Session()
		self._unsubscribe: Optional[Callable[[], None]] = None

	def snapshot(self) -> SessionView:
		return SessionView.of(self.session, recording=self.capture.active)

	async def start_session(self, notes: str) -> None:
		"""Generate questions from ``notes`` and enter the quiz.

		Failures are surfaced on ``session.error`` and leave the session in
		``initial`` with no questions.
		"""
		if self.session.loading.active:
			raise CallInFlight(self.session.loading.label)
		self.session = set_notes(self.session, notes)
		try:
			self.generator.check_notes(notes)
		except InsufficientInput as e:
			self.session = surface_error(self.session, e.message)
			return
		self.session = begin_call(self.session, GENERATING_LABEL)
		try:
			questions = await self.generator.generate(notes)
		except ConfigurationMissing as e:
			self.session = surface_error(self.session, e.message)
		except StudyBuddyError as e:
			logger.warning("Question generation failed (%s)", e.code)
			self.session = surface_error(self.session, f"Failed to generate questions. {e.message}")
		else:
			self.session = enter_quiz(self.session, questions)
			logger.info("Quiz started with %d questions", len(questions))
		finally:
			self.session = end_call(self.session)

	async def toggle_capture(self) -> str:
		"""Stop the active capture, or clear the last answer and start a new one.

		Returns the command the host recognizer must apply (``start``/``stop``).
		"""
		if self.session.view != View.quiz:
			raise InvalidTransition("Answers can only be recorded during a quiz")
		if self.capture.active:
			await self.capture.stop()
			return "stop"
		if self.session.loading.active:
			raise CallInFlight(self.session.loading.label)
		self.session = clear_answer(self.session)
		self._unsubscribe = self.capture.subscribe(self._on_capture_event)
		try:
			self.capture.start()
		except StudyBuddyError:
			self._release_capture()
			raise
		return "start"

	async def _on_capture_event(self, event: CaptureEvent) -> None:
		if isinstance(event, TranscriptReady):
			self.session = record_transcript(self.session, event.transcript)
			await self.evaluate(event.transcript)
		elif isinstance(event, CaptureError):
			self.session = surface_error(self.session, event.error.message)
		elif isinstance(event, CaptureEnded):
			self._release_capture()

	def _release_capture(self) -> None:
		if self._unsubscribe is not None:
			self._unsubscribe()
			self._unsubscribe = None

	async def evaluate(self, answer: str) -> None:
		question = self.session.current_question
		if question is None:
			raise InvalidTransition("There is no current question to evaluate")
		self.session = begin_call(self.session, EVALUATING_LABEL)
		try:
			result = await self.evaluator.evaluate(self.session.notes, question, answer)
			self.session = record_feedback(self.session, result.feedback)
			if result.error:
				self.session = surface_error(self.session, f"Failed to evaluate the answer. {result.error}")
		finally:
			self.session = end_call(self.session)

	async def next_question(self) -> None:
		if self.capture.active:
			await self.capture.stop()
		self.session = advance(self.session)
		if self.session.view == View.complete:
			logger.info("Quiz complete")

	def restart(self) -> None:
		self.session = restart(self.session)

	def speak_feedback(self, *, host_supported: bool = True) -> bool:
		"""Read the current feedback aloud; False (with a notice) when playback is unavailable."""
		text = self.session.feedback.text if self.session.feedback else ""
		try:
			self.playback.speak(text, host_supported=host_supported)
		except PlaybackUnavailable as e:
			self.session = surface_error(self.session, e.message)
			return False
		return True

	def dismiss_error(self) -> None:
		self.session = dismiss_error(self.session)
