from __future__ import annotations
import logging
from typing import Optional

from pydantic import BaseModel

from .errors import StudyBuddyError
from .gemini_client import GeminiClient
from .models import Classification, Feedback, Message

logger = logging.getLogger(__name__)

PLACEHOLDER_FEEDBACK = "Could not evaluate answer."


class EvaluationResult(BaseModel):
	feedback: Feedback
	# Set when the Gemini call failed and the feedback is the placeholder
	error: Optional[str] = None


def _build_evaluation_prompt(notes: str, question: str, answer: str) -> str:
	return (
		"You are a helpful and encouraging tutor. A student is answering questions based on a text they studied.\n\n"
		f'Original Text: "{notes}"\n\n'
		f'Question: "{question}"\n\n'
		f'Student\'s Answer: "{answer}"\n\n'
		"Please evaluate the student's answer.\n"
		'1. Start by stating if the answer is "Correct", "Partially Correct", or "Incorrect".\n'
		"2. Provide a brief, clear, and encouraging explanation for your evaluation.\n"
		"3. If the answer is not perfect, provide a suggestion for how to improve it, referencing the original text if helpful. "
		"Keep the tone positive."
	)


def classify_feedback(text: str) -> Classification:
	# Literal prefix check on the raw model text; "Incorrect, but partially correct..." stays Incorrect
	lower = text.lower()
	if lower.startswith("correct"):
		return Classification.correct
	if lower.startswith("partially correct"):
		return Classification.partially_correct
	return Classification.incorrect


class AnswerEvaluator:
	def __init__(self, client: GeminiClient) -> None:
		self.client = client

	async def evaluate(self, notes: str, question: str, answer: str) -> EvaluationResult:
		"""Grade a spoken answer against the notes.

		Never raises for Gemini failures: progress must not block on evaluation, so
		a failed call yields placeholder feedback plus the failure message.
		"""
		prompt = _build_evaluation_prompt(notes, question, answer)
		try:
			text = await self.client.send([Message.user(prompt)])
		except StudyBuddyError as e:
			logger.warning("Answer evaluation failed (%s)", e.code)
			return EvaluationResult(
				feedback=Feedback(text=PLACEHOLDER_FEEDBACK, classification=Classification.evaluation_failed),
				error=e.message,
			)
		return EvaluationResult(feedback=Feedback(text=text, classification=classify_feedback(text)))
