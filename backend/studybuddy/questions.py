"""
Question Generator
==================

Turns a block of study notes into a list of open exam-style questions using
Gemini structured output (``responseSchema``). Generation is all-or-nothing:
either a non-empty list of question strings comes back or the call fails.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from .errors import GenerationFailed, InsufficientInput
from .gemini_client import GeminiClient
from .models import Message
from .settings import settings

logger = logging.getLogger(__name__)

# Output-shape hint: an object with a "questions" array of strings
QUESTIONS_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"questions": {"type": "ARRAY", "items": {"type": "STRING"}},
	},
	"required": ["questions"],
}


def _build_question_prompt(notes: str, count: int) -> str:
	return (
		f"Based on the following text, generate exactly {count} diverse questions that a student could be asked in an exam. "
		'Include a mix of "what is," "how does," and "why is" questions. '
		"Do not generate multiple-choice questions.\n\n"
		f'Text: "{notes}"'
	)


def _extract_json_block(text: str) -> Dict[str, Any]:
	"""Extract a JSON object from model output.

	Structured output normally returns bare JSON; fall back to the first
	``{...}`` span in case the model wrapped it in prose or a code fence.

	Raises:
		ValueError: If no JSON object can be decoded
	"""
	try:
		data = json.loads(text)
	except ValueError:
		match = re.search(r"\{[\s\S]*\}", text)
		if not match:
			raise ValueError("Failed to parse JSON from Gemini output")
		data = json.loads(match.group(0))
	if not isinstance(data, dict):
		raise ValueError("Gemini output is not a JSON object")
	return data


class QuestionGenerator:
	def __init__(self, client: GeminiClient, *, min_chars: Optional[int] = None, count: Optional[int] = None) -> None:
		self.client = client
		self.min_chars = settings.min_notes_chars if min_chars is None else min_chars
		self.count = settings.question_count if count is None else count

	def check_notes(self, notes: str) -> None:
		if len(notes) < self.min_chars:
			raise InsufficientInput(self.min_chars)

	async def generate(self, notes: str) -> List[str]:
		"""Generate questions grounded in ``notes``.

		The list is returned exactly as the model produced it; the requested count
		is only an instruction in the prompt and is not enforced here.

		Raises:
			InsufficientInput: notes shorter than the minimum, no call is made
			GenerationFailed: output is not JSON or holds no questions
			StudyBuddyError: any failure from the Gemini client
		"""
		self.check_notes(notes)
		prompt = _build_question_prompt(notes, self.count)
		raw = await self.client.send([Message.user(prompt)], QUESTIONS_SCHEMA)
		try:
			data = _extract_json_block(raw)
		except ValueError as err:
			logger.warning("Question output was not valid JSON: %s", raw[:200])
			raise GenerationFailed() from err
		questions = data.get("questions")
		if not isinstance(questions, list) or not questions:
			raise GenerationFailed()
		if not all(isinstance(q, str) for q in questions):
			raise GenerationFailed()
		if len(questions) != self.count:
			logger.info("Model returned %d questions (asked for %d)", len(questions), self.count)
		return questions
