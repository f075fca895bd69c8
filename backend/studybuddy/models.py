from __future__ import annotations
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class View(str, Enum):
	initial = "initial"
	quiz = "quiz"
	complete = "complete"


class Classification(str, Enum):
	correct = "correct"
	partially_correct = "partially_correct"
	incorrect = "incorrect"
	evaluation_failed = "evaluation_failed"


class Part(BaseModel):
	text: str


class Message(BaseModel):
	"""One role-tagged entry of a generative request (``contents[]`` on the wire)."""
	role: str = "user"
	parts: List[Part]

	@classmethod
	def user(cls, text: str) -> "Message":
		return cls(role="user", parts=[Part(text=text)])

	def has_text(self) -> bool:
		return any(p.text.strip() for p in self.parts)


class Feedback(BaseModel):
	text: str
	classification: Classification


class LoadingState(BaseModel):
	active: bool = False
	label: str = ""


class Session(BaseModel):
	"""Complete state of one study interaction, from note entry to quiz completion.

	Only the transition functions in ``studybuddy.session`` mutate it.
	"""
	view: View = View.initial
	notes: str = ""
	questions: List[str] = Field(default_factory=list)
	current_index: int = 0
	transcript: str = ""
	feedback: Optional[Feedback] = None
	loading: LoadingState = Field(default_factory=LoadingState)
	error: Optional[str] = None

	@property
	def current_question(self) -> Optional[str]:
		if self.view != View.quiz or not self.questions:
			return None
		return self.questions[self.current_index]

	@property
	def is_last_question(self) -> bool:
		return self.current_index + 1 >= len(self.questions)

	@property
	def can_advance(self) -> bool:
		return self.view == View.quiz and self.feedback is not None and not self.loading.active


class SessionView(BaseModel):
	"""Serialized snapshot returned to the page after every action."""
	view: View
	notes: str
	questions: List[str]
	current_index: int
	current_question: Optional[str] = None
	question_number: int = 0
	total_questions: int = 0
	transcript: str = ""
	feedback: Optional[Feedback] = None
	loading: LoadingState
	error: Optional[str] = None
	recording: bool = False
	can_advance: bool = False
	advance_label: Optional[str] = None

	@classmethod
	def of(cls, session: Session, *, recording: bool = False) -> "SessionView":
		in_quiz = session.view == View.quiz and bool(session.questions)
		advance_label: Optional[str] = None
		if session.can_advance:
			advance_label = "Finish Quiz" if session.is_last_question else "Next Question"
		return cls(
			view=session.view,
			notes=session.notes,
			questions=list(session.questions),
			current_index=session.current_index,
			current_question=session.current_question,
			question_number=session.current_index + 1 if in_quiz else 0,
			total_questions=len(session.questions),
			transcript=session.transcript,
			feedback=session.feedback,
			loading=session.loading,
			error=session.error,
			recording=recording,
			can_advance=session.can_advance,
			advance_label=advance_label,
		)


class Utterance(BaseModel):
	text: str
	lang: str = "en-US"

