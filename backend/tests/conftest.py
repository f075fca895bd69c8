from __future__ import annotations
import json
from types import SimpleNamespace
from typing import Any, Callable, Dict, List

import httpx
import pytest

from studybuddy.gemini_client import GeminiClient
from studybuddy.routers.session import build_controller
from studybuddy.speech.capture import BrowserRecognizer

BIOLOGY_NOTES = (
	"Photosynthesis is the process used by plants, algae and certain bacteria to turn light energy into "
	"chemical energy. It takes place mainly in the chloroplasts of leaf cells, where the green pigment "
	"chlorophyll absorbs red and blue light. During the light-dependent reactions water molecules are split, "
	"releasing oxygen as a by-product and producing ATP and NADPH. In the Calvin cycle, which does not need "
	"light directly, the enzyme RuBisCO fixes carbon dioxide from the air into three-carbon sugars using the "
	"ATP and NADPH made earlier. These sugars are used to build glucose, starch and cellulose. The overall "
	"rate of photosynthesis depends on light intensity, carbon dioxide concentration and temperature."
)

FIVE_QUESTIONS = [
	"What is photosynthesis?",
	"Where in the cell does photosynthesis mainly take place?",
	"How does chlorophyll capture light energy?",
	"Why is oxygen released during the light-dependent reactions?",
	"What factors affect the rate of photosynthesis?",
]


def gemini_text(text: str) -> Dict[str, Any]:
	return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def questions_payload(questions: List[str]) -> Dict[str, Any]:
	return gemini_text(json.dumps({"questions": questions}))


class GeminiStub:
	"""Queue of canned Gemini responses served through ``httpx.MockTransport``."""

	def __init__(self) -> None:
		self.responses: List[httpx.Response] = []
		self.requests: List[httpx.Request] = []

	def reply(self, body: Dict[str, Any], status: int = 200) -> None:
		self.responses.append(httpx.Response(status, json=body))

	def reply_text(self, text: str) -> None:
		self.reply(gemini_text(text))

	def handler(self, request: httpx.Request) -> httpx.Response:
		self.requests.append(request)
		if not self.responses:
			raise AssertionError("unexpected Gemini request")
		return self.responses.pop(0)

	def body(self, index: int = -1) -> Dict[str, Any]:
		return json.loads(self.requests[index].content)


@pytest.fixture
def gemini() -> GeminiStub:
	return GeminiStub()


@pytest.fixture
def make_client(gemini: GeminiStub) -> Callable[..., GeminiClient]:
	def _make(api_key: str = "test-key") -> GeminiClient:
		return GeminiClient(api_key=api_key, model="gemini-2.0-flash", transport=httpx.MockTransport(gemini.handler))
	return _make


@pytest.fixture
def client(make_client) -> GeminiClient:
	return make_client()


@pytest.fixture
def controller(client):
	return build_controller(client=client, recognizer=BrowserRecognizer())


class FakeSpeechClient:
	"""Stands in for ``speech.SpeechClient``; records each recognize call."""

	def __init__(self, response=None, error=None) -> None:
		self.response = response
		self.error = error
		self.calls = []

	def recognize(self, config, audio):
		self.calls.append((config, audio))
		if self.error is not None:
			raise self.error
		return self.response


def speech_response(*transcripts):
	return SimpleNamespace(results=[
		SimpleNamespace(alternatives=[SimpleNamespace(transcript=t)]) for t in transcripts
	])
