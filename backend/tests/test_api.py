"""Tests for the FastAPI app and the /session endpoints."""

import httpx
import pytest

from studybuddy.main import app
from studybuddy.routers.session import build_controller, get_controller
from studybuddy.speech.cloud import CloudRecognizer

from conftest import BIOLOGY_NOTES, FIVE_QUESTIONS, FakeSpeechClient, questions_payload, speech_response


async def _serve(controller):
	app.dependency_overrides[get_controller] = lambda: controller
	transport = httpx.ASGITransport(app=app)
	async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
		yield ac
	app.dependency_overrides.clear()


@pytest.fixture
async def api(controller):
	async for ac in _serve(controller):
		yield ac


@pytest.fixture
def speech_client() -> FakeSpeechClient:
	return FakeSpeechClient(speech_response("Light energy becomes chemical energy"))


@pytest.fixture
async def cloud_api(client, speech_client):
	controller = build_controller(client=client, recognizer=CloudRecognizer(client=speech_client))
	async for ac in _serve(controller):
		yield ac


@pytest.mark.asyncio
async def test_openapi_ok(api) -> None:
	r = await api.get("/openapi.json")
	assert r.status_code == 200


@pytest.mark.asyncio
async def test_info_reports_configuration(api) -> None:
	r = await api.get("/info")
	assert r.status_code == 200
	assert r.json()["status"] == "ok"
	assert "gemini_configured" in r.json()


@pytest.mark.asyncio
async def test_initial_snapshot(api) -> None:
	r = await api.get("/session")
	assert r.status_code == 200
	data = r.json()
	assert data["view"] == "initial"
	assert data["questions"] == []
	assert data["loading"] == {"active": False, "label": ""}


@pytest.mark.asyncio
async def test_short_notes_surface_error(api, gemini) -> None:
	r = await api.post("/session/start", json={"notes": "too short"})
	assert r.status_code == 200
	assert r.json()["view"] == "initial"
	assert "at least 50 characters" in r.json()["error"]
	assert gemini.requests == []


@pytest.mark.asyncio
async def test_quiz_round_trip(api, gemini) -> None:
	gemini.reply(questions_payload(FIVE_QUESTIONS))
	r = await api.post("/session/start", json={"notes": BIOLOGY_NOTES})
	data = r.json()
	assert data["view"] == "quiz"
	assert data["question_number"] == 1 and data["total_questions"] == 5

	r = await api.post("/session/next")
	assert r.status_code == 409

	r = await api.post("/session/capture/toggle")
	assert r.json()["command"] == "start"
	assert r.json()["lang"] == "en-US"
	assert r.json()["backend"] == "browser"
	assert r.json()["session"]["recording"] is True

	await api.post("/session/capture/events", json={"type": "start"})
	gemini.reply_text("Correct! Great answer.")
	r = await api.post("/session/capture/events", json={
		"type": "result",
		"transcript": "Photosynthesis converts light into chemical energy",
	})
	data = r.json()
	assert data["feedback"] == {"text": "Correct! Great answer.", "classification": "correct"}
	assert data["can_advance"] is True

	r = await api.post("/session/capture/events", json={"type": "end"})
	assert r.json()["recording"] is False

	r = await api.post("/session/speak")
	assert r.json()["utterance"] == {"text": "Correct! Great answer.", "lang": "en-US"}

	r = await api.post("/session/next")
	data = r.json()
	assert data["current_index"] == 1
	assert data["feedback"] is None and data["transcript"] == ""


@pytest.mark.asyncio
async def test_recognition_error_is_dismissible(api, gemini) -> None:
	gemini.reply(questions_payload(FIVE_QUESTIONS))
	await api.post("/session/start", json={"notes": BIOLOGY_NOTES})
	await api.post("/session/capture/toggle")
	r = await api.post("/session/capture/events", json={"type": "error", "code": "no-speech"})
	assert r.json()["error"] == "I didn't hear anything. Please try speaking again."
	assert r.json()["current_index"] == 0
	r = await api.post("/session/error/dismiss")
	assert r.json()["error"] is None


@pytest.mark.asyncio
async def test_restart_before_complete_conflicts(api) -> None:
	r = await api.post("/session/restart")
	assert r.status_code == 409


@pytest.mark.asyncio
async def test_audio_upload_needs_cloud_backend(api, gemini) -> None:
	gemini.reply(questions_payload(FIVE_QUESTIONS))
	await api.post("/session/start", json={"notes": BIOLOGY_NOTES})
	await api.post("/session/capture/toggle")
	r = await api.post("/session/capture/audio", files={"file": ("answer.webm", b"audio", "audio/webm")})
	assert r.status_code == 409


@pytest.mark.asyncio
async def test_capture_left_open_by_a_reload_can_be_closed(api, gemini) -> None:
	gemini.reply(questions_payload(FIVE_QUESTIONS))
	await api.post("/session/start", json={"notes": BIOLOGY_NOTES})
	r = await api.post("/session/capture/toggle")
	assert r.json()["command"] == "start"
	# No end event is relayed: the page that started the recognizer is gone
	r = await api.get("/session")
	assert r.json()["recording"] is True
	r = await api.post("/session/capture/toggle")
	assert r.json()["command"] == "stop"
	assert r.json()["session"]["recording"] is False
	r = await api.post("/session/capture/toggle")
	assert r.json()["command"] == "start"


@pytest.mark.asyncio
async def test_speak_without_page_synthesis_surfaces_notice(api, gemini) -> None:
	gemini.reply(questions_payload(FIVE_QUESTIONS))
	await api.post("/session/start", json={"notes": BIOLOGY_NOTES})
	await api.post("/session/capture/toggle")
	gemini.reply_text("Correct! Great answer.")
	await api.post("/session/capture/events", json={"type": "result", "transcript": "Light to sugar"})
	r = await api.post("/session/speak", json={"speech_synthesis": False})
	assert r.status_code == 200
	assert r.json()["utterance"] is None
	assert r.json()["session"]["error"] == "Text-to-speech is not supported or there is no feedback to read."


@pytest.mark.asyncio
async def test_cloud_backend_evaluates_uploaded_audio(cloud_api, gemini, speech_client) -> None:
	gemini.reply(questions_payload(FIVE_QUESTIONS))
	await cloud_api.post("/session/start", json={"notes": BIOLOGY_NOTES})
	r = await cloud_api.post("/session/capture/toggle")
	assert r.json()["backend"] == "cloud"
	assert r.json()["command"] == "start"
	gemini.reply_text("Correct! Well explained.")
	r = await cloud_api.post("/session/capture/audio", files={"file": ("answer.webm", b"opus-bytes", "audio/webm")})
	data = r.json()
	assert data["transcript"] == "Light energy becomes chemical energy"
	assert data["feedback"]["classification"] == "correct"
	assert data["recording"] is False
	assert speech_client.calls[0][1].content == b"opus-bytes"


@pytest.mark.asyncio
async def test_cloud_backend_refuses_relayed_results(cloud_api, gemini) -> None:
	gemini.reply(questions_payload(FIVE_QUESTIONS))
	await cloud_api.post("/session/start", json={"notes": BIOLOGY_NOTES})
	await cloud_api.post("/session/capture/toggle")
	r = await cloud_api.post("/session/capture/events", json={"type": "result", "transcript": "typed answer"})
	assert r.status_code == 409
	r = await cloud_api.post("/session/capture/events", json={"type": "end"})
	assert r.status_code == 409
	r = await cloud_api.get("/session")
	assert r.json()["transcript"] == ""
	assert r.json()["recording"] is True
	assert len(gemini.requests) == 1
