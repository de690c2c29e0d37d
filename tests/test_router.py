"""Tests for the /game HTTP layer."""

import logging
from logging.handlers import RotatingFileHandler

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tasmee.main import create_app, setup_logging
from tasmee.service import QuizService
from tasmee.settings import Settings

from conftest import FakeAnalyst, FakeGenerator, FakeTranscriber, make_questions


@pytest.fixture
def transcriber():
	return FakeTranscriber("السلام")


@pytest.fixture
def client(settings, passages, transcriber):
	service = QuizService(
		generator=FakeGenerator(),
		analyst=FakeAnalyst(),
		transcriber=transcriber,
		passages=passages,
		settings=settings,
	)
	with TestClient(create_app(service)) as c:
		yield c


def _start(client):
	r = client.post("/game/start")
	assert r.status_code == 200
	return r.json()["session"]["session_id"]


def test_info(client):
	r = client.get("/info")
	assert r.status_code == 200
	assert r.json()["status"] == "ok"


def test_start(client):
	r = client.post("/game/start")
	body = r.json()
	assert body["generation_unavailable"] is False
	assert len(body["session"]["questions"]) == 10
	assert body["session"]["questions"][0]["cloze_text"] == "0 ..... عليكم"


def test_text_answer(client):
	session_id = _start(client)
	r = client.post("/game/answer/text", json={"session_id": session_id, "text": "السلام عليكم"})
	assert r.status_code == 200
	body = r.json()
	assert body["is_correct"] is True
	assert body["match_tier"] == "contains_target"
	assert body["current_index"] == 1
	assert body["feedback_audio"] is None


def test_audio_answer(client, transcriber):
	session_id = _start(client)
	r = client.post(
		"/game/answer",
		data={"session_id": session_id},
		files={"audio": ("answer.webm", b"\x1a\x45\xdf\xa3", "audio/webm")},
	)
	assert r.status_code == 200
	assert r.json()["is_correct"] is True
	assert transcriber.calls[0]["filename"] == "answer.webm"
	assert transcriber.calls[0]["context_hint"] == "0 السلام عليكم"


def test_audio_answer_requires_audio(client):
	session_id = _start(client)
	r = client.post("/game/answer", data={"session_id": session_id})
	assert r.status_code == 400


def test_unknown_session_is_404(client):
	r = client.post("/game/answer/text", json={"session_id": "nonexistent", "text": "نص"})
	assert r.status_code == 404
	assert r.json()["detail"]["error"] == "session_not_found"
	assert client.get("/game/session/nonexistent").status_code == 404
	assert client.get("/game/summary/nonexistent").status_code == 404
	assert client.get("/game/stats/nonexistent").status_code == 404


def test_exhausted_is_409(settings, passages):
	service = QuizService(generator=FakeGenerator([make_questions(1)]), passages=passages, settings=settings)
	with TestClient(create_app(service)) as c:
		session_id = _start(c)
		assert c.post("/game/answer/text", json={"session_id": session_id, "text": "السلام"}).status_code == 200
		r = c.post("/game/answer/text", json={"session_id": session_id, "text": "السلام"})
		assert r.status_code == 409
		assert r.json()["detail"]["error"] == "no_question_available"


def test_invalid_question_is_422(settings, passages):
	service = QuizService(generator=FakeGenerator([make_questions(1, target="")]), passages=passages, settings=settings)
	with TestClient(create_app(service)) as c:
		session_id = _start(c)
		r = c.post("/game/answer/text", json={"session_id": session_id, "text": "السلام"})
		assert r.status_code == 422
		assert r.json()["detail"]["error"] == "invalid_question"


def test_summary_and_session_sync(client):
	session_id = _start(client)
	client.post("/game/answer/text", json={"session_id": session_id, "text": "وعليكم"})
	client.post("/game/answer/text", json={"session_id": session_id, "text": "السلام"})

	summary = client.get(f"/game/summary/{session_id}").json()
	assert summary["correct_count"] == 1
	assert summary["wrong_count"] == 1
	assert summary["wrong_answers"][0]["user_said"] == "وعليكم"

	stats = client.get(f"/game/stats/{session_id}").json()
	assert stats["answered"] == 2

	view = client.get(f"/game/session/{session_id}").json()
	assert view["current_index"] == 1
	assert len(view["history"]) == 2


def test_info_reports_service_settings(passages):
	cfg = Settings(_env_file=None, elevenlabs_api_key="voice-key", gemini_api_key=None, openrouter_api_key="or-key")
	service = QuizService(generator=FakeGenerator(), passages=passages, settings=cfg)
	with TestClient(create_app(service)) as c:
		body = c.get("/info").json()
	assert body["tts_configured"] is True
	assert body["gemini_configured"] is True
	assert body["sessions"] == 0


def test_quran_lists_loaded_passages(client, passages):
	r = client.get("/api/quran")
	assert r.status_code == 200
	names = [p["name"] for p in r.json()]
	assert names == [p.name for p in passages.passages]
	assert "الكوثر" in names


def test_module_level_app():
	from tasmee import main

	assert isinstance(main.app, FastAPI)


def test_setup_logging_attaches_file_handler_once(tmp_path):
	cfg = Settings(_env_file=None, log_dir=str(tmp_path))
	logger = logging.getLogger("tasmee")
	before = list(logger.handlers)
	try:
		setup_logging(cfg)
		setup_logging(cfg)
		added = [h for h in logger.handlers if h not in before]
		assert len(added) == 1
		assert isinstance(added[0], RotatingFileHandler)
	finally:
		for handler in logger.handlers[:]:
			if handler not in before:
				logger.removeHandler(handler)
				handler.close()
