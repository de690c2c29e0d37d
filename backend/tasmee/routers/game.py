"""
Game Router
===========

HTTP surface of the recall quiz. Handlers are thin: they unpack the request,
call ``QuizService`` and map ``QuizFailure`` results onto status codes.

API Endpoints:
- POST /game/start: Begin a new session (first batch generated synchronously)
- POST /game/answer: Submit a recorded answer (multipart: session_id, audio)
- POST /game/answer/text: Submit an already transcribed answer
- GET /game/summary/{session_id}: Summary of the last batch
- GET /game/stats/{session_id}: Analysis of the whole session
- GET /game/session/{session_id}: Session snapshot (client resync)
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel

from ..errors import ErrorCode
from ..models import AnswerResult, BatchSummary, QuizFailure, SessionAnalysis, SessionView, StartResult
from ..service import QuizService


router = APIRouter(prefix="/game", tags=["game"])

_STATUS_BY_ERROR: Dict[ErrorCode, int] = {
	ErrorCode.NOT_FOUND: 404,
	ErrorCode.EXHAUSTED: 409,
	ErrorCode.INVALID_QUESTION: 422,
}


def get_quiz_service(request: Request) -> QuizService:
	return request.app.state.quiz_service


def _unwrap(result: Union[BaseModel, QuizFailure]) -> Any:
	if isinstance(result, QuizFailure):
		raise HTTPException(
			status_code=_STATUS_BY_ERROR.get(result.error, 400),
			detail={"error": result.error.value, "detail": result.detail},
		)
	return result


class TextAnswerRequest(BaseModel):
	session_id: str
	text: Optional[str] = None


@router.post("/start", response_model=StartResult)
async def start(service: QuizService = Depends(get_quiz_service)):
	return await service.start_session()


@router.post("/answer", response_model=AnswerResult)
async def answer_audio(
	session_id: str = Form(...),
	audio: Optional[UploadFile] = File(None),
	service: QuizService = Depends(get_quiz_service),
):
	if audio is None:
		raise HTTPException(status_code=400, detail="Missing audio or session_id")
	data = await audio.read()
	if not data:
		raise HTTPException(status_code=400, detail="Empty audio upload")
	result = await service.submit_audio_answer(session_id, data, filename=audio.filename or "audio.webm")
	return _unwrap(result)


@router.post("/answer/text", response_model=AnswerResult)
async def answer_text(req: TextAnswerRequest, service: QuizService = Depends(get_quiz_service)):
	return _unwrap(await service.submit_answer(req.session_id, req.text or ""))


@router.get("/summary/{session_id}", response_model=BatchSummary)
async def summary(session_id: str, service: QuizService = Depends(get_quiz_service)):
	return _unwrap(await service.get_batch_summary(session_id))


@router.get("/stats/{session_id}", response_model=SessionAnalysis)
async def stats(session_id: str, service: QuizService = Depends(get_quiz_service)):
	return _unwrap(await service.get_session_analysis(session_id))


@router.get("/session/{session_id}", response_model=SessionView)
async def session(session_id: str, service: QuizService = Depends(get_quiz_service)):
	return _unwrap(await service.get_session(session_id))
