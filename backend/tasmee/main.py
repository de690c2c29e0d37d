import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from typing import Optional

from fastapi import FastAPI

from .generation import QuestionGenerator
from .passages import PassageLibrary
from .routers import game
from .service import QuizService
from .settings import Settings, settings
from .speech import GoogleSpeechTranscriber
from .tts import ElevenLabsSynthesizer


# --- Logging Setup ---
def setup_logging(cfg: Settings = settings) -> None:
	logger = logging.getLogger("tasmee")
	logger.setLevel(cfg.log_level.upper())

	if cfg.log_dir:
		os.makedirs(cfg.log_dir, exist_ok=True)
		log_path = os.path.abspath(os.path.join(cfg.log_dir, cfg.log_file))
		attached = any(
			isinstance(h, RotatingFileHandler) and h.baseFilename == log_path for h in logger.handlers
		)
		if not attached:
			file_handler = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
			file_handler.setFormatter(
				logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
			)
			logger.addHandler(file_handler)
	# Also configure root logger to see logs from other libraries
	logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")


def build_service(cfg: Settings = settings) -> QuizService:
	generator = QuestionGenerator(cfg)
	return QuizService(
		generator=generator,
		analyst=generator,
		passages=PassageLibrary(cfg.quran_data_path),
		transcriber=GoogleSpeechTranscriber(cfg),
		synthesizer=ElevenLabsSynthesizer(cfg),
		settings=cfg,
	)


# --- Lifecycle ---
@asynccontextmanager
async def lifespan(app: FastAPI):
	yield
	service: QuizService = app.state.quiz_service
	await service.aclose()
	closer = getattr(service.synthesizer, "aclose", None)
	if closer is not None:
		await closer()


# --- App Factory ---
def create_app(service: Optional[QuizService] = None) -> FastAPI:
	cfg = service.settings if service is not None else settings
	setup_logging(cfg)
	app = FastAPI(title="Tasmee Recall Quiz API", lifespan=lifespan)
	app.state.quiz_service = service or build_service(cfg)
	app.include_router(game.router)

	@app.get("/info")
	def info():
		quiz: QuizService = app.state.quiz_service
		return {
			"status": "ok",
			"gemini_configured": bool(quiz.settings.gemini_api_key or quiz.settings.openrouter_api_key),
			"tts_configured": bool(quiz.settings.elevenlabs_api_key),
			"sessions": len(quiz.store),
		}

	# Legacy corpus listing
	@app.get("/api/quran")
	def quran():
		quiz: QuizService = app.state.quiz_service
		return [{"name": p.name, "text": p.text} for p in quiz.passages.passages]

	return app


# uvicorn tasmee.main:app
app = create_app()


if __name__ == "__main__":
	import uvicorn

	uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 8000)))
