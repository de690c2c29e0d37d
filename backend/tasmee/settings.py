from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="openai/gpt-4o", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="Tasmee Recall Quiz", validation_alias="OPENROUTER_TITLE")

	# Speech-to-text (Google Cloud Speech, credentials via GOOGLE_APPLICATION_CREDENTIALS)
	speech_language_code: str = Field(default="ar-SA", validation_alias="SPEECH_LANGUAGE_CODE")

	# Corrective audio (ElevenLabs)
	elevenlabs_api_key: str | None = Field(default=None, validation_alias="ELEVENLABS_API_KEY")
	elevenlabs_voice_id: str = Field(default="pNInz6obpgDQGcFmaJgB", validation_alias="ELEVENLABS_VOICE_ID")
	elevenlabs_model_id: str = Field(default="eleven_multilingual_v2", validation_alias="ELEVENLABS_MODEL_ID")

	# Source passages
	quran_data_path: str = Field(default="quran_data.json", validation_alias="QURAN_DATA_PATH")
	source_chunk_chars: int = Field(default=4000, validation_alias="SOURCE_CHUNK_CHARS")
	question_difficulty: str = Field(default="easy", validation_alias="QUESTION_DIFFICULTY")

	# Batching
	batch_size: int = Field(default=10, ge=1, validation_alias="BATCH_SIZE")
	prefetch_threshold: int = Field(default=7, validation_alias="PREFETCH_THRESHOLD")

	# Answer matching
	similarity_threshold_short: float = Field(default=0.65, validation_alias="SIMILARITY_THRESHOLD_SHORT")
	similarity_threshold_long: float = Field(default=0.8, validation_alias="SIMILARITY_THRESHOLD_LONG")
	short_word_max_len: int = Field(default=4, validation_alias="SHORT_WORD_MAX_LEN")
	fuzzy_min_len: int = Field(default=3, validation_alias="FUZZY_MIN_LEN")
	partial_min_len: int = Field(default=2, validation_alias="PARTIAL_MIN_LEN")
	partial_min_ratio: float = Field(default=0.65, validation_alias="PARTIAL_MIN_RATIO")

	# Logging
	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
	log_dir: str | None = Field(default=None, validation_alias="LOG_DIR")
	log_file: str = Field(default="tasmee.log", validation_alias="LOG_FILE")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

	@model_validator(mode="after")
	def _check_prefetch_threshold(self) -> "Settings":
		if not 0 < self.prefetch_threshold < self.batch_size:
			raise ValueError("PREFETCH_THRESHOLD must satisfy 0 < PREFETCH_THRESHOLD < BATCH_SIZE")
		return self

settings = Settings()
