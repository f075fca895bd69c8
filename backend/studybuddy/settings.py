from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Model to use, default to Gemini 2.0 Flash
	gemini_model: str = Field(default="gemini-2.0-flash", validation_alias="GEMINI_MODEL")
	# Google AI Studio (Generative Language API); "{model}" is filled in by the client
	gemini_base_url: str = Field(
		default="https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
		validation_alias="GEMINI_BASE_URL",
	)
	# Unset means outbound calls wait for the service with no timeout
	gemini_timeout_seconds: float | None = Field(default=None, validation_alias="GEMINI_TIMEOUT_SECONDS")

	# Speech capability configuration
	speech_language: str = Field(default="en-US", validation_alias="SPEECH_LANGUAGE")
	# "browser" (Web Speech API relayed by the page) or "cloud" (Google Cloud Speech-to-Text)
	speech_backend: str = Field(default="browser", validation_alias="SPEECH_BACKEND")

	# Quiz configuration
	min_notes_chars: int = Field(default=50, validation_alias="MIN_NOTES_CHARS")
	question_count: int = Field(default=5, validation_alias="QUESTION_COUNT")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
