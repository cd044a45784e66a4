import json
from pathlib import Path
from typing import List, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

from talksync.core.logger import logger

BASE_DIR = Path(__file__).parent.parent.parent
ENV_FILE = BASE_DIR / ".env"

load_dotenv(ENV_FILE, override=True)
logger.info(f"Loaded environment from: {ENV_FILE}")


def mask_sensitive_data(data: dict) -> dict:
    masked = {}
    sensitive_keys = ["key", "token", "secret", "password"]

    for key, value in data.items():
        if isinstance(value, dict):
            masked[key] = mask_sensitive_data(value)
        elif isinstance(value, str) and any(s in key.lower() for s in sensitive_keys):
            if not value:
                masked[key] = "<not set>"
            elif len(value) <= 4:
                masked[key] = "***"
            else:
                masked[key] = f"{value[:4]}...{value[-4:]}"
        elif value is None and any(s in key.lower() for s in sensitive_keys):
            masked[key] = "<not set>"
        else:
            masked[key] = value

    return masked


class CoreSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        protected_namespaces=(),
    )


class TranslationSettings(CoreSettings):
    TRANSLATION_URL: str = Field(
        default="https://translation.googleapis.com/language/translate/v2",
        description="Google Cloud Translation v2 endpoint",
    )
    TRANSLATION_API_KEY: Optional[str] = Field(
        default=None,
        description="API key sent as the 'key' query parameter",
    )
    TRANSLATION_TARGET_LANGUAGE: str = Field(default="en")
    TRANSLATION_TIMEOUT: float = Field(default=15.0, gt=0.0)


class ChatBackendSettings(CoreSettings):
    CHAT_BACKEND_URL: str = Field(
        default="https://talksync-backend-684b89663840.herokuapp.com/chat",
        description="Chat backend endpoint accepting {'message': ...}",
    )
    CHAT_BACKEND_TIMEOUT: float = Field(default=60.0, gt=0.0)


class ArithmeticServiceSettings(CoreSettings):
    ARITHMETIC_SERVICE_URL: str = Field(
        default="http://52.204.226.205:80/SelfHostedService",
        description="Base URL of the add/subtract/sendmessage test service",
    )
    ARITHMETIC_SERVICE_TIMEOUT: float = Field(default=15.0, gt=0.0)


class SpeechSettings(CoreSettings):
    SPEECH_DEBOUNCE_SECONDS: float = Field(
        default=1.5,
        gt=0.0,
        le=10.0,
        description="Silence (seconds) after the last transcript change before auto-send",
    )
    SPEECH_CLEAR_DELAY_SECONDS: float = Field(
        default=1.0,
        ge=0.0,
        le=10.0,
        description="How long the final transcript stays visible after a manual stop",
    )
    TTS_VOICE_LANGUAGE: str = Field(
        default="en-US",
        description="Voice language requested from the client TTS engine",
    )


class ApiSettings(CoreSettings):
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000, gt=0)
    API_WORKERS: int = Field(default=1, ge=1)
    API_CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])
    SESSION_TIMEOUT_SECONDS: int = Field(default=3600, gt=0)
    SESSION_CLEANUP_INTERVAL_SECONDS: float = Field(default=60.0, gt=0.0)


class Settings(CoreSettings):
    translation: TranslationSettings = Field(default_factory=TranslationSettings)
    backend: ChatBackendSettings = Field(default_factory=ChatBackendSettings)
    arithmetic: ArithmeticServiceSettings = Field(default_factory=ArithmeticServiceSettings)
    speech: SpeechSettings = Field(default_factory=SpeechSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)


try:
    settings = Settings()

    settings_dict = settings.model_dump()
    masked_settings = mask_sensitive_data(settings_dict)
    logger.info(f"Settings loaded: {json.dumps(masked_settings, indent=2)}")

except ValidationError as e:
    logger.exception(f"Error validating settings: {e.json()}")
    raise
