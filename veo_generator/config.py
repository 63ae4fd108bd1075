from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

DEFAULT_VEO_MODEL_ID = "veo-3.0-generate-preview"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    gemini_api_key: Optional[str] = Field(default=None)
    veo_model_id: str = Field(DEFAULT_VEO_MODEL_ID)

    poll_interval_seconds: float = Field(10.0, gt=0)
    poll_max_attempts: Optional[int] = Field(default=None, gt=0)
    poll_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    download_timeout_seconds: float = Field(300.0, gt=0)

    output_local_dir: str = Field("videos")

    app_host: str = Field("127.0.0.1")
    app_port: int = Field(8000)
    log_level: str = Field("INFO")

    prompt_char_limit: int = Field(4000)

    @field_validator("gemini_api_key", mode="before")
    @classmethod
    def blank_key_is_missing(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("output_local_dir", mode="before")
    @classmethod
    def ensure_local_dir(cls, value: str) -> str:
        value = value or "videos"
        Path(value).mkdir(parents=True, exist_ok=True)
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return (value or "INFO").upper()


@lru_cache()
def get_settings() -> Settings:
    try:
        return Settings()
    except Exception as exc:
        raise RuntimeError("Failed to load application settings. Ensure your .env file is configured.") from exc


settings = get_settings()
