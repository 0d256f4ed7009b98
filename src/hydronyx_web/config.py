# src/hydronyx_web/config.py

from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env is at the project root, two levels up from src/hydronyx_web/
CONFIG_FILE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT_DIR = CONFIG_FILE_DIR.parent.parent
ENV_FILE_PATH = PROJECT_ROOT_DIR / ".env"

DEFAULT_API_URL = "http://localhost:8000"

if ENV_FILE_PATH.exists():
    load_dotenv(dotenv_path=ENV_FILE_PATH, override=False)
    print(f"Hydronyx-Web: Successfully loaded .env file from: {ENV_FILE_PATH}")
else:
    print(
        f"Hydronyx-Web: .env file not found at {ENV_FILE_PATH}. Relying on environment variables."
    )


class Settings(BaseSettings):
    # === Remote Hydronyx API ===
    HYDRONYX_API_URL: str = DEFAULT_API_URL

    # === Credential persistence outside a browser session ===
    CREDENTIALS_FILE: Optional[Path] = None

    # === BFF session cookie ===
    SESSION_COOKIE_SECURE: bool = False
    SESSION_COOKIE_MAX_AGE: int = 60 * 60 * 4  # 4 hours

    # Characters of an unexpected response body quoted in error messages
    ERROR_EXCERPT_CHARS: int = 300

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False
    )

    @field_validator("HYDRONYX_API_URL", mode='before')
    @classmethod
    def strip_trailing_slash(cls, v: Any) -> str:
        if v is None:
            return DEFAULT_API_URL
        if not isinstance(v, str):
            raise TypeError(f"HYDRONYX_API_URL: Expected a string, got {type(v)}")
        v = v.strip()
        # An empty value means "unset", same as a missing variable
        if not v:
            return DEFAULT_API_URL
        return v.rstrip("/")


try:
    settings = Settings()
except Exception as e:
    print(f"Hydronyx-Web: Error instantiating Settings: {e}")
    raise
