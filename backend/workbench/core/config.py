from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from fastapi import Request

class Settings(BaseSettings):
    SESSION_SECRET: str = "dev-secret"
    SESSION_MAX_AGE_MS: int = 24 * 60 * 60 * 1000
    SESSION_COOKIE: str = "workbench.sid"
    SESSION_SAVE_DELAY_SECONDS: float = 0.2
    SECURE_COOKIES: bool = False

    # Single operator account, compared as plaintext
    AUTH_USERNAME: str = "admin"
    AUTH_PASSWORD: str = "admin"

    DATA_DIR: str = "."
    LOG_LEVEL: str = "INFO"

    CHAT_TEMPERATURE: float = 0.7
    CHAT_MAX_TOKENS: int = 2000
    TEST_MAX_TOKENS: int = 10
    PROVIDER_TIMEOUT_SECONDS: float = 60.0
    NOTE_SUMMARY_ENABLED: bool = True

    CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

@lru_cache
def get_settings():
    return Settings()

def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built with."""
    return request.app.state.settings
