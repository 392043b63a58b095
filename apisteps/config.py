from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    # Target API
    base_uri: str = "http://localhost:8080"

    # Transport settings
    timeout: float = 30.0  # seconds
    follow_redirects: bool = True
    verify_ssl: bool = True
    raise_for_status: bool = False  # error statuses raise, carrying the response

    # Reporting
    body_preview_length: int = 500  # characters of the body shown in failures
    log_level: str = "INFO"

    @field_validator("timeout")
    @classmethod
    def timeout_must_be_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be greater than 0")
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    class Config:
        env_prefix = "APISTEPS_"
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
