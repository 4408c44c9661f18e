"""
Application configuration management using Pydantic Settings.

Every field can be overridden from the environment (``MINIAPP_`` prefix) or
from a local ``.env`` file.
"""
import logging
from typing import Literal, Optional, Dict, Any
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from dotenv import load_dotenv

# Load .env first
load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """MiniApp builder service settings"""

    # -------------------------
    # APPLICATION METADATA & RUNTIME
    # -------------------------
    app_name: str = "MiniApp Builder Service"
    app_version: str = "0.1.0"
    api_prefix: str = "/api/v1"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_dir: str = "logs"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # -------------------------
    # SPEC GENERATION (OpenAI compatible endpoint)
    # -------------------------
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_model: str = "gpt-4o"
    openai_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    openai_max_tokens: int = 4000
    openai_timeout: float = 60.0
    openai_max_retries: int = 2

    # Offline builder is used whenever the remote generator fails
    local_fallback_enabled: bool = True

    # -------------------------
    # PERSISTENCE
    # -------------------------
    storage_backend: Literal["memory", "file", "redis"] = "memory"
    storage_path: str = "./data"
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "miniapp:"
    redis_socket_timeout: int = 5

    # -------------------------
    # RUNTIME / RENDERING
    # -------------------------
    default_owner_id: str = "local-user"
    image_load_timeout: float = 10.0
    max_sessions: int = 256

    # -------------------------
    # VALIDATORS
    # -------------------------
    @field_validator('log_level', mode='before')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        return str(v).upper()

    @field_validator('environment', mode='before')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_envs = ["development", "staging", "production"]
        if v not in valid_envs:
            logger.warning(f"Invalid environment '{v}', defaulting to 'development'")
            return "development"
        return v

    @field_validator('openai_api_key', mode='before')
    @classmethod
    def blank_key_is_missing(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not str(v).strip():
            return None
        return str(v).strip()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def llm_config(self) -> Dict[str, Any]:
        return {
            "api_key": self.openai_api_key,
            "base_url": self.openai_base_url,
            "model": self.openai_model,
            "temperature": self.openai_temperature,
            "max_tokens": self.openai_max_tokens,
            "timeout": self.openai_timeout,
            "max_retries": self.openai_max_retries,
        }

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
        env_prefix="MINIAPP_",
        validate_default=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    logger.info("Initializing settings...")
    return Settings()


settings = get_settings()
