"""
Settings - Environment-driven configuration

Values come from the process environment, optionally seeded from a local
.env file. The completion service credential is only ever read from here.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


DEFAULT_API_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_MODEL = "deepseek/deepseek-chat-v3-0324:free"


class Settings(BaseModel):
    """Runtime configuration"""

    # Completion service
    api_key: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    model: str = DEFAULT_MODEL
    app_referer: str = "https://prompt-trainer.ai"
    app_title: str = "AI Prompt Trainer"
    request_timeout_seconds: float = Field(60.0, gt=0)

    # Persistence
    storage_backend: str = "file"  # file, redis, memory
    data_dir: str = ".prompt_trainer"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    # Session
    autosave_delay_seconds: float = Field(1.0, ge=0)
    max_history: int = Field(50, ge=1)

    # Observability
    log_level: str = "INFO"
    langfuse_secret_key: Optional[str] = None
    langfuse_public_key: Optional[str] = None
    langfuse_host: str = "http://localhost:3000"

    # Gateway
    gateway_host: str = "0.0.0.0"
    gateway_port: int = 8000

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """Build settings from environment variables (and .env if present)"""
        load_dotenv(dotenv_path)

        return cls(
            api_key=os.getenv("OPENROUTER_API_KEY") or None,
            api_url=os.getenv("PROMPT_TRAINER_API_URL", DEFAULT_API_URL),
            model=os.getenv("PROMPT_TRAINER_MODEL", DEFAULT_MODEL),
            app_referer=os.getenv("PROMPT_TRAINER_REFERER", "https://prompt-trainer.ai"),
            app_title=os.getenv("PROMPT_TRAINER_TITLE", "AI Prompt Trainer"),
            request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "60")),
            storage_backend=os.getenv("PROMPT_TRAINER_STORAGE", "file").lower(),
            data_dir=os.getenv("PROMPT_TRAINER_DATA_DIR", ".prompt_trainer"),
            redis_host=os.getenv("REDIS_HOST", "localhost"),
            redis_port=int(os.getenv("REDIS_PORT", "6379")),
            redis_password=os.getenv("REDIS_PASSWORD") or None,
            redis_db=int(os.getenv("REDIS_DB", "0")),
            autosave_delay_seconds=float(os.getenv("AUTOSAVE_DELAY_SECONDS", "1.0")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            langfuse_secret_key=os.getenv("LANGFUSE_SECRET_KEY") or None,
            langfuse_public_key=os.getenv("LANGFUSE_PUBLIC_KEY") or None,
            langfuse_host=os.getenv("LANGFUSE_HOST", "http://localhost:3000"),
            gateway_host=os.getenv("GATEWAY_HOST", "0.0.0.0"),
            gateway_port=int(os.getenv("GATEWAY_PORT", "8000")),
        )
