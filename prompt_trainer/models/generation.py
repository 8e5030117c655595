"""Generation parameters and completion models"""

from typing import Optional
from pydantic import BaseModel, Field

from prompt_trainer.models.history import HistoryEntry


class GenerationParameters(BaseModel):
    """Per-request sampling configuration"""
    temperature: float = Field(0.7, ge=0, le=2)
    max_tokens: int = Field(1000, ge=1)
    top_p: float = Field(1.0, ge=0, le=1)
    frequency_penalty: float = Field(0.0, ge=-2, le=2)
    presence_penalty: float = Field(0.0, ge=-2, le=2)
    system_prompt: Optional[str] = None


class CompletionResult(BaseModel):
    """What a successful submit hands back to the caller"""
    content: str
    latency_ms: float
    token_count: int
    model: str
    history_entry: HistoryEntry
