"""History entry model"""

import uuid
from datetime import datetime

from pydantic import ConfigDict, Field

from prompt_trainer.models.base import CamelModel


class HistoryEntry(CamelModel):
    """One successful prompt/response exchange"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    prompt: str
    response: str
    timestamp: datetime = Field(default_factory=datetime.now)

    # Generation parameters snapshot
    temperature: float
    max_tokens: int

    latency_ms: float = Field(0.0, alias="responseTime", ge=0)
    token_count: int = Field(0, ge=0)
