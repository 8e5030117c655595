"""Prompt template model"""

import uuid
from datetime import datetime

from pydantic import Field

from prompt_trainer.models.base import CamelModel

DEFAULT_CATEGORY = "Custom"


class PromptTemplate(CamelModel):
    """Saved, reusable prompt"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    prompt: str
    category: str = DEFAULT_CATEGORY
    created_at: datetime = Field(default_factory=datetime.now)
