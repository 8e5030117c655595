"""Pydantic models for API requests and responses"""

from typing import Optional
from pydantic import BaseModel, Field

from prompt_trainer.models.generation import GenerationParameters


class PromptRequest(BaseModel):
    """Request carrying a single prompt"""
    prompt: str = Field(..., description="Prompt text")


class CompletionRequest(BaseModel):
    """Completion request model"""
    prompt: str = Field(..., description="User prompt")
    system_prompt: Optional[str] = Field(None, description="Optional system prompt")
    parameters: GenerationParameters = Field(default_factory=GenerationParameters)


class CompletionResponse(BaseModel):
    """Completion response model"""
    id: str
    model: str
    content: str
    latency_ms: float
    token_count: int


class TemplateCreated(BaseModel):
    id: str
    name: str


class FavoriteState(BaseModel):
    id: str
    is_favorite: bool


class TemplateView(BaseModel):
    """Template as listed to clients, with favorite status joined in"""
    id: str
    name: str
    prompt: str
    category: str
    created_at: str
    is_favorite: bool


class DraftResponse(BaseModel):
    prompt: Optional[str] = None
    autosave_enabled: bool = True


class DraftRequest(BaseModel):
    prompt: str = ""
    autosave_enabled: Optional[bool] = None
