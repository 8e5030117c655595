"""Prompt analysis model"""

from typing import List
from pydantic import BaseModel, Field, computed_field


GOOD_QUALITY_THRESHOLD = 70


class PromptAnalysis(BaseModel):
    """Heuristic quality scores for a prompt"""
    clarity: int = Field(..., ge=0, le=100)
    specificity: int = Field(..., ge=0, le=100)
    structure: int = Field(..., ge=0, le=100)
    suggestions: List[str] = Field(default_factory=list)

    # Counts the scores were derived from
    word_count: int = 0
    sentence_count: int = 0
    character_count: int = 0

    @computed_field
    @property
    def quality_score(self) -> int:
        """Rounded mean of the three scores"""
        return int(round((self.clarity + self.specificity + self.structure) / 3))

    @computed_field
    @property
    def is_good(self) -> bool:
        return self.quality_score > GOOD_QUALITY_THRESHOLD
