"""Export/import snapshot model"""

from datetime import datetime
from typing import List

from pydantic import Field

from prompt_trainer.models.base import CamelModel
from prompt_trainer.models.history import HistoryEntry
from prompt_trainer.models.prompt_template import PromptTemplate


class ExportSnapshot(CamelModel):
    """Full session state as written to an export file"""
    history: List[HistoryEntry] = Field(default_factory=list)
    templates: List[PromptTemplate] = Field(default_factory=list)
    favorites: List[str] = Field(default_factory=list)
    export_date: datetime = Field(default_factory=datetime.now)
