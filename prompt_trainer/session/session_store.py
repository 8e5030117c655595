"""
Session Store - History, templates, favorites and the draft slot

Single writer for all persisted session state. Each mutating method
overwrites the matching slot first and only then updates memory, so
memory and storage never disagree about a collection.
"""

import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any, List, Optional, Tuple, Union

from loguru import logger
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from prompt_trainer.errors import (
    HistoryEntryNotFoundError,
    ImportFormatError,
    TemplateNotFoundError,
    ValidationError,
)
from prompt_trainer.models.history import HistoryEntry
from prompt_trainer.models.prompt_template import DEFAULT_CATEGORY, PromptTemplate
from prompt_trainer.models.snapshot import ExportSnapshot
from prompt_trainer.session.autosave import DraftAutoSaver
from prompt_trainer.storage.persistence import (
    DRAFT_SLOT,
    FAVORITES_SLOT,
    HISTORY_SLOT,
    TEMPLATES_SLOT,
    PersistenceAdapter,
)


MAX_HISTORY = 50

HISTORY_ADAPTER = TypeAdapter(List[HistoryEntry])
TEMPLATES_ADAPTER = TypeAdapter(List[PromptTemplate])
FAVORITES_ADAPTER = TypeAdapter(List[str])


def _unique(ids: List[str]) -> List[str]:
    return list(dict.fromkeys(ids))


def _history_value(history: List[HistoryEntry]) -> list:
    return [e.to_json_dict() for e in history]


def _templates_value(templates: List[PromptTemplate]) -> list:
    return [t.to_json_dict() for t in templates]


class SessionStore:
    """Owns the persisted collections of one session"""

    def __init__(
        self,
        persistence: PersistenceAdapter,
        max_history: int = MAX_HISTORY,
        autosave_delay_seconds: float = 1.0,
        autosave_enabled: bool = True,
    ):
        self.persistence = persistence
        self.max_history = max_history
        self.autosaver = DraftAutoSaver(
            persistence,
            delay_seconds=autosave_delay_seconds,
            enabled=autosave_enabled,
        )
        self._history: List[HistoryEntry] = []
        self._templates: List[PromptTemplate] = []
        self._favorites: List[str] = []

    async def load(self):
        """Populate memory from the store; bad or missing slots start empty"""
        self._history = (await self._load_slot(HISTORY_SLOT, HISTORY_ADAPTER))[: self.max_history]
        self._templates = await self._load_slot(TEMPLATES_SLOT, TEMPLATES_ADAPTER)
        self._favorites = _unique(await self._load_slot(FAVORITES_SLOT, FAVORITES_ADAPTER))
        logger.info(
            f"Session loaded: {len(self._history)} history entries, "
            f"{len(self._templates)} templates, {len(self._favorites)} favorites"
        )

    async def _load_slot(self, slot: str, adapter: TypeAdapter) -> list:
        try:
            raw = await self.persistence.load(slot)
            if raw is None:
                return []
            return adapter.validate_python(raw)
        except (ValueError, PydanticValidationError) as e:
            logger.warning(f"Discarding unreadable '{slot}' slot: {e}")
            return []

    async def close(self):
        self.autosaver.cancel()

    # Read accessors

    @property
    def history(self) -> List[HistoryEntry]:
        """Newest first"""
        return list(self._history)

    @property
    def templates(self) -> List[PromptTemplate]:
        return list(self._templates)

    @property
    def favorites(self) -> List[str]:
        return list(self._favorites)

    def is_favorite(self, template_id: str) -> bool:
        return template_id in self._favorites

    def get_template(self, template_id: str) -> PromptTemplate:
        for template in self._templates:
            if template.id == template_id:
                return template
        raise TemplateNotFoundError(f"Template not found: {template_id}")

    def list_templates(self, favorites_only: bool = False) -> List[PromptTemplate]:
        if favorites_only:
            return [t for t in self._templates if t.id in self._favorites]
        return list(self._templates)

    # History

    async def record_history(self, entry: HistoryEntry):
        """Prepend an entry, evicting the oldest beyond the retention limit"""
        history = [entry] + self._history[: self.max_history - 1]
        await self.persistence.save(HISTORY_SLOT, _history_value(history))
        self._history = history

    def reuse_history_prompt(self, entry_id: str) -> str:
        """Prompt text of a past exchange, for loading back into the editor"""
        for entry in self._history:
            if entry.id == entry_id:
                return entry.prompt
        raise HistoryEntryNotFoundError(f"History entry not found: {entry_id}")

    # Templates and favorites

    async def save_template(self, prompt_text: str) -> str:
        if not prompt_text or not prompt_text.strip():
            raise ValidationError("Cannot save an empty prompt as a template")

        template = PromptTemplate(
            name=f"Template {len(self._templates) + 1}",
            prompt=prompt_text.strip(),
            category=DEFAULT_CATEGORY,
        )
        templates = self._templates + [template]
        await self.persistence.save(TEMPLATES_SLOT, _templates_value(templates))
        self._templates = templates
        logger.debug(f"Saved template {template.id} ({template.name})")
        return template.id

    def load_template(self, template_id: str) -> str:
        return self.get_template(template_id).prompt

    async def toggle_favorite(self, template_id: str) -> bool:
        """
        Flip favorite membership and return the new state

        Only existing templates can be favorited; an identifier that is
        already in the set can always be removed.
        """
        if template_id in self._favorites:
            favorites = [f for f in self._favorites if f != template_id]
        else:
            self.get_template(template_id)
            favorites = self._favorites + [template_id]

        await self.persistence.save(FAVORITES_SLOT, list(favorites))
        self._favorites = favorites
        return template_id in self._favorites

    async def delete_template(self, template_id: str):
        """Remove a template and any favorite pointing at it"""
        self.get_template(template_id)
        templates = [t for t in self._templates if t.id != template_id]
        writes = [(TEMPLATES_SLOT, _templates_value(templates), _templates_value(self._templates))]

        favorites = None
        if template_id in self._favorites:
            favorites = [f for f in self._favorites if f != template_id]
            writes.append((FAVORITES_SLOT, list(favorites), list(self._favorites)))

        await self._write_slots(writes)
        self._templates = templates
        if favorites is not None:
            self._favorites = favorites

    # Bulk operations

    async def remove_all_data(self):
        """Drop history, templates and favorites; irreversible"""
        await self.persistence.remove(HISTORY_SLOT, TEMPLATES_SLOT, FAVORITES_SLOT)
        self._history = []
        self._templates = []
        self._favorites = []
        logger.info("All session data removed")

    def export_snapshot(self) -> ExportSnapshot:
        return ExportSnapshot(
            history=list(self._history),
            templates=list(self._templates),
            favorites=list(self._favorites),
            export_date=datetime.now(),
        )

    @staticmethod
    def export_filename(when: Optional[datetime] = None) -> str:
        when = when or datetime.now()
        return f"prompt-trainer-export-{when.date().isoformat()}.json"

    async def import_snapshot(self, data: Union[str, bytes, Mapping, Any]):
        """
        Replace each collection present in `data` wholesale

        Accepts a decoded mapping or raw JSON text. Everything present is
        validated before any collection changes; on failure nothing does.
        """
        if isinstance(data, (str, bytes, bytearray)):
            try:
                data = json.loads(data)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise ImportFormatError(f"Import data is not valid JSON: {e}") from e

        if not isinstance(data, Mapping):
            raise ImportFormatError("Import data must be a JSON object")

        try:
            history = (
                HISTORY_ADAPTER.validate_python(data["history"])
                if data.get("history") is not None else None
            )
            templates = (
                TEMPLATES_ADAPTER.validate_python(data["templates"])
                if data.get("templates") is not None else None
            )
            favorites = (
                FAVORITES_ADAPTER.validate_python(data["favorites"])
                if data.get("favorites") is not None else None
            )
        except PydanticValidationError as e:
            raise ImportFormatError(f"Import data has an invalid structure: {e}") from e

        if history is not None:
            history = history[: self.max_history]
        if favorites is not None:
            favorites = _unique(favorites)

        writes = []
        if history is not None:
            writes.append((HISTORY_SLOT, _history_value(history), _history_value(self._history)))
        if templates is not None:
            writes.append((TEMPLATES_SLOT, _templates_value(templates), _templates_value(self._templates)))
        if favorites is not None:
            writes.append((FAVORITES_SLOT, list(favorites), list(self._favorites)))

        await self._write_slots(writes)

        if history is not None:
            self._history = history
        if templates is not None:
            self._templates = templates
        if favorites is not None:
            self._favorites = favorites

        imported = [
            name for name, value in
            (("history", history), ("templates", templates), ("favorites", favorites))
            if value is not None
        ]
        logger.info(f"Imported: {', '.join(imported) or 'nothing'}")

    # Draft

    @property
    def autosave_enabled(self) -> bool:
        return self.autosaver.enabled

    @autosave_enabled.setter
    def autosave_enabled(self, enabled: bool):
        self.autosaver.enabled = enabled
        if not enabled:
            self.autosaver.cancel()

    def update_draft(self, text: str):
        """Call on every edit; the draft is written once edits stop"""
        self.autosaver.schedule(text)

    async def flush_draft(self):
        await self.autosaver.flush()

    async def load_draft(self) -> Optional[str]:
        try:
            draft = await self.persistence.load(DRAFT_SLOT)
        except ValueError as e:
            logger.warning(f"Discarding unreadable draft: {e}")
            return None
        return draft if isinstance(draft, str) else None

    # Slot writes

    async def _write_slots(self, writes: List[Tuple[str, Any, Any]]):
        """
        Overwrite several slots as one change

        Each write carries the slot's current value. If a later write fails,
        the slots already written are put back before the error propagates.
        """
        written = []
        try:
            for slot, value, previous in writes:
                await self.persistence.save(slot, value)
                written.append((slot, previous))
        except Exception:
            for slot, previous in reversed(written):
                try:
                    await self.persistence.save(slot, previous)
                except Exception as e:
                    logger.error(f"Could not restore '{slot}' slot after a failed write: {e}")
            raise
