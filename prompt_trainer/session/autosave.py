"""Debounced draft auto-save"""

import asyncio
from typing import Optional

from loguru import logger

from prompt_trainer.storage.persistence import DRAFT_SLOT, PersistenceAdapter


class DraftAutoSaver:
    """
    Writes the in-progress prompt to the draft slot after an idle period

    There is at most one pending write. Every `schedule` cancels it and
    starts a fresh delayed task, so only the value that survives a full
    idle period reaches the store.
    """

    def __init__(
        self,
        persistence: PersistenceAdapter,
        delay_seconds: float = 1.0,
        enabled: bool = True,
        slot: str = DRAFT_SLOT,
    ):
        self.persistence = persistence
        self.delay_seconds = delay_seconds
        self.enabled = enabled
        self.slot = slot
        self.last_saved: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._pending: Optional[str] = None

    @property
    def pending(self) -> Optional[str]:
        """Text waiting to be written, if any"""
        return self._pending

    def schedule(self, text: str):
        """Replace any pending write with one for `text`; needs a running loop"""
        self.cancel()
        if not self.enabled or not text.strip():
            return

        self._pending = text
        self._task = asyncio.get_running_loop().create_task(self._write_later(text))

    def cancel(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._pending = None

    async def flush(self):
        """Write the pending draft now instead of waiting out the delay"""
        if self._pending is None:
            return
        text = self._pending
        self.cancel()
        await self._write(text)

    async def _write_later(self, text: str):
        await asyncio.sleep(self.delay_seconds)
        try:
            await self._write(text)
        except Exception as e:
            logger.error(f"Draft auto-save failed: {e}")

    async def _write(self, text: str):
        await self.persistence.save(self.slot, text)
        self.last_saved = text
        if self._pending == text:
            self._pending = None
        logger.debug(f"Draft saved ({len(text)} characters)")
