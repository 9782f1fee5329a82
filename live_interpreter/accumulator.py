"""
Transcript accumulation and the translation trigger.
"""

import asyncio
import logging
from typing import Callable, Optional

from .errors import InterpreterError
from .state import PipelineState
from .translation import TranslationClient

logger = logging.getLogger(__name__)


class TranscriptAccumulator:
    """Merges final fragments into the source buffer and re-translates it.

    The whole buffer is translated on every update. Each request carries a
    sequence number so a slow, older result never replaces a newer one.
    """

    def __init__(
        self,
        state: PipelineState,
        translator: TranslationClient,
        source_language: str,
        target_language: str,
        on_translation: Optional[Callable[[], None]] = None,
    ):
        self.state = state
        self.translator = translator
        self.source_language = source_language
        self.target_language = target_language
        self.on_translation = on_translation
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def on_final_fragment(self, text: str) -> None:
        """Append a final fragment and request a translation of the full buffer."""
        if not text:
            return
        seq = self.state.append_fragment(text)
        logger.debug("Source buffer now %d chars (request #%d)", len(self.state.source_text), seq)

        task = asyncio.create_task(self._translate(seq, self.state.source_text))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _translate(self, seq: int, text: str) -> None:
        self.state.translating += 1
        try:
            result = await self.translator.translate(text, self.source_language, self.target_language)
        except InterpreterError as e:
            logger.warning("Translation #%d failed: %s", seq, e)
            self.state.errors.translation = str(e)
            return
        finally:
            self.state.translating -= 1

        if result is None:
            return
        if not self.state.apply_translation(seq, result):
            logger.debug("Dropping stale translation #%d", seq)
            return

        self.state.errors.translation = None
        if self.on_translation:
            self.on_translation()

    def reset(self) -> None:
        """Clear source, translation and watermark; abandon in-flight requests."""
        for task in list(self._pending):
            task.cancel()
        self.state.reset()

    async def drain(self) -> None:
        """Wait for every in-flight translation to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
