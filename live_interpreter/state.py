"""
Shared pipeline state: text buffers, spoken watermark and per-stage errors.

Every mutation happens on the event loop thread. The audio thread never
touches this module.
"""

from dataclasses import dataclass, field
from typing import Optional

# Characters that close a sentence for spacing and speaking decisions
SENTENCE_END = (".", "?", "!")


def join_fragment(buffer: str, fragment: str) -> str:
    """Append a transcript fragment to the buffer with a single separator.

    A space is inserted unless either side is empty, either side already
    carries whitespace at the boundary, or the buffer ends a sentence.
    """
    needs_space = (
        len(buffer) > 0
        and len(fragment) > 0
        and not buffer[-1].isspace()
        and not fragment[0].isspace()
        and not buffer.strip().endswith(SENTENCE_END)
    )
    return buffer + (" " if needs_space else "") + fragment


@dataclass
class StageErrors:
    """Latest error per stage, None when the stage is healthy."""
    capture: Optional[str] = None
    transcription: Optional[str] = None
    translation: Optional[str] = None
    synthesis: Optional[str] = None

    def clear(self) -> None:
        self.capture = None
        self.transcription = None
        self.translation = None
        self.synthesis = None


@dataclass
class PipelineState:
    """Source text, its current translation and how much of it was spoken."""
    source_text: str = ""
    translated_text: str = ""
    recording: bool = False
    live_caption: str = ""
    provider_caption: str = ""
    translating: int = 0
    errors: StageErrors = field(default_factory=StageErrors)
    _watermark: int = 0
    _issued_seq: int = 0
    _applied_seq: int = 0

    @property
    def spoken_watermark(self) -> int:
        """Length of the translated prefix already claimed for speaking."""
        return min(self._watermark, len(self.translated_text))

    @property
    def unspoken(self) -> str:
        """Translated text not yet sent to synthesis, trimmed."""
        return self.translated_text[self._watermark:].strip()

    def reset(self) -> None:
        """Start a new session: empty buffers, watermark back to zero.

        Translations issued before the reset can no longer be applied.
        """
        self.source_text = ""
        self.translated_text = ""
        self.live_caption = ""
        self.provider_caption = ""
        self._watermark = 0
        self._applied_seq = self._issued_seq

    def append_fragment(self, text: str) -> int:
        """Merge a final fragment and reserve a sequence number for its translation."""
        self.source_text = join_fragment(self.source_text, text)
        self.live_caption = ""
        self._issued_seq += 1
        return self._issued_seq

    def apply_translation(self, seq: int, text: str) -> bool:
        """Replace the translated buffer unless a newer result already landed."""
        if seq <= self._applied_seq:
            return False
        self._applied_seq = seq
        self.translated_text = text
        return True

    def claim_unspoken(self) -> str:
        """Take the unspoken portion and advance the watermark to the buffer end."""
        text = self.unspoken
        self._watermark = max(self._watermark, len(self.translated_text))
        return text
