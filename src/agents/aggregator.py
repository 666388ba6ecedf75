from __future__ import annotations

import logging
from collections.abc import Callable

LOGGER = logging.getLogger(__name__)

SEPARATOR = " "


class UtteranceAggregator:
    """Accumulates transcription fragments until an utterance is long enough.

    The word count is the number of separator-delimited segments of the buffer.
    Every fragment is stored with a trailing separator, so the count includes
    the empty tail segment: "I have a bad headache " counts as 6.
    """

    def __init__(
        self,
        on_flush: Callable[[str], None],
        *,
        word_threshold: int = 5,
        max_chars: int = 2000,
    ) -> None:
        self._on_flush = on_flush
        self._word_threshold = word_threshold
        self._max_chars = max_chars
        self._buffer = ""

    @property
    def pending_text(self) -> str:
        return self._buffer

    def word_count(self) -> int:
        if not self._buffer:
            return 0
        return len(self._buffer.split(SEPARATOR))

    def append(self, text: str) -> str | None:
        """Append a fragment; return the flushed utterance if this append triggered one."""

        if not text or not text.strip():
            return None

        self._buffer += text + SEPARATOR

        if self.word_count() > self._word_threshold:
            return self._flush()
        if len(self._buffer) > self._max_chars:
            LOGGER.info("Utterance buffer exceeded %d chars; flushing early", self._max_chars)
            return self._flush()
        return None

    def discard(self) -> None:
        if self._buffer:
            LOGGER.debug("Discarding unflushed utterance: %r", self._buffer)
        self._buffer = ""

    def _flush(self) -> str:
        utterance = self._buffer
        self._buffer = ""
        self._on_flush(utterance)
        return utterance
