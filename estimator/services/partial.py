"""
Best-effort partial estimates from in-flight model output.

The model streams a JSON object token by token. Before the authoritative
result arrives we scan the tail of that text for macro numbers so the UI can
show provisional values. Nothing here is authoritative: a missing match means
"not yet known", never zero.
"""

import re
from typing import Dict, Optional, Pattern

from estimator.config import settings
from estimator.models.estimate import MACRO_FIELDS, PartialEstimate

# Non-negative integers and decimals only; "-5" or "1e3" simply do not match
_NUMBER = r"(\d+(?:\.\d+)?)(?![\d.eE])"

FIELD_PATTERNS: Dict[str, Pattern[str]] = {
    field: re.compile(rf'"{field}"\s*:\s*{_NUMBER}') for field in MACRO_FIELDS
}


def _first_number(pattern: Pattern[str], text: str) -> Optional[float]:
    match = pattern.search(text)
    if match is None:
        return None
    return float(match.group(1))


def extract_partial(text: str) -> PartialEstimate:
    """Extract whichever macro fields already appear in `text`."""
    return PartialEstimate(
        **{field: _first_number(pattern, text) for field, pattern in FIELD_PATTERNS.items()}
    )


class StreamBuffer:
    """Rolling window over streamed delta text, plus a display preview."""

    def __init__(
        self,
        max_length: Optional[int] = None,
        preview_length: Optional[int] = None,
    ):
        self.max_length = max_length or settings.stream_buffer_limit
        self.preview_length = preview_length or settings.stream_preview_limit
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    @property
    def preview(self) -> str:
        if len(self._text) > self.preview_length:
            return "..." + self._text[-self.preview_length:]
        return self._text

    def append(self, delta: str) -> str:
        """Append a delta, trim to the trailing window, and return the preview."""
        self._text += delta
        if len(self._text) > self.max_length:
            self._text = self._text[-self.max_length:]
        return self.preview

    def partial(self) -> PartialEstimate:
        return extract_partial(self._text)

    def reset(self) -> None:
        self._text = ""
