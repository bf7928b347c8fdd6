import orjson
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

SSE_EVENT_PREFIX = "event:"
SSE_DATA_PREFIX = "data:"


def format_sse(event: str, data: dict) -> str:
    """Format data as SSE event"""
    return f"event: {event}\ndata: {orjson.dumps(data).decode()}\n\n"


@dataclass
class RawEventFrame:
    """One SSE record being accumulated between blank lines"""

    event_name: str = ""
    data_lines: List[str] = field(default_factory=list)

    @property
    def payload(self) -> str:
        return "\n".join(self.data_lines)


class SSEFrameReader:
    """
    Line-oriented SSE framing.

    Feed lines one at a time (without their trailing newline). A blank line
    closes the current record; `feed` then returns `(event_name, payload)`
    if the record carried any data. Call `flush` once the input is exhausted
    to recover a final record that was not followed by a blank line.
    """

    def __init__(self):
        self._frame = RawEventFrame()

    def feed(self, line: str) -> Optional[Tuple[str, str]]:
        # aiter_lines already strips "\n"; a lone "\r" from CRLF input is still a terminator
        line = line.rstrip("\r")

        if not line:
            frame, self._frame = self._frame, RawEventFrame()
            if frame.data_lines:
                return frame.event_name, frame.payload
            return None

        if line.startswith(SSE_EVENT_PREFIX):
            self._frame.event_name = line[len(SSE_EVENT_PREFIX):].strip()
        elif line.startswith(SSE_DATA_PREFIX):
            self._frame.data_lines.append(line[len(SSE_DATA_PREFIX):].strip())
        # Comments (":") and unknown fields are ignored
        return None

    def flush(self) -> Optional[Tuple[str, str]]:
        frame, self._frame = self._frame, RawEventFrame()
        if frame.data_lines:
            return frame.event_name, frame.payload
        return None
