"""Incremental server-sent-event parsing for streamed completions.

The framer only turns bytes into complete lines; it knows nothing about
JSON. The accumulator classifies those lines and pulls the text delta out
of each data frame, so either half can be tested on its own.
"""

import codecs
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from studyai.app.core.logging import get_logger

logger = get_logger("studyai.client.sse")

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class LineFramer:
    """Assemble complete lines from arbitrarily split byte chunks.

    A chunk boundary may fall inside a line or inside a multi-byte UTF-8
    sequence; both are held back until the rest arrives.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @staticmethod
    def _strip_cr(line: str) -> str:
        return line[:-1] if line.endswith("\r") else line

    def feed(self, chunk: bytes) -> List[str]:
        """Return every line completed by `chunk`, without line terminators."""
        self._buffer += self._decoder.decode(chunk)
        if "\n" not in self._buffer:
            return []
        *lines, self._buffer = self._buffer.split("\n")
        return [self._strip_cr(line) for line in lines]

    def flush(self) -> List[str]:
        """Return the unterminated tail left at end of stream, if any."""
        self._buffer += self._decoder.decode(b"", final=True)
        rest, self._buffer = self._buffer, ""
        rest = self._strip_cr(rest)
        return [rest] if rest else []


class FrameKind(str, Enum):
    BLANK = "blank"
    COMMENT = "comment"
    OTHER = "other"
    DONE = "done"
    DATA = "data"


@dataclass(frozen=True)
class Frame:
    kind: FrameKind
    payload: Optional[str] = None


def parse_line(line: str) -> Frame:
    if not line.strip():
        return Frame(FrameKind.BLANK)
    if line.startswith(":"):
        return Frame(FrameKind.COMMENT)
    if not line.startswith(DATA_PREFIX):
        return Frame(FrameKind.OTHER)
    payload = line[len(DATA_PREFIX):].strip()
    if payload == DONE_SENTINEL:
        return Frame(FrameKind.DONE)
    return Frame(FrameKind.DATA, payload)


def delta_content(event: Any) -> Optional[str]:
    """Text fragment at choices[0].delta.content, or None."""
    try:
        content = event["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    return content if isinstance(content, str) and content else None


class ErrorFrame(Exception):
    """An in-band {"error": ...} frame sent instead of a completion chunk."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def extract_delta(payload: str) -> Optional[str]:
    """Parse a data payload and return its text fragment.

    Raises:
        ValueError: If the payload is not valid JSON
        ErrorFrame: If the payload carries an error instead of choices
    """
    event = json.loads(payload)
    if isinstance(event, dict) and event.get("error") and "choices" not in event:
        raise ErrorFrame(str(event["error"]))
    return delta_content(event)


class DeltaAccumulator:
    """Grow the display text from a streamed completion, in arrival order.

    `on_text` is called with the full text after every appended fragment.
    An in-band `{"error": ...}` frame is remembered in `error`; the stream
    keeps being read until the sentinel or its end.
    """

    def __init__(self, on_text: Optional[Callable[[str], None]] = None):
        self.framer = LineFramer()
        self.fragments: List[str] = []
        self.done = False
        self.error: Optional[str] = None
        self.skipped_lines = 0
        self._on_text = on_text

    @property
    def text(self) -> str:
        return "".join(self.fragments)

    def feed(self, chunk: bytes) -> bool:
        """Consume one chunk. Returns True once the sentinel has been seen."""
        if self.done:
            return True
        for line in self.framer.feed(chunk):
            if self._handle(line, at_end=False):
                self.done = True
                break
        return self.done

    def finish(self) -> None:
        """Best-effort pass over whatever remained unterminated at end of stream."""
        if self.done:
            return
        for line in self.framer.flush():
            if self._handle(line, at_end=True):
                self.done = True
                break

    def _handle(self, line: str, at_end: bool) -> bool:
        frame = parse_line(line)
        if frame.kind is FrameKind.DONE:
            return True
        if frame.kind is not FrameKind.DATA:
            return False

        try:
            content = extract_delta(frame.payload)
        except ErrorFrame as e:
            self.error = e.message
            return False
        except ValueError:
            # Only complete lines get here, so this frame is malformed, not split
            self.skipped_lines += 1
            if not at_end:
                logger.debug("Skipping malformed data frame", extra={"line_preview": line[:100]})
            return False

        if content:
            self.fragments.append(content)
            if self._on_text is not None:
                self._on_text(self.text)
        return False
