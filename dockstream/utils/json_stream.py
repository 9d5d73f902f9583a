"""Incremental decoding of concatenated JSON values.

The events and stats endpoints write one JSON value after another into a
single never-ending body, with no enclosing array and no delimiter the
decoder can rely on. Values are decoded as soon as they are complete, and
a value split across any number of chunks is resumed when more bytes arrive.

Value boundaries are found by a scanner that keeps its string and bracket
state between chunks, so every character is scanned once and every value
is parsed once, when it closes. Bytes that cannot start a value, and
closing brackets that do not match, fail immediately; other syntax errors
inside a value fail as soon as that value closes.
"""

import codecs
import json
import re
from typing import Any, AsyncIterator, Iterator, List, Optional

from ..models.errors import StreamDecodeError

DEFAULT_MAX_UNIT_BYTES = 16 * 1024 * 1024

_WHITESPACE = " \t\n\r"
_SCALAR_START = "-0123456789tfn"
_CLOSERS = {"{": "}", "[": "]"}

_STRING_SPECIAL = re.compile(r'["\\]')
_STRUCTURAL = re.compile(r'[{}\[\]"]')
# A bare top-level number or literal ends at whitespace or punctuation
_SCALAR_END = re.compile(r'[\s{}\[\],:"]')


class _ValueSplitter:
    """Cuts a character stream into the source text of top-level values."""

    def __init__(self, max_unit_bytes: int):
        self._max_unit_bytes = max_unit_bytes
        self._parts: List[str] = []
        self._size = 0
        self._stack: List[str] = []
        self._started = False
        self._in_string = False
        self._escaped = False
        self._scalar = False

    def feed(self, text: str) -> Iterator[str]:
        """Yield the text of every value that completes within ``text``."""
        i = 0
        start = 0
        n = len(text)
        while i < n:
            if not self._started:
                while i < n and text[i] in _WHITESPACE:
                    i += 1
                if i == n:
                    break
                c = text[i]
                start = i
                i += 1
                self._started = True
                if c in _CLOSERS:
                    self._stack.append(_CLOSERS[c])
                elif c == '"':
                    self._in_string = True
                elif c in _SCALAR_START:
                    self._scalar = True
                else:
                    raise StreamDecodeError(f"unexpected {c!r} between JSON values")
                continue

            if self._escaped:
                self._escaped = False
                i += 1
                continue

            if self._in_string:
                match = _STRING_SPECIAL.search(text, i)
                if match is None:
                    break
                i = match.end()
                if match.group() == "\\":
                    self._escaped = True
                    continue
                self._in_string = False
                if not self._stack:
                    yield self._complete(text, start, i)
                    start = i
                continue

            if self._scalar:
                match = _SCALAR_END.search(text, i)
                if match is None:
                    # A number may continue in the next chunk
                    break
                i = match.start()
                self._scalar = False
                yield self._complete(text, start, i)
                start = i
                continue

            match = _STRUCTURAL.search(text, i)
            if match is None:
                break
            c = match.group()
            i = match.end()
            if c == '"':
                self._in_string = True
            elif c in _CLOSERS:
                self._stack.append(_CLOSERS[c])
            elif self._stack.pop() != c:
                raise StreamDecodeError(f"mismatched {c!r} in JSON value")
            elif not self._stack:
                yield self._complete(text, start, i)
                start = i

        if self._started:
            self._parts.append(text[start:])
            self._size += n - start
            if self._size > self._max_unit_bytes:
                raise StreamDecodeError(
                    f"pending JSON value exceeds {self._max_unit_bytes} bytes"
                )

    def finish(self) -> Optional[str]:
        """Text of a trailing bare scalar, if the stream ended on one."""
        if not self._started:
            return None
        if self._scalar:
            self._scalar = False
            return self._complete("", 0, 0)
        raise StreamDecodeError("truncated JSON value at end of stream")

    def _complete(self, text: str, start: int, end: int) -> str:
        self._parts.append(text[start:end])
        value = "".join(self._parts)
        self._parts = []
        self._size = 0
        self._started = False
        return value


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise StreamDecodeError(f"malformed JSON value: {e}") from e


async def iter_json_values(
    chunks: AsyncIterator[bytes],
    max_unit_bytes: int = DEFAULT_MAX_UNIT_BYTES,
) -> AsyncIterator[Any]:
    """Yield each JSON value from a stream of byte chunks.

    Ends silently when the stream ends on a value boundary.

    Raises:
        StreamDecodeError: on invalid UTF-8, on malformed data, on a value
            still incomplete when the stream ends, or on a pending value
            larger than ``max_unit_bytes``
    """
    splitter = _ValueSplitter(max_unit_bytes)
    utf8 = codecs.getincrementaldecoder("utf-8")()

    async for chunk in chunks:
        try:
            text = utf8.decode(chunk)
        except UnicodeDecodeError as e:
            raise StreamDecodeError(f"invalid UTF-8 in stream: {e}") from e
        for raw in splitter.feed(text):
            yield _loads(raw)

    try:
        text = utf8.decode(b"", final=True)
    except UnicodeDecodeError as e:
        raise StreamDecodeError(f"truncated UTF-8 sequence at end of stream: {e}") from e
    for raw in splitter.feed(text):
        yield _loads(raw)

    raw = splitter.finish()
    if raw is not None:
        yield _loads(raw)
