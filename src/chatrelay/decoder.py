"""Incremental decoding of the provider's server-sent-events token stream.

The provider answers a streaming completion with newline-delimited lines::

    data: {"choices":[{"delta":{"content":"Hi"}}]}

    data: {"choices":[{"delta":{"content":" there"}}]}

    data: [DONE]

`iter_lines` turns raw body chunks into lines and `StreamDecoder` turns lines
into `StreamEvent` values. Both are lazy: every step pulls from the
underlying body, so a slow provider suspends the caller at each read.
"""

import codecs
import logging
from typing import Iterable, Iterator, List, Union

from pydantic import ValidationError

from .models import (
    DATA_PREFIX,
    DONE_MARKER,
    DoneEvent,
    FragmentEvent,
    MalformedEvent,
    StreamEnvelope,
    StreamEvent,
)

logger = logging.getLogger(__name__)


def iter_lines(chunks: Iterable[Union[bytes, str]]) -> Iterator[str]:
    """Splits a stream of body chunks into lines.

    Chunk boundaries may fall anywhere, including inside a line or inside a
    multibyte UTF-8 character. Both `\\n` and `\\r\\n` terminate a line. A
    trailing partial line at end of stream is yielded as a complete line.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    pending: List[str] = []
    for chunk in chunks:
        if isinstance(chunk, bytes):
            chunk = decoder.decode(chunk)
        if "\n" not in chunk:
            if chunk:
                pending.append(chunk)
            continue
        first, *complete, tail = chunk.split("\n")
        pending.append(first)
        yield "".join(pending).rstrip("\r")
        for line in complete:
            yield line.rstrip("\r")
        pending = [tail] if tail else []
    pending.append(decoder.decode(b"", final=True))
    rest = "".join(pending)
    if rest:
        yield rest.rstrip("\r")


class StreamDecoder:
    """Turns provider stream lines into fragments, heartbeats and a terminator."""

    def decode(self, lines: Iterable[str]) -> Iterator[StreamEvent]:
        """Yields one event per meaningful line, stopping at `[DONE]`.

        Blank lines, SSE comments and envelopes with an empty `choices` list
        are keep-alives and produce no event. Lines that do not parse are
        reported as `MalformedEvent` so the caller can choose a policy.
        After `[DONE]` the remaining input is drained without decoding.
        """
        iterator = iter(lines)
        for line in iterator:
            event = self.decode_line(line)
            if event is None:
                continue
            yield event
            if isinstance(event, DoneEvent):
                drained = sum(1 for _ in iterator)
                if drained:
                    logger.debug("Drained %d line(s) after end of stream", drained)
                return

    def decode_line(self, line: str):
        """Decodes a single line; returns None for lines carrying no event."""
        if not line.strip() or line.startswith(":"):
            return None

        content = line
        if content.startswith(DATA_PREFIX):
            content = content[len(DATA_PREFIX) :]
            if content.startswith(" "):
                content = content[1:]

        if content.strip() == DONE_MARKER:
            return DoneEvent()

        try:
            envelope = StreamEnvelope.model_validate_json(content)
        except ValidationError:
            return MalformedEvent(raw=content)

        if not envelope.choices:
            return None
        text = envelope.choices[0].delta.content
        if not text:
            return None
        return FragmentEvent(text=text)
