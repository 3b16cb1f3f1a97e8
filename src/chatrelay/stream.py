"""Server-sent-events endpoint draining the fragment relay."""

import logging
import queue
import re
from typing import Iterator

from .models import EndOfTurn, Fragment, RelayItem
from .relay import FragmentRelay

logger = logging.getLogger(__name__)

KEEPALIVE_FRAME = ": keep-alive\n\n"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def format_event(item: RelayItem) -> str:
    """Encodes a relay item as one SSE frame.

    Text fragments become ``message`` events, one ``data:`` line per line of
    text. CR, LF and CRLF all break lines, as they do for the browser's
    EventSource, which reassembles the text with LF line breaks. The end of a
    turn becomes an ``end`` event with empty data.
    """
    if isinstance(item, EndOfTurn):
        return "event: end\ndata: \n\n"
    data = "".join(f"data: {line}\n" for line in _LINE_BREAK.split(item.text))
    return f"event: message\n{data}\n"


def listen(relay: FragmentRelay, keepalive: float = 15.0) -> Iterator[str]:
    """Yields SSE frames for whatever the relay delivers to this listener.

    The loop ends when the relay is closed and drained, or when the web
    server closes this generator because the client went away. While idle,
    a comment frame is sent every `keepalive` seconds; a failed write of that
    frame is how a silent disconnect gets noticed.
    """
    logger.info("Stream listener attached")
    delivered = 0
    try:
        while True:
            try:
                item = relay.take_next(timeout=keepalive)
            except queue.Empty:
                yield KEEPALIVE_FRAME
                continue
            if item is None:
                logger.info("Relay closed, ending stream")
                return
            delivered += isinstance(item, Fragment)
            yield format_event(item)
    finally:
        logger.info("Stream listener detached after %d fragment(s)", delivered)
