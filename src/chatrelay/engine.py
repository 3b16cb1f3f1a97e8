"""Engines orchestrate one prompt's lifecycle, from submission to end of turn."""

import itertools
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional

from .decoder import StreamDecoder, iter_lines
from .errors import DecodeError, RelayError
from .models import (
    ASSISTANT_ROLE,
    END_OF_TURN,
    USER_ROLE,
    ChatMessage,
    CompletionRequest,
    Fragment,
    FragmentEvent,
    MalformedEvent,
    TurnResult,
    TurnState,
)
from .request_builder import build_request

if TYPE_CHECKING:
    from .session import Session

logger = logging.getLogger(__name__)

ABORT = "abort"
SKIP = "skip"


class Engine(ABC):
    """Abstract base for prompt handlers.

    An engine is bound to the `Session` whose history, relay and provider it
    drives. Binding may happen after construction.
    """

    def __init__(self, session: Optional["Session"] = None):
        self.session = session

    @abstractmethod
    def handle_prompt(self, prompt: str) -> TurnResult:
        """Runs one turn for `prompt` and returns its outcome.

        Raises
        ------
        BadInput
            The prompt was empty; nothing was sent and history is unchanged.
        UpstreamError
            The provider could not be reached or rejected the request.
        DecodeError
            The provider stream could not be decoded.
        """
        pass


class Streaming(Engine):
    """Relays the provider's token stream onto the session relay as it arrives.

    Turn states: received -> building -> calling -> streaming -> completed,
    or failed from any of them. Nothing is retried.

    `on_malformed` selects what an unparsable stream line does to the turn:
    ``"abort"`` fails it immediately, ``"skip"`` drops the line and only
    fails the turn if the stream produced no text at all.
    """

    def __init__(self, session: Optional["Session"] = None, on_malformed: str = SKIP):
        super().__init__(session)
        if on_malformed not in (ABORT, SKIP):
            raise ValueError(f"on_malformed must be '{ABORT}' or '{SKIP}'")
        self.on_malformed = on_malformed
        self.decoder = StreamDecoder()
        self._turn_ids = itertools.count(1)

    def handle_prompt(self, prompt: str) -> TurnResult:
        session = self.session
        turn = next(self._turn_ids)
        logger.debug("Turn %d: %s", turn, TurnState.RECEIVED.value)

        self._transition(turn, TurnState.BUILDING)
        try:
            request = build_request(
                session.history.snapshot(),
                prompt,
                model=session.llm.model,
                max_tokens=session.settings.max_tokens,
            )
        except RelayError as exc:
            self._fail(turn, exc)
            raise
        session.history.append(ChatMessage(role=USER_ROLE, content=prompt))

        try:
            result = self._relay_completion(turn, request)
        except RelayError as exc:
            self._fail(turn, exc)
            logger.warning("Turn %d: assistant reply not recorded", turn)
            raise

        session.history.append(ChatMessage(role=ASSISTANT_ROLE, content=result.content))
        session.relay.publish(END_OF_TURN)
        self._transition(turn, TurnState.COMPLETED)
        logger.info(
            "Turn %d completed: %d fragment(s), %d chars",
            turn,
            result.fragments,
            len(result.content),
        )
        return result

    def _relay_completion(self, turn: int, request: CompletionRequest) -> TurnResult:
        relay = self.session.relay
        parts: List[str] = []
        skipped = 0

        self._transition(turn, TurnState.CALLING)
        with self.session.llm.open_stream(request) as body:
            self._transition(turn, TurnState.STREAMING)
            for event in self.decoder.decode(iter_lines(body)):
                if isinstance(event, FragmentEvent):
                    parts.append(event.text)
                    relay.publish(Fragment(text=event.text))
                elif isinstance(event, MalformedEvent):
                    if self.on_malformed == ABORT:
                        raise DecodeError(
                            "Malformed line in provider stream", raw=event.raw
                        )
                    skipped += 1
                    logger.warning(
                        "Turn %d: skipping malformed stream line %.200r",
                        turn,
                        event.raw,
                    )

        if skipped and not parts:
            raise DecodeError(
                f"Provider stream had {skipped} malformed line(s) and no text"
            )
        return TurnResult(
            content="".join(parts), fragments=len(parts), skipped_lines=skipped
        )

    @staticmethod
    def _transition(turn: int, state: TurnState) -> None:
        logger.debug("Turn %d: %s", turn, state.value)

    @staticmethod
    def _fail(turn: int, exc: RelayError) -> None:
        logger.warning(
            "Turn %d: %s (%s): %s", turn, TurnState.FAILED.value, exc.kind, exc
        )
