"""
Defines the core Pydantic data models for the relay.

These models are the data contract between the history, the request builder,
the decoder and the relay, aligning with the wire shapes of OpenAI-compatible
chat completion APIs.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# --- Constants ---
USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
SYSTEM_ROLE = "system"
Role = Literal[USER_ROLE, ASSISTANT_ROLE, SYSTEM_ROLE]

DONE_MARKER = "[DONE]"
DATA_PREFIX = "data:"


# --- Conversation ---
class ChatMessage(BaseModel):
    """A single role-tagged message. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class CompletionRequest(BaseModel):
    """The outbound request body for one streaming completion call."""

    model: str
    messages: List[ChatMessage]
    max_tokens: int = Field(ge=1)
    stream: bool = True

    def to_payload(self) -> Dict[str, Any]:
        """Returns the JSON-ready body sent to the provider."""
        return self.model_dump()


# --- Provider envelope ---
class StreamDelta(BaseModel):
    content: Optional[str] = None


class StreamChoice(BaseModel):
    delta: StreamDelta = Field(default_factory=StreamDelta)


class StreamEnvelope(BaseModel):
    """One `data:` payload of the provider's token stream."""

    choices: List[StreamChoice]


# --- Wire-level events ---
class FragmentEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str


class DoneEvent(BaseModel):
    model_config = ConfigDict(frozen=True)


class MalformedEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    raw: str


StreamEvent = Union[FragmentEvent, DoneEvent, MalformedEvent]


# --- Relay items ---
class Fragment(BaseModel):
    """A piece of generated text carried on the relay."""

    model_config = ConfigDict(frozen=True)

    text: str


class EndOfTurn(BaseModel):
    """Marks the end of one assistant reply on the relay."""

    model_config = ConfigDict(frozen=True)


END_OF_TURN = EndOfTurn()

RelayItem = Union[Fragment, EndOfTurn]


# --- Turn lifecycle ---
class TurnState(str, Enum):
    RECEIVED = "received"
    BUILDING = "building"
    CALLING = "calling"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


class TurnResult(BaseModel):
    """What a completed turn reports back to the submitter."""

    content: str
    fragments: int = 0
    skipped_lines: int = 0
