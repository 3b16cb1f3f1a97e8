"""Builds the outbound completion request from the conversation context."""

from typing import Sequence, Union

from .errors import BadInput
from .history import ConversationHistory
from .models import USER_ROLE, ChatMessage, CompletionRequest


def build_request(
    history: Union[ConversationHistory, Sequence[ChatMessage]],
    prompt: str,
    model: str,
    max_tokens: int,
) -> CompletionRequest:
    """Serializes the context plus a new user prompt into a streaming request.

    Parameters
    ----------
    history : ConversationHistory or sequence of ChatMessage
        The context to send. A `ConversationHistory` is snapshotted first.
    prompt : str
        The new user prompt, appended after the context.
    model : str
        The provider model name.
    max_tokens : int
        Upper bound on the generated reply.

    Returns
    -------
    CompletionRequest
        A fresh request with `stream=True`. The history is not modified.

    Raises
    ------
    BadInput
        If `prompt` is empty or only whitespace.
    """
    if not prompt or not prompt.strip():
        raise BadInput("Prompt must not be empty")

    if isinstance(history, ConversationHistory):
        context = list(history.snapshot())
    else:
        context = list(history)
    context.append(ChatMessage(role=USER_ROLE, content=prompt))

    return CompletionRequest(
        model=model, messages=context, max_tokens=max_tokens, stream=True
    )
