"""Concrete implementations for LLM providers."""

import json
import os
import time
from abc import ABC, abstractmethod
from contextlib import ExitStack, contextmanager
from typing import ContextManager, Iterator, List, Optional

from .errors import UpstreamStatusError, UpstreamTransportError
from .models import DONE_MARKER, USER_ROLE, CompletionRequest


class LLM(ABC):
    """Abstract Base Class for all streaming LLM providers."""

    model: str

    @abstractmethod
    def open_stream(self, request: CompletionRequest) -> ContextManager[Iterator[bytes]]:
        """Issues a streaming completion call.

        The returned context manager yields an iterator over the raw response
        body, one chunk at a time, exactly as the provider sent it. Leaving
        the context releases the connection.

        Parameters
        ----------
        request : CompletionRequest
            The fully built request, with `stream=True`.

        Returns
        -------
        ContextManager[Iterator[bytes]]
            The body chunks of the provider's event stream.

        Raises
        ------
        UpstreamTransportError
            If the provider cannot be reached or the connection breaks.
        UpstreamStatusError
            If the provider answers with a non-success status.
        """
        pass


class OpenAI(LLM):
    """Streams chat completions from any OpenAI-compatible endpoint.

    The SDK's automatic retries are disabled: a failed call is reported to
    the submitter once and never repeated.
    """

    def __init__(
        self,
        default_model: str = "gpt-3.5-turbo-16k",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = 60.0,
        **client_kwargs,
    ):
        from openai import OpenAI

        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            **client_kwargs,
        )
        self.model = default_model

    @contextmanager
    def open_stream(self, request: CompletionRequest) -> Iterator[Iterator[bytes]]:
        from openai import APIConnectionError, APIStatusError

        stack = ExitStack()
        try:
            response = stack.enter_context(
                self.client.chat.completions.with_streaming_response.create(
                    **request.to_payload()
                )
            )
        except APIStatusError as exc:
            raise UpstreamStatusError(exc.status_code, exc.message) from exc
        except APIConnectionError as exc:
            raise UpstreamTransportError(str(exc)) from exc

        with stack:
            yield self._iter_body(response)

    @staticmethod
    def _iter_body(response) -> Iterator[bytes]:
        import httpx

        try:
            yield from response.iter_bytes()
        except httpx.HTTPError as exc:
            raise UpstreamTransportError(f"Stream interrupted: {exc}") from exc


class OpenRouter(OpenAI):
    def __init__(self, default_model: str = "openai/gpt-4o-mini", **kwargs):
        kwargs.setdefault("api_key", os.environ.get("OPENROUTER_API_KEY"))
        super().__init__(
            default_model=default_model,
            base_url="https://openrouter.ai/api/v1",
            default_headers={
                "HTTP-Referer": "chatrelay",
                "X-Title": "chatrelay",
            },
            **kwargs,
        )


class Echo(LLM):
    """Offline provider that streams the prompt back, word by word.

    The reply is encoded as a real provider event stream and cut into small
    chunks that ignore line boundaries, so everything downstream runs the
    same code path as with a live provider.
    """

    def __init__(
        self, default_model: str = "echo-v1", delay: float = 0.0, chunk_size: int = 16
    ):
        self.model = default_model
        self.delay = delay
        self.chunk_size = chunk_size

    @contextmanager
    def open_stream(self, request: CompletionRequest) -> Iterator[Iterator[bytes]]:
        yield self._iter_body(request)

    def reply_for(self, request: CompletionRequest) -> str:
        prompt = next(
            (m.content for m in reversed(request.messages) if m.role == USER_ROLE),
            "No message provided",
        )
        return f"Echo: {prompt}"

    def _iter_body(self, request: CompletionRequest) -> Iterator[bytes]:
        body = "".join(self._event_lines(self.reply_for(request))).encode("utf-8")
        for start in range(0, len(body), self.chunk_size):
            if self.delay:
                time.sleep(self.delay)
            yield body[start : start + self.chunk_size]

    def _event_lines(self, reply: str) -> List[str]:
        words = reply.split(" ")
        tokens = [words[0]] + [" " + word for word in words[1:]]
        envelopes = [{"choices": [{"delta": {"role": "assistant", "content": ""}}]}]
        envelopes += [{"choices": [{"delta": {"content": token}}]} for token in tokens]
        envelopes.append({"choices": []})
        lines = [
            f"data: {json.dumps(envelope, ensure_ascii=False)}\n\n"
            for envelope in envelopes
        ]
        lines.append(f"data: {DONE_MARKER}\n\n")
        return lines
