"""Unit tests for building the outbound completion request."""

import pytest
from chatrelay.errors import BadInput
from chatrelay.history import ConversationHistory
from chatrelay.models import SYSTEM_ROLE, USER_ROLE, ChatMessage
from chatrelay.request_builder import build_request


class TestBuildRequest:
    def test_serialized_messages_keep_context_order(self):
        history = [
            ChatMessage(role=SYSTEM_ROLE, content="S"),
            ChatMessage(role=USER_ROLE, content="Q"),
        ]
        request = build_request(history, "Q2", model="gpt-test", max_tokens=150)

        assert request.to_payload()["messages"] == [
            {"role": "system", "content": "S"},
            {"role": "user", "content": "Q"},
            {"role": "user", "content": "Q2"},
        ]

    def test_stream_flag_and_settings(self):
        request = build_request([], "Hello", model="gpt-test", max_tokens=42)
        assert request.stream is True
        assert request.model == "gpt-test"
        assert request.max_tokens == 42

    def test_accepts_history_object_without_mutating_it(self):
        history = ConversationHistory(system_message="S")
        request = build_request(history, "Q", model="m", max_tokens=1)

        assert len(request.messages) == 2
        assert len(history) == 1

    def test_deterministic(self):
        history = [ChatMessage(role=USER_ROLE, content="Q")]
        first = build_request(history, "Q2", model="m", max_tokens=5)
        second = build_request(history, "Q2", model="m", max_tokens=5)
        assert first == second
        assert len(history) == 1

    @pytest.mark.parametrize("prompt", ["", "   ", "\n\t"])
    def test_empty_prompt_rejected(self, prompt):
        with pytest.raises(BadInput):
            build_request([], prompt, model="m", max_tokens=5)

    def test_prompt_whitespace_preserved(self):
        request = build_request([], "  padded  ", model="m", max_tokens=5)
        assert request.messages[-1].content == "  padded  "
