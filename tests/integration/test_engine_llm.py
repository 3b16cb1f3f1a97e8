"""Integration tests for Engine + LLM interaction."""

import pytest
from chatrelay.config import Settings
from chatrelay.history import ConversationHistory, LastTurns
from chatrelay.llm import Echo
from chatrelay.models import ASSISTANT_ROLE, END_OF_TURN, SYSTEM_ROLE, USER_ROLE
from chatrelay.session import Session
from conftest import drain


@pytest.fixture
def echo_session():
    session = Session(llm=Echo(chunk_size=3), settings=Settings(system_prompt="S"))
    yield session
    session.close()


class TestEngineLLMIntegration:
    """Test the Streaming engine with real provider implementations."""

    def test_basic_conversation_flow_with_echo(self, echo_session):
        result = echo_session.submit_prompt("Hello, Echo!")

        assert result.content == "Echo: Hello, Echo!"
        items = drain(echo_session.relay)
        assert items[-1] == END_OF_TURN
        assert "".join(item.text for item in items[:-1]) == result.content

    def test_history_after_n_turns(self, echo_session):
        prompts = ["first", "second", "third", "fourth"]
        for prompt in prompts:
            echo_session.submit_prompt(prompt)
            drain(echo_session.relay)

        snapshot = echo_session.history.snapshot()
        assert len(snapshot) == 1 + 2 * len(prompts)
        assert snapshot[0].role == SYSTEM_ROLE
        assert [m.role for m in snapshot[1:]] == [USER_ROLE, ASSISTANT_ROLE] * 4
        assert [m.content for m in snapshot[1::2]] == prompts
        assert [m.content for m in snapshot[2::2]] == [f"Echo: {p}" for p in prompts]

    def test_unicode_survives_small_chunks(self, echo_session):
        result = echo_session.submit_prompt("naïve café 🦙")
        drain(echo_session.relay)
        assert result.content == "Echo: naïve café 🦙"

    def test_trimmed_history_bounds_request_context(self):
        requests = []

        class RecordingEcho(Echo):
            def open_stream(self, request):
                requests.append(request)
                return super().open_stream(request)

        session = Session(
            llm=RecordingEcho(),
            history=ConversationHistory(system_message="S", trim=LastTurns(1)),
        )
        for prompt in ("one", "two", "three"):
            session.submit_prompt(prompt)
            drain(session.relay)

        last = requests[-1]
        assert [m.content for m in last.messages] == ["S", "two", "Echo: two", "three"]
        session.close()
