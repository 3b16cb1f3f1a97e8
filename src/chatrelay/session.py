"""The session object owning the shared conversation state."""

from typing import Iterator, Optional

from .config import Settings
from .engine import Engine, Streaming
from .history import ConversationHistory, LastTurns
from .llm import LLM
from .models import TurnResult
from .relay import FragmentRelay
from .stream import listen


class Session:
    """Bundles one conversation history, one relay and one provider.

    A single session is created per server process and handed to every
    request handler, so every submitted prompt extends the same conversation
    and every listener drains the same relay.

    Parameters
    ----------
    llm : LLM
        The streaming provider.
    settings : Settings, optional
        Tunables; defaults to `Settings()` (no environment lookup).
    history : ConversationHistory, optional
        Defaults to a history seeded with `settings.system_prompt` and trimmed
        to `settings.max_turns` when that is set.
    relay : FragmentRelay, optional
        Defaults to a relay of `settings.relay_capacity`.
    engine : Engine, optional
        Defaults to `Streaming` with `settings.on_malformed`. The engine is
        bound to this session.
    """

    def __init__(
        self,
        llm: LLM,
        settings: Optional[Settings] = None,
        history: Optional[ConversationHistory] = None,
        relay: Optional[FragmentRelay] = None,
        engine: Optional[Engine] = None,
    ) -> None:
        self.llm = llm
        self.settings = settings if settings is not None else Settings()

        if history is None:
            trim = LastTurns(self.settings.max_turns) if self.settings.max_turns else None
            history = ConversationHistory(self.settings.system_prompt, trim=trim)
        self.history = history

        self.relay = (
            relay if relay is not None else FragmentRelay(self.settings.relay_capacity)
        )

        self.engine = (
            engine
            if engine is not None
            else Streaming(on_malformed=self.settings.on_malformed)
        )
        self.engine.session = self

    def submit_prompt(self, text: str) -> TurnResult:
        return self.engine.handle_prompt(text)

    def attach_listener(self) -> Iterator[str]:
        return listen(self.relay, keepalive=self.settings.keepalive)

    def close(self) -> None:
        self.relay.close()
