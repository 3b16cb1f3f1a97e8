"""
The main entrypoint for the chatrelay package.

This module contains the ChatRelay application class, which wires the
streaming relay core (history, provider, decoder, relay and engine) to a Dash
page and two HTTP routes: one to submit prompts and one server-sent-events
stream that republishes the provider's tokens to the browser.
"""

from typing import Optional

from dash import Dash

from . import engine, history, layout, llm
from .config import Settings, get_settings
from .session import Session


class ChatRelay(Dash):
    """
    A Dash application relaying streamed LLM completions to the browser.

    The constructor injects each pillar, falling back to concrete defaults,
    and owns the single `Session` shared by all request handlers.
    """

    def __init__(
        self,
        layout: Optional["layout.Layout"] = None,
        llm: Optional["llm.LLM"] = None,
        history: Optional["history.ConversationHistory"] = None,
        engine: Optional["engine.Engine"] = None,
        settings: Optional[Settings] = None,
        **kwargs,
    ) -> None:
        """
        Initialize the application with configurable pillars.

        Parameters
        ----------
        layout : layout.Layout, optional
            Layout builder for the prompt page. Defaults to layout.Bootstrap(),
            or layout.Minimal() when dash-bootstrap-components is missing.
        llm : llm.LLM, optional
            Streaming provider. Defaults to llm.OpenAI() configured from the
            settings, or llm.Echo() when the openai package or an API key is
            missing.
        history : history.ConversationHistory, optional
            Conversation context. Defaults to one built from the settings.
        engine : engine.Engine, optional
            Prompt handler. Defaults to engine.Streaming().
        settings : Settings, optional
            Tunables. Defaults to `get_settings()` (environment and .env).
        **kwargs
            Additional arguments passed to the Dash constructor.

        Raises
        ------
        ValueError
            If the layout is missing component IDs the page callbacks need.

        Examples
        --------
        >>> app = ChatRelay()

        >>> app = ChatRelay(llm=llm.Echo(delay=0.05))
        """
        self.settings = settings if settings is not None else get_settings()

        if layout:
            self.layout_builder = layout
        else:
            try:
                from .layout import Bootstrap

                self.layout_builder = Bootstrap()
            except ImportError:
                import warnings

                warnings.warn(
                    "chatrelay is running with a minimal layout because 'dash-bootstrap-components' is not installed. "
                    'For the default UI, install with: pip install "chatrelay[default]"',
                    UserWarning,
                )
                from .layout import Minimal

                self.layout_builder = Minimal()

        if llm is None:
            llm = self._default_llm()

        if "external_stylesheets" not in kwargs:
            kwargs["external_stylesheets"] = []
        kwargs["external_stylesheets"].extend(
            self.layout_builder.get_external_stylesheets()
        )

        if "external_scripts" not in kwargs:
            kwargs["external_scripts"] = []
        kwargs["external_scripts"].extend(self.layout_builder.get_external_scripts())

        super().__init__(**kwargs)

        self.session = Session(
            llm=llm, settings=self.settings, history=history, engine=engine
        )

        self.layout = self.layout_builder.build_layout()
        self._validate_layout()
        self._register_callbacks()

    @property
    def llm(self) -> "llm.LLM":
        return self.session.llm

    @property
    def history(self) -> "history.ConversationHistory":
        return self.session.history

    @property
    def relay(self):
        return self.session.relay

    @property
    def engine(self) -> "engine.Engine":
        return self.session.engine

    def _default_llm(self) -> "llm.LLM":
        import warnings

        from .llm import Echo

        if not self.settings.api_key:
            warnings.warn(
                "chatrelay is running with an EchoLLM because no OPENAI_API_KEY is configured.",
                UserWarning,
            )
            return Echo()
        try:
            from .llm import OpenAI

            return OpenAI(
                default_model=self.settings.model,
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                timeout=self.settings.request_timeout,
            )
        except ImportError:
            warnings.warn(
                "chatrelay is running with an EchoLLM because the 'openai' package could not be imported. "
                "It is a core dependency; reinstall with: pip install --force-reinstall chatrelay",
                UserWarning,
            )
            return Echo()

    def _validate_layout(self) -> None:
        from .layout import find_missing_ids

        missing = find_missing_ids(self.layout)
        if missing:
            raise ValueError(f"Layout is missing required component IDs: {missing}")

    def _register_callbacks(self) -> None:
        """Registers the HTTP routes and page callbacks."""
        from .callbacks import register_callbacks

        register_callbacks(self)

    def shutdown(self) -> None:
        """Closes the relay, ending every attached stream."""
        self.session.close()
