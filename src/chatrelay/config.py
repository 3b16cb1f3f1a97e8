"""Application settings and logging setup.

Settings come from environment variables, with a local ``.env`` file loaded
first when present. Keep all credentials and tunables centralized here.
"""

import logging
import os
from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

LOG_FORMAT = "[%(asctime)s] %(levelname)s - %(name)s - %(message)s"

_ENV_FIELDS = {
    "api_key": "OPENAI_API_KEY",
    "base_url": "OPENAI_BASE_URL",
    "model": "CHATRELAY_MODEL",
    "max_tokens": "CHATRELAY_MAX_TOKENS",
    "relay_capacity": "CHATRELAY_RELAY_CAPACITY",
    "system_prompt": "CHATRELAY_SYSTEM_PROMPT",
    "max_turns": "CHATRELAY_MAX_TURNS",
    "request_timeout": "CHATRELAY_REQUEST_TIMEOUT",
    "on_malformed": "CHATRELAY_ON_MALFORMED",
    "keepalive": "CHATRELAY_KEEPALIVE",
    "host": "CHATRELAY_HOST",
    "port": "CHATRELAY_PORT",
    "log_level": "CHATRELAY_LOG_LEVEL",
}


class Settings(BaseModel):
    api_key: Optional[str] = None
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-3.5-turbo-16k"
    max_tokens: int = Field(default=150, ge=1)
    relay_capacity: int = Field(default=10, ge=1)
    system_prompt: Optional[str] = None
    max_turns: Optional[int] = Field(default=None, ge=1)
    request_timeout: float = Field(default=60.0, gt=0)
    on_malformed: Literal["skip", "abort"] = "skip"
    keepalive: float = Field(default=15.0, gt=0)
    host: str = "127.0.0.1"
    port: int = Field(default=3000, ge=0, le=65535)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "Settings":
        """Builds settings from the environment. Unset or empty variables keep their defaults."""
        if load_dotenv_file:
            load_dotenv()
        values = {}
        for field, variable in _ENV_FIELDS.items():
            value = os.getenv(variable)
            if value:
                values[field] = value
        return cls(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
