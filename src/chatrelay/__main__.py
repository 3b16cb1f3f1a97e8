"""Command-line entry point: ``python -m chatrelay``."""

import argparse
import logging
from typing import List, Optional

from . import ChatRelay
from .config import configure_logging, get_settings

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="chatrelay",
        description="Relay streamed LLM completions to the browser over SSE.",
    )
    parser.add_argument("--host", help="Interface to bind (default: CHATRELAY_HOST)")
    parser.add_argument("--port", type=int, help="Port to bind (default: CHATRELAY_PORT)")
    parser.add_argument("--debug", action="store_true", help="Run Dash in debug mode")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    host = args.host or settings.host
    port = args.port if args.port is not None else settings.port

    app = ChatRelay(settings=settings)
    logger.info(
        "Serving on http://%s:%d (model=%s, key_set=%s)",
        host,
        port,
        app.llm.model,
        bool(settings.api_key),
    )
    try:
        app.run(host=host, port=port, debug=args.debug, threaded=True)
    finally:
        app.shutdown()


if __name__ == "__main__":
    main()
