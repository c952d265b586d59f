"""
Scholia entry point.

This file handles startup concerns (arg-parsing, logging) and launches the appropriate interface
(API or CLI).
"""

import argparse
import logging
import sys

from scholia.api.app import run_api
from scholia.config import settings
from scholia.providers import registered_providers

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    # Vendor HTTP clients log every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the Scholia application.

    This function sets up the command-line interface, initializes logging, and starts the
    application in either API or CLI mode.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(description="Ask an LLM about long documents")
    parser.add_argument(
        "--mode",
        choices=["api", "cli"],
        type=str.lower,
        default="api",
        help="Launch the REST API or an interactive CLI (default: api)",
    )
    parser.add_argument(
        "--document",
        type=str,
        default=None,
        help="Path of the document to question (required in cli mode)",
    )
    parser.add_argument(
        "--provider",
        choices=registered_providers(),
        type=str.lower,
        default=None,
        help="LLM provider (default from env: %s)" % settings.PROVIDER,
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Model id for the provider (default: catalog default)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    args = parser.parse_args(argv)

    # Override settings with command-line arguments
    settings.LOG_LEVEL = args.log_level
    if args.provider:
        settings.PROVIDER = args.provider
        settings.MODEL_ID = args.model
    elif args.model:
        settings.MODEL_ID = args.model

    _init_logging(settings.LOG_LEVEL)

    logger.info("Starting Scholia [%s mode, provider=%s]", args.mode, settings.PROVIDER)
    logger.debug("Settings: %s", settings.model_dump())

    if args.mode == "api":
        run_api(host="0.0.0.0", port=settings.API_PORT, reload=settings.DEBUG)
    else:
        if not args.document:
            parser.error("--document is required in cli mode")

        # Lazy import to avoid CLI dependencies if not needed
        from scholia.client.cli import run_cli  # pylint: disable=import-outside-toplevel

        run_cli(args.document)


if __name__ == "__main__":
    main()
