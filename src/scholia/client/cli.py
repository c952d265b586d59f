"""Interactive CLI for asking questions about a local document."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import (
    List,
    Tuple,
)

from scholia.agent.orchestrator import Orchestrator
from scholia.common import (
    STATUS_COLORS,
    AnsiColors,
    colored_print,
)
from scholia.config import settings
from scholia.core.errors import (
    MissingCredentialError,
    UnknownProviderError,
)
from scholia.core.schema import (
    AgentThought,
    ChatMessage,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI Client
# ---------------------------------------------------------------------------
def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    import signal  # pylint: disable=import-outside-toplevel

    # Ensure SIGINT breaks out of slow system calls such as read()
    signal.siginterrupt(signal.SIGINT, True)

    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def print_thought(thought: AgentThought) -> None:
    """Render one progress snapshot as a single coloured line."""
    line = f"  [{thought.tool_kind.value}] {thought.status.value}: {thought.message}"
    if thought.result:
        line += f" -> {thought.result}"
    colored_print(line, STATUS_COLORS[thought.status])


def load_document(path: str | Path) -> str:
    """Read a plain-text/markdown document from disk."""
    return Path(path).read_text(encoding="utf-8")


def run_cli(
    document_path: str | Path,
    provider: str | None = None,
    model_id: str | None = None,
    orchestrator: Orchestrator | None = None,
) -> None:
    """Run the interactive shell; history lives in memory for this session only."""
    try:
        document = load_document(document_path)
    except OSError as e:
        colored_print(f"⚠️ Cannot read document {document_path}: {e}", AnsiColors.RED)
        return

    orchestrator = orchestrator or Orchestrator.from_settings(settings)
    history: List[ChatMessage] = []

    colored_print(
        f"\n📚 Scholia shell over {Path(document_path).name} ({len(document)} chars) - "
        "type 'exit' or 'quit' (or Ctrl+C) to exit",
        AnsiColors.GREEN,
    )
    while True:
        colored_print("\n🧑 You: ", AnsiColors.BLUE, end="")
        user_msg, ok = get_user_message()
        if not ok:
            break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
        if not user_msg:
            continue
        if user_msg.lower() in {"exit", "quit"}:
            break

        try:
            result = asyncio.run(
                orchestrator.run(
                    user_msg,
                    document,
                    history,
                    print_thought,
                    provider=provider,
                    model_id=model_id,
                )
            )
        except MissingCredentialError as e:
            colored_print(
                f"⚠️ No API key configured for '{e.provider}'. Set "
                f"{e.provider.upper()}_API_KEY in the environment or .env.",
                AnsiColors.RED,
            )
            continue
        except (UnknownProviderError, ValueError) as e:
            colored_print(f"⚠️ {e}", AnsiColors.RED)
            continue

        logger.debug("Answered with intent=%s state=%s", result.intent, result.state)
        colored_print(result.answer, AnsiColors.YELLOW)
        history.append(ChatMessage.user(user_msg))
        history.append(ChatMessage.assistant(result.answer))
