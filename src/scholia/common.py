"""Common utility functions for the project."""

from enum import Enum
from typing import Any

from scholia.core.schema import ThoughtStatus


class AnsiColors(Enum):
    """
    ANSI color codes for terminal output.
    """

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[33m"
    BLUE = "\033[94m"


# Colour used when rendering a thought of the given status
STATUS_COLORS = {
    ThoughtStatus.PENDING: AnsiColors.BLUE,
    ThoughtStatus.RUNNING: AnsiColors.YELLOW,
    ThoughtStatus.COMPLETED: AnsiColors.GREEN,
    ThoughtStatus.FAILED: AnsiColors.RED,
}


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print text in color.

    Args:
        text: The text to print
        color: The color to use (AnsiColors enum)
        args: Additional positional arguments for print
        kwargs: Additional keyword arguments for print
    """
    print(f"{color.value}{text}\033[0m", *args, **kwargs)  # ANSI reset at the end
