"""
Recover JSON payloads from free-form model output.

Models routinely wrap the payload in prose ("Here is the JSON: {...}") or markdown fences, so
whole-string parsing fails in the most common cases.  :func:`extract` tries, in order:

1. the whole text verbatim,
2. the text with code-fence markers stripped,
3. a bracket-depth scan from the first ``{`` or ``[`` to its matching close.
"""

import json
import logging
import re
from typing import Any

from scholia.core.errors import ExtractionError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*|```", re.IGNORECASE)
_PAIRS = {"{": "}", "[": "]"}


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence markers (```json / ```) and surrounding whitespace."""
    return _FENCE_RE.sub("", text).strip()


def _find_matching_close(s: str, start: int) -> int:
    """
    Given ``s[start]`` in ``{[``, return the index just past its matching close.

    Only the bracket kind found at *start* is counted.  Brackets inside JSON string literals
    are skipped.  Returns ``-1`` when the depth never returns to zero.
    """
    open_ch = s[start]
    close_ch = _PAIRS[open_ch]
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(s)):
        ch = s[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return i + 1
    return -1


def _first_open(s: str) -> int:
    """Index of the first ``{`` or ``[`` in *s* (whichever comes first), or ``-1``."""
    candidates = [idx for idx in (s.find("{"), s.find("[")) if idx != -1]
    return min(candidates) if candidates else -1


def extract(text: str) -> Any:
    """
    Parse the structured payload embedded in *text*.

    Raises
    ------
    ExtractionError
        If none of the fallback stages yields valid JSON.
    """
    if text is None:
        raise ExtractionError("no text to extract from")

    # 1. Verbatim
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # 2. Without code fences
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    # 3. Bracket-depth scan
    start = _first_open(cleaned)
    if start == -1:
        raise ExtractionError("no JSON object or array start found")
    end = _find_matching_close(cleaned, start)
    if end == -1:
        raise ExtractionError("unbalanced brackets in model output")

    candidate = cleaned[start:end]
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as exc:
        logger.debug("Bracket-scanned payload failed to parse: %s", candidate)
        raise ExtractionError(f"failed to parse extracted payload: {exc}") from exc
