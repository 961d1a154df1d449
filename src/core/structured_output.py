"""Best-effort extraction of JSON objects from free-form completion text."""

import json
import logging
import re
from typing import Any, TypeVar

from src.core.config import constants


logger = logging.getLogger(__name__)

T = TypeVar("T")

_CODE_FENCE_PATTERN = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence markers (```json and ```) from text."""
    return _CODE_FENCE_PATTERN.sub("", text).strip()


def find_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` object in text, or None.

    Braces inside JSON string literals (including escaped quotes) are ignored
    when counting depth.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        # Unbalanced from this brace; try the next opening brace.
        start = text.find("{", start + 1)
    return None


def parse_structured(text: str | None, fallback: T) -> dict[str, Any] | T:
    """Parse a JSON object out of completion text, returning fallback on any failure.

    Args:
        text: Raw completion text, possibly wrapped in prose or code fences
        fallback: Value returned unchanged when no JSON object can be parsed

    Returns:
        The parsed object as a dict, or the fallback
    """
    if not text:
        logger.warning("structured_output_empty")
        return fallback

    cleaned = strip_code_fences(text)
    candidate = find_json_object(cleaned)
    if candidate is None:
        logger.warning(
            "structured_output_no_object",
            extra={"raw_text": text[: constants.RAW_RESPONSE_LOG_LENGTH]},
        )
        return fallback

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning(
            "structured_output_invalid_json",
            extra={"error": str(e), "raw_text": text[: constants.RAW_RESPONSE_LOG_LENGTH]},
        )
        return fallback

    if not isinstance(parsed, dict):
        return fallback

    return parsed
