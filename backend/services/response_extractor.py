import json
import logging
from typing import Any, Dict, List, Optional, Tuple
from pydantic import ValidationError

from models.note import StructuredNote
from .exceptions import ResponseParseError, ResponseValidationError

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ("visitSummary", "subjective", "objective", "assessment", "plan")


# Rescans allowed after a scan ends inside an unterminated string
MAX_RESCANS = 8


def _scan_balanced(text: str, start: int) -> Tuple[Optional[Tuple[int, int]], bool]:
    """
    Single pass from `start` keeping a stack of open brace positions.

    Returns the earliest-starting balanced span seen (or None) and whether
    the scan ended inside a string literal.
    """
    stack: List[int] = []
    best: Optional[Tuple[int, int]] = None
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
        if char == '"' and stack:
            in_string = True
        elif char == "{":
            stack.append(index)
        elif char == "}" and stack:
            opened = stack.pop()
            if best is None or opened < best[0]:
                best = (opened, index + 1)
            if not stack:
                return best, False
    return best, in_string


def find_json_object(text: str) -> str:
    """
    Return the first balanced {...} block in text.

    Braces inside JSON string literals are ignored so values such as
    "results": ["{x}"] do not throw off the depth count. Runs in linear time;
    only an unterminated string triggers a bounded number of rescans from the
    next brace.

    Raises:
        ResponseParseError: If no opening brace has a matching close
    """
    if not text:
        raise ResponseParseError("Empty response")

    start = text.find("{")
    rescans = 0
    while start != -1:
        span, unterminated = _scan_balanced(text, start)
        if span is not None:
            return text[span[0]:span[1]]
        if not unterminated or rescans >= MAX_RESCANS:
            break
        # A quote inside prose can hide a later object
        rescans += 1
        start = text.find("{", start + 1)

    raise ResponseParseError("No balanced JSON object found in response")


def parse_json_object(text: str) -> Dict[str, Any]:
    """Locate and decode the embedded JSON object"""
    candidate = find_json_object(text)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Embedded JSON is not decodable: {e}") from e
    if not isinstance(data, dict):
        raise ResponseParseError("Embedded JSON is not an object")
    return data


def validate_note(data: Dict[str, Any]) -> StructuredNote:
    """
    Validate a decoded response into a StructuredNote.

    Missing sections and wrong primitive kinds are rejected; missing fields
    inside sections are filled with empty defaults.
    """
    missing = [key for key in REQUIRED_SECTIONS if key not in data]
    if missing:
        raise ResponseValidationError(f"Missing required sections: {', '.join(missing)}")

    try:
        return StructuredNote.model_validate(data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()[:5]
        )
        raise ResponseValidationError(f"Response does not match note schema: {errors}") from e


def extract_note(text: str) -> StructuredNote:
    """Parse free-form model output into a StructuredNote"""
    data = parse_json_object(text)
    note = validate_note(data)
    logger.debug(f"Extracted note from {len(text)} characters of model output")
    return note
