"""
Structured-output parsing for model responses.

Models are asked for one JSON object but may wrap it in prose or code
fences. The first balanced top-level ``{...}`` block that decodes is taken,
then validated against a pydantic schema. Results are tagged
(ParseOk | ParseFailure) so each stage decides whether failure is fatal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Iterator, TypeVar, Union

import orjson
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class ParseOk(Generic[T]):
    """Successfully parsed and validated payload."""

    value: T


@dataclass(frozen=True)
class ParseFailure:
    """Model output that could not be used."""

    reason: str
    raw: str = ""


ParseResult = Union[ParseOk[T], ParseFailure]


def _top_level_blocks(text: str) -> Iterator[str]:
    """Yield balanced top-level ``{...}`` spans in order of appearance.

    Braces inside JSON string literals are ignored.
    """
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"' and depth > 0:
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield text[start : i + 1]


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Return the first top-level JSON object embedded in text.

    Args:
        text: Free-text model response.

    Returns:
        The decoded object, or None if no block decodes to a dict.
    """
    if not text:
        return None

    for block in _top_level_blocks(text):
        try:
            data = orjson.loads(block)
        except orjson.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return None


def parse_structured(text: str, schema: type[M]) -> ParseResult[M]:
    """Extract and validate a JSON payload.

    Args:
        text: Free-text model response.
        schema: Pydantic model describing the expected payload.

    Returns:
        ParseOk with the validated model, or ParseFailure with a reason.
    """
    data = extract_json_object(text)
    if data is None:
        return ParseFailure(reason="no JSON object found in response", raw=text[:500])

    try:
        return ParseOk(schema.model_validate(data))
    except PydanticValidationError as e:
        return ParseFailure(
            reason=f"response did not match {schema.__name__}: {e.error_count()} errors",
            raw=text[:500],
        )
