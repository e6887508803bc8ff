"""
Response parsers.

WHAT: Turn raw model text into the node's output type
WHY: Nodes share one parsing contract: str in, value out, exception on failure
HOW: Factory functions returning plain callables; JSON is located in fenced or bare form
"""

import json
import re
from typing import Any, Callable, Type, TypeVar

from pydantic import BaseModel

TModel = TypeVar("TModel", bound=BaseModel)

ResponseParser = Callable[[str], Any]

FENCED_JSON_PATTERN = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL | re.IGNORECASE)


def text_parser() -> Callable[[str], str]:
    """Return the response text with surrounding whitespace removed."""
    def parse(raw: str) -> str:
        return raw.strip()
    return parse


def extract_json(raw: str) -> Any:
    """
    Decode the JSON value embedded in a model response.

    Tries, in order: the whole text, the first fenced code block, and the
    span from the first opening brace/bracket to the last matching closer.

    Raises:
        ValueError: If no JSON value can be decoded
    """
    text = raw.strip()
    candidates = [text]

    match = FENCED_JSON_PATTERN.search(text)
    if match:
        candidates.append(match.group(1).strip())

    for opener, closer in (("{", "}"), ("[", "]")):
        start = text.find(opener)
        end = text.rfind(closer)
        if start != -1 and end > start:
            candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    raise ValueError(f"No valid JSON found in response: {text[:100]!r}")


def json_parser() -> Callable[[str], Any]:
    return extract_json


def structured_parser(schema: Type[TModel]) -> Callable[[str], TModel]:
    """
    Parse JSON from the response and validate it against a pydantic model.

    Args:
        schema: Pydantic model class describing the expected output

    Returns:
        Parser raising ValueError (pydantic.ValidationError included) on mismatch
    """
    def parse(raw: str) -> TModel:
        return schema.model_validate(extract_json(raw))
    return parse
