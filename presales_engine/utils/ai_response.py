"""Interpretation of free-form language-model responses.

Models wrap the JSON we ask for in all kinds of packaging:
- Markdown code fences (```json ... ```)
- Leading or trailing prose ("Here is the plan: {...} Let me know!")
- Trailing commas before closing brackets
- Truncated output (missing closing brackets)
- Raw newlines or tabs inside string values

This module turns such text into a single JSON object, optionally validated
against a pydantic model with case-insensitive key matching. Every failure is
reported as MalformedResponseError so callers can fall back cleanly.
"""

import json
import logging
import re
import types
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel, ValidationError

from presales_engine.components.base.exceptions import MalformedResponseError

logger = logging.getLogger(__name__)

TModel = TypeVar("TModel", bound=BaseModel)

CODE_FENCE = "```"


def extract_json_object(raw: str) -> str:
    """Return the `{...}` block embedded in a raw model response.

    Raises:
        MalformedResponseError: If the text is blank or has no object boundaries
    """
    if raw is None or not raw.strip():
        raise MalformedResponseError("Model returned an empty response", component="ai_response")

    text = raw.strip()
    if text.startswith(CODE_FENCE):
        first_line_break = text.find("\n")
        if first_line_break >= 0:
            text = text[first_line_break + 1:]
            closing_fence = text.rfind(CODE_FENCE)
            if closing_fence >= 0:
                text = text[:closing_fence]

    first_brace = text.find("{")
    last_brace = text.rfind("}")
    if first_brace < 0 or last_brace < first_brace:
        raise MalformedResponseError(
            "Model response does not contain a JSON object",
            component="ai_response",
            details={"preview": raw[:200]},
        )
    return text[first_brace:last_brace + 1]


def _fix_trailing_commas(text: str) -> str:
    """Remove trailing commas before closing brackets."""
    return re.sub(r",\s*([\}\]])", r"\1", text)


def _balance_brackets(text: str) -> str:
    """Add missing closing brackets in the correct order."""
    stack = []
    in_string = False
    escaped = False

    for char in text:
        if escaped:
            escaped = False
            continue
        if char == "\\" and in_string:
            escaped = True
        elif char == '"':
            in_string = not in_string
        elif not in_string:
            if char in "{[":
                stack.append(char)
            elif char == "}" and stack and stack[-1] == "{":
                stack.pop()
            elif char == "]" and stack and stack[-1] == "[":
                stack.pop()

    if stack:
        text = text.rstrip().rstrip(",")
        closers = {"[": "]", "{": "}"}
        for opener in reversed(stack):
            text += closers[opener]
    return text


def _escape_control_chars(text: str) -> str:
    """Escape raw newlines, tabs and carriage returns inside string values."""
    result = []
    in_string = False
    escaped = False
    replacements = {"\n": "\\n", "\t": "\\t", "\r": "\\r"}

    for char in text:
        if escaped:
            result.append(char)
            escaped = False
            continue
        if char == "\\" and in_string:
            escaped = True
            result.append(char)
        elif char == '"':
            in_string = not in_string
            result.append(char)
        elif in_string and char in replacements:
            result.append(replacements[char])
        else:
            result.append(char)

    return "".join(result)


def _decode_strict(block: str) -> Any:
    return json.loads(block)


def _decode_repaired(block: str) -> Any:
    repaired = _escape_control_chars(_balance_brackets(_fix_trailing_commas(block)))
    return json.loads(repaired)


# Ordered decode attempts, first success wins
DECODE_ATTEMPTS: List[Callable[[str], Any]] = [_decode_strict, _decode_repaired]


def decode_json_object(raw: str, component_name: str = "unknown") -> Dict[str, Any]:
    """Extract and decode the single JSON object in a model response.

    Raises:
        MalformedResponseError: If no attempt yields a JSON object
    """
    block = extract_json_object(raw)

    for attempt in DECODE_ATTEMPTS:
        try:
            decoded = attempt(block)
        except json.JSONDecodeError:
            continue
        if attempt is not _decode_strict:
            logger.info(f"[{component_name}] JSON was repaired before parsing")
        if not isinstance(decoded, dict):
            break
        return decoded

    logger.warning(f"[{component_name}] Unable to decode model response: {raw[:200]}")
    raise MalformedResponseError(
        "Model response is not a valid JSON object",
        component=component_name,
        details={"preview": raw[:200]},
    )


def _model_type(annotation: Any) -> Optional[Type[BaseModel]]:
    """Return the pydantic model carried by an annotation, if any.

    Handles `Model`, `Optional[Model]` and `List[Model]`.
    """
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    origin = get_origin(annotation)
    if origin in (list, List, Union, types.UnionType):
        for arg in get_args(annotation):
            found = _model_type(arg)
            if found is not None:
                return found
    return None


def match_fields(data: Dict[str, Any], model: Type[BaseModel]) -> Dict[str, Any]:
    """Re-key `data` onto the model's field names, ignoring key case.

    Both field names and aliases are accepted. Unknown keys are dropped,
    nested models (and lists of them) are matched recursively.
    """
    lookup: Dict[str, str] = {}
    for name, field in model.model_fields.items():
        lookup[name.lower()] = name
        if field.alias:
            lookup[field.alias.lower()] = name

    matched: Dict[str, Any] = {}
    for key, value in data.items():
        name = lookup.get(str(key).lower())
        if name is None or name in matched:
            continue
        nested = _model_type(model.model_fields[name].annotation)
        if nested is not None and isinstance(value, dict):
            value = match_fields(value, nested)
        elif nested is not None and isinstance(value, list):
            value = [match_fields(v, nested) if isinstance(v, dict) else v for v in value]
        matched[name] = value
    return matched


def interpret_ai_response(
    raw: str,
    model: Type[TModel],
    component_name: str = "unknown",
) -> TModel:
    """Interpret a model response as an instance of `model`.

    Raises:
        MalformedResponseError: On missing boundaries, undecodable JSON or
            a payload that does not validate against `model`
    """
    decoded = decode_json_object(raw, component_name=component_name)
    try:
        return model.model_validate(match_fields(decoded, model))
    except ValidationError as e:
        raise MalformedResponseError(
            f"Model response did not match {model.__name__}: {e.error_count()} validation error(s)",
            component=component_name,
            details={"errors": [err["msg"] for err in e.errors()]},
        )
