"""Validation layer for raw text-generation output.

Parses JSON strings and validates them against a pydantic output model.
"""

import json
import re
from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from llm_feedback.errors import LLMOutputValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def _strip_markdown_fences(text: str) -> str:
    """Remove optional markdown code fences wrapping JSON.

    Args:
        text: Raw LLM response string.

    Returns:
        The text with leading/trailing code fences removed, if present.
    """
    stripped = text.strip()
    match = re.match(
        r"^```(?:json)?\s*\n?(.*?)\n?\s*```$",
        stripped,
        re.DOTALL | re.IGNORECASE,
    )
    if match:
        return match.group(1).strip()
    return stripped


def _extract_embedded_json(text: str) -> str:
    """Cut the outermost JSON array or object out of surrounding prose.

    Whichever of ``[`` and ``{`` appears first decides the shape.
    """
    first_obj, last_obj = text.find("{"), text.rfind("}")
    first_arr, last_arr = text.find("["), text.rfind("]")

    if first_arr != -1 and last_arr != -1 and (first_obj == -1 or first_arr < first_obj):
        return text[first_arr : last_arr + 1]
    if first_obj != -1 and last_obj != -1:
        return text[first_obj : last_obj + 1]
    return text


def parse_json_payload(raw_response: str) -> Any:
    """Parse a raw model response into a JSON value.

    Steps:
        1. Strip optional markdown fences.
        2. Parse as JSON.
        3. On failure, retry on the outermost embedded object or array.

    Raises:
        LLMOutputValidationError: With stage "json_parse" if nothing parses.
    """
    if not isinstance(raw_response, str):
        raise LLMOutputValidationError(
            stage="json_parse",
            errors=[f"expected a string response, got {type(raw_response).__name__}"],
            raw_response=str(raw_response),
        )

    cleaned = _strip_markdown_fences(raw_response)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as first_exc:
        embedded = _extract_embedded_json(cleaned)
        if embedded == cleaned:
            raise LLMOutputValidationError(
                stage="json_parse",
                errors=[str(first_exc)],
                raw_response=raw_response,
            ) from first_exc
        try:
            return json.loads(embedded)
        except json.JSONDecodeError as exc:
            raise LLMOutputValidationError(
                stage="json_parse",
                errors=[str(exc)],
                raw_response=raw_response,
            ) from exc


def _project_to_model_keys(data: Dict[str, Any], model: Type[BaseModel]) -> Dict[str, Any]:
    """Drop keys the output model does not declare."""
    return {key: value for key, value in data.items() if key in model.model_fields}


def validate_llm_output(raw_response: str, model: Type[ModelT]) -> ModelT:
    """Parse and validate a raw response against ``model``.

    Args:
        raw_response: The raw string returned by the LLM adapter.
        model: Pydantic model describing the expected JSON object.

    Returns:
        A validated model instance.

    Raises:
        LLMOutputValidationError: If JSON parsing or schema validation fails.
    """
    data = parse_json_payload(raw_response)

    if not isinstance(data, dict):
        raise LLMOutputValidationError(
            stage="schema",
            errors=["top-level JSON must be an object"],
            raw_response=raw_response,
        )

    try:
        return model.model_validate(_project_to_model_keys(data, model))
    except ValidationError as exc:
        errors: List[str] = [
            f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}"
            for e in exc.errors()
        ]
        raise LLMOutputValidationError(
            stage="schema",
            errors=errors,
            raw_response=raw_response,
        ) from exc
