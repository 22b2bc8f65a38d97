"""
Validation of structured completions.

The completion text is parsed as JSON (tolerating the markdown fences models
add in the schema-in-prompt mode) and validated against the schema of the
session mode. The only repair ever applied is the suggested-topics default:
a missing or non-array ``suggested_topics`` becomes the fixed three-item
list for the mode, so clients always have something to offer next.
"""
import json
import logging
import re
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from mindchat.core.exceptions import MalformedResponseError
from mindchat.models.chat_session import ChatMode
from mindchat.schemas.ai_response import (
    COUNCIL_RESPONSE_SCHEMA,
    DECISION_RESPONSE_SCHEMA,
    CouncilResponse,
    DecisionResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTED_TOPICS: Dict[str, List[str]] = {
    ChatMode.COUNCIL: [
        "Desenvolvimento pessoal",
        "Relacionamentos familiares",
        "Propósito de vida",
    ],
    ChatMode.DECISION: [
        "Próximos passos práticos",
        "Reflexões sobre a decisão",
        "Implementação das mudanças",
    ],
}

RESPONSE_MODELS = {
    ChatMode.COUNCIL: CouncilResponse,
    ChatMode.DECISION: DecisionResponse,
}

RESPONSE_SCHEMAS = {
    ChatMode.COUNCIL: COUNCIL_RESPONSE_SCHEMA,
    ChatMode.DECISION: DECISION_RESPONSE_SCHEMA,
}

StructuredResponse = Union[CouncilResponse, DecisionResponse]


def parse_json_object(response: str) -> Dict[str, Any]:
    """
    Parse completion text into a JSON object.

    Strategies, in order:
    1. Direct JSON parse
    2. Content of a ```json ... ``` (or bare ```) code block
    3. Text between the first '{' and the last '}'

    Raises:
        MalformedResponseError: If no strategy yields a JSON object
    """
    if not response or not response.strip():
        raise MalformedResponseError("AI service returned an empty response")

    candidates = [response]

    block_match = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", response, re.IGNORECASE)
    if block_match:
        candidates.append(block_match.group(1))

    object_match = re.search(r"\{[\s\S]*\}", response)
    if object_match:
        candidates.append(object_match.group(0))

    errors = []
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as e:
            errors.append(str(e))
            continue
        if isinstance(data, dict):
            return data
        errors.append(f"expected an object, got {type(data).__name__}")

    logger.error(f"Structured response is not a JSON object. Errors: {errors}")
    logger.debug(f"Original response (first 500 chars): {response[:500]}")
    raise MalformedResponseError("AI service returned invalid JSON")


def apply_default_topics(data: Dict[str, Any], mode: str) -> Dict[str, Any]:
    """Replace a missing or non-array suggested_topics with the mode default."""
    topics = data.get("suggested_topics")
    if not isinstance(topics, list):
        data = {**data, "suggested_topics": list(DEFAULT_SUGGESTED_TOPICS[mode])}
    return data


def validate_response(raw: Union[str, Dict[str, Any]], mode: str) -> StructuredResponse:
    """
    Validate a completion (raw text or already-parsed object) for ``mode``.

    Raises:
        MalformedResponseError: On invalid JSON, wrong mode, missing or
            mistyped fields, or blank content
        ValueError: If ``mode`` is not a known session mode
    """
    if mode not in RESPONSE_MODELS:
        raise ValueError(f"Unknown chat mode: {mode}")

    data = parse_json_object(raw) if isinstance(raw, str) else raw
    if not isinstance(data, dict):
        raise MalformedResponseError("AI service returned invalid JSON")

    data = apply_default_topics(data, mode)

    try:
        return RESPONSE_MODELS[mode].model_validate(data)
    except ValidationError as e:
        logger.error(f"Structured {mode} response failed validation: {e.errors()}")
        raise MalformedResponseError("AI service returned a malformed response")
