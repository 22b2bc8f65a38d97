"""
Schemas for the structured output requested from the completion API.

Field names follow the JSON shape declared in the prompts (camelCase keys
for characters, snake_case for the rest), so they are kept verbatim.
"""
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# The prompts ask for at most this many follow-up topics
MAX_SUGGESTED_TOPICS = 3


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="ignore", strict=True)


def _not_blank(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be blank")
    return v


class CouncilItem(_StrictModel):
    characterKey: str
    characterName: str
    content: str

    check_content = field_validator("content")(_not_blank)


class CouncilResponse(_StrictModel):
    mode: Literal["COUNCIL"]
    messages: List[CouncilItem] = Field(..., min_length=1)
    suggested_topics: List[str] = Field(..., max_length=MAX_SUGGESTED_TOPICS)


class DecisionAnalysis(_StrictModel):
    characterKey: str
    characterName: str
    summary: str

    check_summary = field_validator("summary")(_not_blank)


class FinalDecision(_StrictModel):
    title: str
    content: str
    rationale: str

    check_fields = field_validator("title", "content", "rationale")(_not_blank)


class DecisionResponse(_StrictModel):
    mode: Literal["DECISION"]
    analyses: List[DecisionAnalysis] = Field(..., min_length=1)
    final_decision: FinalDecision
    suggested_topics: List[str] = Field(..., max_length=MAX_SUGGESTED_TOPICS)


# JSON schemas sent upstream. Kept explicit (not generated from the models)
# because strict json_schema mode requires additionalProperties=false and
# every property listed as required.
COUNCIL_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "mode": {"type": "string", "enum": ["COUNCIL"]},
        "messages": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "characterKey": {"type": "string"},
                    "characterName": {"type": "string"},
                    "content": {"type": "string"},
                },
                "required": ["characterKey", "characterName", "content"],
                "additionalProperties": False,
            },
        },
        "suggested_topics": {
            "type": "array",
            "items": {"type": "string"},
            "maxItems": MAX_SUGGESTED_TOPICS,
        },
    },
    "required": ["mode", "messages", "suggested_topics"],
    "additionalProperties": False,
}

DECISION_RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "mode": {"type": "string", "enum": ["DECISION"]},
        "analyses": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "characterKey": {"type": "string"},
                    "characterName": {"type": "string"},
                    "summary": {"type": "string"},
                },
                "required": ["characterKey", "characterName", "summary"],
                "additionalProperties": False,
            },
        },
        "final_decision": {
            "type": "object",
            "properties": {
                "title": {"type": "string"},
                "content": {"type": "string"},
                "rationale": {"type": "string"},
            },
            "required": ["title", "content", "rationale"],
            "additionalProperties": False,
        },
        "suggested_topics": {
            "type": "array",
            "items": {"type": "string"},
            "maxItems": MAX_SUGGESTED_TOPICS,
        },
    },
    "required": ["mode", "analyses", "final_decision", "suggested_topics"],
    "additionalProperties": False,
}
