"""AnalysisResult schema shared by the prompt text and the validator.

The response shape shown to the model is rendered from ``ANALYSIS_RESULT_SCHEMA``
and the validator reads its enum and required fields from the same objects,
so the two cannot drift apart.
"""

import json
from typing import Any

from labwise.normalization.models import FindingStatus

FINDING_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "test_name": {
            "type": "string",
            "description": "Name of the test or measurement",
        },
        "value": {
            "type": "string",
            "description": "The measured value",
        },
        "unit": {
            "type": "string",
            "description": "Unit of measurement (if available)",
        },
        "reference_range": {
            "type": "string",
            "description": "Normal range (if mentioned)",
        },
        "status": {
            "type": "string",
            "enum": [status.value for status in FindingStatus],
        },
        "interpretation": {
            "type": "string",
            "description": "Plain language explanation of this result",
        },
    },
    "required": ["test_name", "value", "status", "interpretation"],
}

ANALYSIS_RESULT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "results": {"type": "array", "items": FINDING_SCHEMA},
        "critical_findings": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Any concerning values or urgent attention needed",
        },
        "summary": {
            "type": "string",
            "description": "Professional summary of the laboratory findings",
        },
        "recommendations": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Actionable follow-up or lifestyle recommendations",
        },
    },
    "required": ["results", "critical_findings", "summary", "recommendations"],
}

EMPTY_RESULT_EXAMPLE: dict[str, Any] = {
    "results": [],
    "critical_findings": [],
    "summary": "No medical measurements or laboratory results identified in the document",
    "recommendations": [
        "Please ensure the document contains laboratory results or medical measurements"
    ],
}


def describe_response_shape(schema: dict[str, Any] = ANALYSIS_RESULT_SCHEMA) -> str:
    """Render the schema as an annotated JSON example for prompt text."""
    return json.dumps(_example(schema), indent=2)


def describe_empty_result() -> str:
    return json.dumps(EMPTY_RESULT_EXAMPLE, indent=2)


def _example(node: dict[str, Any], description: str = "") -> Any:
    if "enum" in node:
        return "|".join(node["enum"])
    node_type = node.get("type")
    if node_type == "object":
        return {name: _example(child) for name, child in node["properties"].items()}
    if node_type == "array":
        return [_example(node["items"], node.get("description", ""))]
    return node.get("description", description)
