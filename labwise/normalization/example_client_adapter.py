"""Example completion client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseCompletionClient and register the provider in CompletionClientFactory.
"""

import json
from typing import ClassVar

from labwise.normalization.client_base import BaseCompletionClient


class ExampleClientAdapter(BaseCompletionClient):
    """Example adapter that returns a fixed valid analysis JSON.

    No network calls. Useful for local development and tests. Vision calls
    made without JSON mode are transcription requests and get a fixed
    transcript instead.
    """

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {
        "results": [
            {
                "test_name": "Glucose",
                "value": "95",
                "unit": "mg/dL",
                "reference_range": "70-100",
                "status": "normal",
                "interpretation": "Fasting glucose is within the normal range.",
            }
        ],
        "critical_findings": [],
        "summary": "Example analysis: all reported values are within normal limits.",
        "recommendations": ["Continue routine annual screening."],
    }
    DEFAULT_TRANSCRIPT: ClassVar[str] = "Glucose: 95 mg/dL (Normal: 70-100)"

    async def complete_text(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        max_tokens: int,
        json_mode: bool = True,
    ) -> str:
        _ = system_prompt, user_prompt, model, max_tokens, json_mode
        return json.dumps(self.DEFAULT_RESPONSE)

    async def complete_vision(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        max_tokens: int,
        image_base64: str,
        mime_type: str,
        json_mode: bool = True,
    ) -> str:
        _ = system_prompt, user_prompt, model, max_tokens, image_base64, mime_type
        if not json_mode:
            return self.DEFAULT_TRANSCRIPT
        return json.dumps(self.DEFAULT_RESPONSE)
