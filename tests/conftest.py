"""Test configuration and fixtures for geminispeak"""

from typing import Any, Dict, List, Optional

import pytest

from geminispeak.transport import HttpResponse


class RecordingHttpClient:
    """HttpClient double that records every call and replays canned responses."""

    def __init__(self, responses: Optional[List[HttpResponse]] = None):
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    async def post(
        self, url: str, headers: Dict[str, str], json_body: Dict[str, Any]
    ) -> HttpResponse:
        self.calls.append({"url": url, "headers": dict(headers), "json_body": json_body})
        if not self.responses:
            raise AssertionError(f"Unexpected POST to {url}")
        return self.responses.pop(0)

    @property
    def last_call(self) -> Dict[str, Any]:
        return self.calls[-1]


def json_response(body: Any, status_code: int = 200) -> HttpResponse:
    return HttpResponse(
        status_code=status_code,
        headers={"content-type": ["application/json"]},
        json_body=body,
        raw_body="" if body is None else str(body),
    )


@pytest.fixture
def generate_body():
    """A generateContent body with one text part and one thought part."""
    return {
        "candidates": [
            {
                "content": {
                    "role": "model",
                    "parts": [{"text": "t1"}, {"text": "t2", "thought": True}],
                },
                "finishReason": "STOP",
                "index": 0,
                "safetyRatings": [
                    {"category": "HARM_CATEGORY_HARASSMENT", "probability": "NEGLIGIBLE"},
                    {"category": "HARM_CATEGORY_HATE_SPEECH", "probability": "MEDIUM"},
                ],
            }
        ],
        "usageMetadata": {
            "promptTokenCount": 4,
            "candidatesTokenCount": 2,
            "thoughtsTokenCount": 4,
            "totalTokenCount": 10,
        },
        "modelVersion": "gemini-2.5-flash",
    }


@pytest.fixture
def tool_call_body():
    return {
        "candidates": [
            {
                "content": {
                    "role": "model",
                    "parts": [{"functionCall": {"name": "lights_off", "args": {"off": True}}}],
                },
                "finishReason": "STOP",
            }
        ],
        "usageMetadata": {"promptTokenCount": 12, "totalTokenCount": 15},
    }


@pytest.fixture
def embedding_body():
    return {"embedding": {"values": [0.1, 0.2, 0.3]}}


@pytest.fixture
def http_client_factory():
    """Build a RecordingHttpClient preloaded with JSON bodies."""

    def factory(*bodies: Any, status_code: int = 200) -> RecordingHttpClient:
        return RecordingHttpClient([json_response(body, status_code) for body in bodies])

    return factory
