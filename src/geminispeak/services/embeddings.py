"""Embeddings translation between the universal schema and Gemini embedContent."""

import logging
from typing import Optional

from geminispeak.base import BaseTranslationDriver, GeminiConfig
from geminispeak.constants import DEFAULT_EMBEDDING_MODEL_LABEL
from geminispeak.requests import GeminiEmbeddingsRequest
from geminispeak.responses import GeminiEmbeddingsResponse
from geminispeak.schemas import UniversalEmbeddingsRequest, UniversalEmbeddingsResponse
from geminispeak.wire import ContentEmbedding, Content, TextPart

logger = logging.getLogger(__name__)


class GeminiEmbeddingsDriver(
    BaseTranslationDriver[
        UniversalEmbeddingsRequest,
        UniversalEmbeddingsResponse,
        GeminiEmbeddingsRequest,
        GeminiEmbeddingsResponse,
    ]
):
    """Bidirectional embeddings mapping.

    Gemini embeddings responses carry neither usage nor the model name, so
    the universal side gets zero usage and a fixed model label.
    """

    def __init__(self, config: Optional[GeminiConfig] = None):
        self.config = config

    def to_wire(self, request: UniversalEmbeddingsRequest) -> GeminiEmbeddingsRequest:
        self._check_type(request, UniversalEmbeddingsRequest, "to_wire")

        texts = [request.input] if isinstance(request.input, str) else list(request.input)
        if request.encoding_format is not None:
            logger.debug(f"Dropping encoding_format={request.encoding_format!r}; Gemini returns floats")

        params = {
            "model": request.model,
            "content": Content(parts=[TextPart(text=str(text)) for text in texts]),
            "task_type": request.task_type,
            "output_dimensionality": request.dimensions,
        }
        if self.config is not None:
            params["api_key"] = self.config.api_key
            params["base_url"] = self.config.base_url
        return GeminiEmbeddingsRequest(**params)

    def to_universal(self, request: GeminiEmbeddingsRequest) -> UniversalEmbeddingsRequest:
        self._check_type(request, GeminiEmbeddingsRequest, "to_universal")
        texts = [part.text for part in request.content.parts if isinstance(part, TextPart)]
        return UniversalEmbeddingsRequest(
            model=request.model or "",
            input=texts if len(texts) > 1 else "".join(texts),
            dimensions=request.output_dimensionality,
            task_type=request.task_type,
        )

    def from_wire(self, response: GeminiEmbeddingsResponse) -> UniversalEmbeddingsResponse:
        self._check_type(response, GeminiEmbeddingsResponse, "from_wire")
        data = []
        if response.has_embedding():
            data.append(
                {"object": "embedding", "embedding": response.get_embedding_values(), "index": 0}
            )
        return UniversalEmbeddingsResponse(
            model=DEFAULT_EMBEDDING_MODEL_LABEL,
            data=data,
            usage={"prompt_tokens": 0, "total_tokens": 0},
            metadata={
                "status_code": response.status_code,
                "embedding_dimensions": response.get_dimensions(),
            },
        )

    def from_universal(self, response: UniversalEmbeddingsResponse) -> GeminiEmbeddingsResponse:
        self._check_type(response, UniversalEmbeddingsResponse, "from_universal")
        values = response.get_first_embedding()
        return GeminiEmbeddingsResponse(
            embedding=ContentEmbedding(values=values) if values else None
        )
