"""
Gemini client tying configuration, transport and translation drivers together.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from geminispeak.base import GeminiConfig
from geminispeak.requests import GeminiEmbeddingsRequest, GeminiGenerateRequest
from geminispeak.responses import GeminiEmbeddingsResponse, GeminiGenerateResponse
from geminispeak.schemas import (
    UniversalChatRequest,
    UniversalChatResponse,
    UniversalEmbeddingsRequest,
    UniversalEmbeddingsResponse,
)
from geminispeak.services.embeddings import GeminiEmbeddingsDriver
from geminispeak.services.translation import GeminiTranslationDriver
from geminispeak.transport import HttpClient, HttpxClient
from geminispeak.wire import Content

logger = logging.getLogger(__name__)


class GeminiClient:
    """Entry point for calling Gemini with either native or universal requests."""

    def __init__(
        self,
        config: Optional[GeminiConfig] = None,
        http_client: Optional[HttpClient] = None,
        normalize_tool_schemas: bool = False,
    ):
        """
        Initialize the client.

        Args:
            config: Connection settings; loaded from the environment if omitted
            http_client: Transport to use; an httpx client is created if omitted
            normalize_tool_schemas: Downgrade tool schemas Gemini would reject
        """
        self.config = config or GeminiConfig.from_env()
        self._owns_http_client = http_client is None
        self.http_client: HttpClient = http_client or HttpxClient(
            timeout=self.config.timeout_seconds
        )
        self.chat_driver = GeminiTranslationDriver(
            self.config, normalize_tool_schemas=normalize_tool_schemas
        )
        self.embeddings_driver = GeminiEmbeddingsDriver(self.config)

    def __repr__(self) -> str:
        return f"GeminiClient(config={self.config!r})"

    # Request factories

    def generate_request(
        self,
        model: str,
        contents: Optional[List[Union[Content, Dict[str, Any]]]] = None,
        **kwargs: Any,
    ) -> GeminiGenerateRequest:
        """A generate request carrying this client's API key and base URL."""
        return GeminiGenerateRequest(
            model=model,
            contents=contents or [],
            api_key=self.config.api_key,
            base_url=self.config.base_url,
            **kwargs,
        )

    def embeddings_request(
        self, model: str, text: Optional[str] = None, **kwargs: Any
    ) -> GeminiEmbeddingsRequest:
        """An embeddings request carrying this client's API key and base URL."""
        kwargs.setdefault("api_key", self.config.api_key)
        kwargs.setdefault("base_url", self.config.base_url)
        if text is not None:
            return GeminiEmbeddingsRequest.from_text(model, text, **kwargs)
        return GeminiEmbeddingsRequest(model=model, **kwargs)

    # Native calls

    async def generate(self, request: GeminiGenerateRequest) -> GeminiGenerateResponse:
        if not request.api_key and self.config.api_key:
            request = request.with_api_key(self.config.api_key)
        return await request.post(self.http_client)

    async def embed(self, request: GeminiEmbeddingsRequest) -> GeminiEmbeddingsResponse:
        if not request.api_key and self.config.api_key:
            request = request.with_api_key(self.config.api_key)
        return await request.post(self.http_client)

    # Universal calls

    async def chat(self, request: UniversalChatRequest) -> UniversalChatResponse:
        """Translate a universal chat request, send it and translate the answer back."""
        wire_request = self.chat_driver.to_wire(request)
        logger.debug(f"Universal chat request translated: {wire_request.to_debug_dict()}")
        response = await self.generate(wire_request)
        return self.chat_driver.from_wire(response)

    async def embeddings(self, request: UniversalEmbeddingsRequest) -> UniversalEmbeddingsResponse:
        wire_request = self.embeddings_driver.to_wire(request)
        response = await self.embed(wire_request)
        return self.embeddings_driver.from_wire(response)

    async def close(self):
        """Close the HTTP client if this instance created it."""
        if self._owns_http_client:
            await self.http_client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
