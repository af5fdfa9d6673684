"""geminispeak - translate between a universal LLM schema and the Gemini REST API."""

__version__ = "0.1.0"

from geminispeak.base import GeminiConfig
from geminispeak.builders import ConversationBuilder, EmbeddingQueryBuilder, SystemPromptBuilder
from geminispeak.client import GeminiClient
from geminispeak.endpoints import ChatEndpoint, EmbedEndpoint
from geminispeak.exceptions import (
    APIError,
    ConfigurationError,
    GeminiSpeakError,
    PipelineError,
    TranslationError,
    TransportError,
    ValidationError,
)
from geminispeak.pipeline import ChatContext, EmbeddingsContext, Flow, Node
from geminispeak.requests import GeminiEmbeddingsRequest, GeminiGenerateRequest
from geminispeak.responses import GeminiEmbeddingsResponse, GeminiGenerateResponse
from geminispeak.schemas import (
    ChatRole,
    SystemInstruction,
    TextEntry,
    ToolCallEntry,
    ToolDefinition,
    ToolKit,
    ToolResultEntry,
    UniversalChatRequest,
    UniversalChatResponse,
    UniversalEmbeddingsRequest,
    UniversalEmbeddingsResponse,
)
from geminispeak.services import GeminiEmbeddingsDriver, GeminiTranslationDriver
from geminispeak.transport import HttpClient, HttpResponse, HttpxClient

__all__ = [
    "APIError",
    "ChatContext",
    "ChatEndpoint",
    "ChatRole",
    "ConfigurationError",
    "ConversationBuilder",
    "EmbedEndpoint",
    "EmbeddingQueryBuilder",
    "EmbeddingsContext",
    "Flow",
    "GeminiClient",
    "GeminiConfig",
    "GeminiEmbeddingsDriver",
    "GeminiEmbeddingsRequest",
    "GeminiEmbeddingsResponse",
    "GeminiGenerateRequest",
    "GeminiGenerateResponse",
    "GeminiSpeakError",
    "GeminiTranslationDriver",
    "HttpClient",
    "HttpResponse",
    "HttpxClient",
    "Node",
    "PipelineError",
    "SystemInstruction",
    "SystemPromptBuilder",
    "TextEntry",
    "ToolCallEntry",
    "ToolDefinition",
    "ToolKit",
    "ToolResultEntry",
    "TranslationError",
    "TransportError",
    "UniversalChatRequest",
    "UniversalChatResponse",
    "UniversalEmbeddingsRequest",
    "UniversalEmbeddingsResponse",
    "ValidationError",
]
