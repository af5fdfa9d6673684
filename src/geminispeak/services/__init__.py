"""Translation services between the universal schema and Gemini wire shapes."""

from geminispeak.services.embeddings import GeminiEmbeddingsDriver
from geminispeak.services.schema_adapter import SchemaAdapter, normalize_google_schema
from geminispeak.services.translation import (
    GeminiTranslationDriver,
    map_from_gemini_finish_reason,
    map_to_gemini_finish_reason,
)

__all__ = [
    "GeminiEmbeddingsDriver",
    "GeminiTranslationDriver",
    "SchemaAdapter",
    "map_from_gemini_finish_reason",
    "map_to_gemini_finish_reason",
    "normalize_google_schema",
]
