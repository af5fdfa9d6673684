"""Common constants used throughout geminispeak."""

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT_SECONDS = 60.0

# Environment variables (checked in order for the API key)
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "GOOGLE_GEMINI_API_KEY")
BASE_URL_ENV_VAR = "GEMINI_URL"
TIMEOUT_ENV_VAR = "GEMINISPEAK_TIMEOUT_S"

API_KEY_HEADER = "x-goog-api-key"

GENERATE_CONTENT_ACTION = "generateContent"
EMBED_CONTENT_ACTION = "embedContent"

# Label used when the embeddings model cannot be recovered from a response
DEFAULT_EMBEDDING_MODEL_LABEL = "text-embedding-004"
DEFAULT_CHAT_MODEL_LABEL = "gemini-model"

# Legacy embedding model without taskType / outputDimensionality support
LEGACY_EMBEDDING_MODELS = frozenset({"embedding-001", "models/embedding-001"})

DEFAULT_SAFETY_THRESHOLD = "BLOCK_MEDIUM_AND_ABOVE"
SAFETY_WARNING_PROBABILITIES = frozenset({"MEDIUM", "HIGH"})

# Pipeline actions
ACTION_CALL = "call"
ACTION_WRAP_UP = "wrap-up"
ACTION_FINISHED = "finished"
ACTION_DONE = "done"
TERMINAL_ACTIONS = frozenset({ACTION_FINISHED, ACTION_DONE})
