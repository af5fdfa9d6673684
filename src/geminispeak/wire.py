# ABOUTME: Pydantic models mirroring the Gemini REST JSON contract.
# ABOUTME: Field names are snake_case in Python and camelCase on the wire.
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag
from pydantic.alias_generators import to_camel


class FinishReason(str, Enum):
    """Why a candidate stopped generating."""

    STOP = "STOP"
    MAX_TOKENS = "MAX_TOKENS"
    SAFETY = "SAFETY"
    RECITATION = "RECITATION"
    LANGUAGE = "LANGUAGE"
    OTHER = "OTHER"
    FUNCTION_CALL = "FUNCTION_CALL"  # outbound only


class TaskType(str, Enum):
    """Intended downstream use of an embedding."""

    TASK_TYPE_UNSPECIFIED = "TASK_TYPE_UNSPECIFIED"
    RETRIEVAL_QUERY = "RETRIEVAL_QUERY"
    RETRIEVAL_DOCUMENT = "RETRIEVAL_DOCUMENT"
    SEMANTIC_SIMILARITY = "SEMANTIC_SIMILARITY"
    CLASSIFICATION = "CLASSIFICATION"
    CLUSTERING = "CLUSTERING"
    QUESTION_ANSWERING = "QUESTION_ANSWERING"
    FACT_VERIFICATION = "FACT_VERIFICATION"
    CODE_RETRIEVAL_QUERY = "CODE_RETRIEVAL_QUERY"


class GeminiRole(str, Enum):
    """Roles Gemini accepts on conversation contents."""

    USER = "user"
    MODEL = "model"
    FUNCTION = "function"


class FunctionCallingMode(str, Enum):
    AUTO = "AUTO"
    ANY = "ANY"
    NONE = "NONE"


HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


class WireModel(BaseModel):
    """Base for wire shapes: immutable, camelCase aliases, unknown keys retained."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="allow",
        protected_namespaces=(),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Dump as wire JSON, omitting every absent field."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# Parts


class FunctionCall(WireModel):
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)
    id: Optional[str] = None


class FunctionResponse(WireModel):
    name: str
    response: Dict[str, Any] = Field(default_factory=dict)
    id: Optional[str] = None


class TextPart(WireModel):
    kind: ClassVar[str] = "text"

    text: str
    thought: Optional[bool] = None
    thought_signature: Optional[str] = None

    @property
    def is_thought(self) -> bool:
        return self.thought is True


class FunctionCallPart(WireModel):
    kind: ClassVar[str] = "function_call"

    function_call: FunctionCall


class FunctionResponsePart(WireModel):
    kind: ClassVar[str] = "function_response"

    function_response: FunctionResponse


class OtherPart(WireModel):
    """Any part kind this library does not model (inline data, file data...)."""

    kind: ClassVar[str] = "other"


def _part_kind(value: Any) -> str:
    if isinstance(value, dict):
        if "functionCall" in value or "function_call" in value:
            return FunctionCallPart.kind
        if "functionResponse" in value or "function_response" in value:
            return FunctionResponsePart.kind
        if "text" in value:
            return TextPart.kind
        return OtherPart.kind
    return getattr(value, "kind", OtherPart.kind)


Part = Annotated[
    Union[
        Annotated[TextPart, Tag(TextPart.kind)],
        Annotated[FunctionCallPart, Tag(FunctionCallPart.kind)],
        Annotated[FunctionResponsePart, Tag(FunctionResponsePart.kind)],
        Annotated[OtherPart, Tag(OtherPart.kind)],
    ],
    Discriminator(_part_kind),
]


class Content(WireModel):
    role: Optional[str] = None
    parts: List[Part] = Field(default_factory=list)

    @classmethod
    def from_text(cls, text: str, role: Optional[str] = None) -> "Content":
        return cls(role=role, parts=[TextPart(text=text)])

    def text(self) -> str:
        """Concatenated text of all non-thought text parts."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart) and not p.is_thought)


# Generation config


class ThinkingConfig(WireModel):
    thinking_budget: Optional[int] = None
    include_thoughts: Optional[bool] = None


class GenerationConfig(WireModel):
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    stop_sequences: Optional[List[str]] = None
    max_output_tokens: Optional[int] = None
    candidate_count: Optional[int] = None
    response_mime_type: Optional[str] = None
    response_schema: Optional[Dict[str, Any]] = None
    thinking_config: Optional[ThinkingConfig] = None


# Tools


class FunctionDeclaration(WireModel):
    name: str
    description: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None


class Tool(WireModel):
    function_declarations: List[FunctionDeclaration] = Field(default_factory=list)


class FunctionCallingConfig(WireModel):
    mode: Optional[str] = None
    allowed_function_names: Optional[List[str]] = None


class ToolConfig(WireModel):
    function_calling_config: Optional[FunctionCallingConfig] = None


# Safety


class SafetySetting(WireModel):
    category: str
    threshold: str


class SafetyRating(WireModel):
    category: Optional[str] = None
    probability: Optional[str] = None
    blocked: Optional[bool] = None


# Responses


class UsageMetadata(WireModel):
    prompt_token_count: Optional[int] = None
    candidates_token_count: Optional[int] = None
    total_token_count: Optional[int] = None
    thoughts_token_count: Optional[int] = None
    cached_content_token_count: Optional[int] = None


class Candidate(WireModel):
    content: Optional[Content] = None
    # Kept as a string so unrecognized reasons survive parsing
    finish_reason: Optional[str] = None
    index: Optional[int] = None
    safety_ratings: List[SafetyRating] = Field(default_factory=list)
    citation_metadata: Optional[Dict[str, Any]] = None


class PromptFeedback(WireModel):
    block_reason: Optional[str] = None
    safety_ratings: List[SafetyRating] = Field(default_factory=list)


class GeminiCallResult(WireModel):
    """Body of a generateContent response."""

    candidates: List[Candidate] = Field(default_factory=list)
    usage_metadata: UsageMetadata = Field(default_factory=UsageMetadata)
    model_version: Optional[str] = None
    response_id: Optional[str] = None
    prompt_feedback: Optional[PromptFeedback] = None


class ContentEmbedding(WireModel):
    values: Tuple[float, ...] = ()


class GeminiEmbeddingResult(WireModel):
    """Body of an embedContent response."""

    embedding: Optional[ContentEmbedding] = None
