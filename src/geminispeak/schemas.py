# ABOUTME: Pydantic schemas for provider-neutral chat and embeddings requests and responses.
# ABOUTME: Conversation entries form a closed tagged union discriminated by ``type``.
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatRole(str, Enum):
    """Universal conversation roles."""

    USER = "user"
    ASSISTANT = "assistant"
    MODEL = "model"
    FUNCTION = "function"
    SYSTEM = "system"


class UniversalModel(BaseModel):
    """Base for universal shapes: immutable value objects."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())


class TextEntry(UniversalModel):
    """A plain text message in a conversation."""

    type: Literal["text"] = "text"
    role: ChatRole
    content: str

    @field_validator("role", mode="before")
    @classmethod
    def _lower_case_role(cls, role: Any) -> Any:
        return role.lower() if isinstance(role, str) and not isinstance(role, Enum) else role


class ToolCallEntry(UniversalModel):
    """The model asking for a tool to be run."""

    type: Literal["tool_call"] = "tool_call"
    tool: str
    input: Dict[str, Any] = Field(default_factory=dict)
    id: Optional[str] = None

    @property
    def role(self) -> ChatRole:
        return ChatRole.MODEL


class ToolResultEntry(UniversalModel):
    """The outcome of a tool run, sent back to the model."""

    type: Literal["tool_result"] = "tool_result"
    tool: str
    result: Any = None
    id: Optional[str] = None

    @property
    def role(self) -> ChatRole:
        return ChatRole.FUNCTION


ConversationEntry = Annotated[
    Union[TextEntry, ToolCallEntry, ToolResultEntry], Field(discriminator="type")
]


class SystemInstruction(UniversalModel):
    content: str


class ToolDefinition(UniversalModel):
    """A tool the model may call."""

    name: str
    description: str = ""
    input_schema: Dict[str, Any] = Field(default_factory=dict)


class ToolKit(UniversalModel):
    """Ordered set of tool definitions with unique names."""

    tools: List[ToolDefinition] = Field(default_factory=list)

    @field_validator("tools")
    @classmethod
    def _unique_names(cls, tools: List[ToolDefinition]) -> List[ToolDefinition]:
        seen = set()
        for tool in tools:
            if tool.name in seen:
                raise ValueError(f"Duplicate tool name '{tool.name}' in tool kit")
            seen.add(tool.name)
        return tools

    def __len__(self) -> int:
        return len(self.tools)


class ResponseFormat(UniversalModel):
    type: Optional[str] = None
    schema_: Optional[Dict[str, Any]] = Field(None, alias="schema")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def json_schema(self) -> Optional[Dict[str, Any]]:
        return self.schema_


class Reasoning(UniversalModel):
    budget: Optional[int] = None
    include_thoughts: Optional[bool] = None


class UniversalChatRequest(UniversalModel):
    """A provider-neutral chat request."""

    model: str
    messages: List[ConversationEntry] = Field(default_factory=list)
    tools: Optional[ToolKit] = None
    system_instructions: Optional[List[SystemInstruction]] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    tool_choice: Optional[Union[str, Dict[str, Any]]] = None
    response_format: Optional[ResponseFormat] = None
    stream: bool = False
    parallel_function_calling: Optional[bool] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    stop: Optional[List[str]] = None
    reasoning: Optional[Reasoning] = None


class UniversalChatResponse(UniversalModel):
    """A provider-neutral chat response."""

    id: str
    model: str
    created: int
    choices: List[Dict[str, Any]] = Field(default_factory=list)
    usage: Dict[str, int] = Field(default_factory=dict)
    finish_reason: Optional[str] = None
    object: str = "chat.completion"
    system_fingerprint: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def content(self) -> Optional[str]:
        """Message content of the first choice."""
        if not self.choices:
            return None
        return self.choices[0].get("message", {}).get("content")

    @property
    def prompt_tokens(self) -> int:
        return self.usage.get("prompt_tokens", 0)

    @property
    def completion_tokens(self) -> int:
        return self.usage.get("completion_tokens", 0)

    @property
    def total_tokens(self) -> int:
        """Get total tokens used."""
        return self.usage.get("total_tokens") or (self.prompt_tokens + self.completion_tokens)


class UniversalEmbeddingsRequest(UniversalModel):
    """A provider-neutral embeddings request."""

    model: str
    input: Union[str, List[str]]
    encoding_format: Optional[str] = None
    dimensions: Optional[int] = None
    task_type: Optional[str] = None


class UniversalEmbeddingsResponse(UniversalModel):
    """A provider-neutral embeddings response."""

    model: str
    data: List[Dict[str, Any]] = Field(default_factory=list)
    usage: Dict[str, int] = Field(default_factory=dict)
    object: str = "list"
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def get_first_embedding(self) -> Optional[List[float]]:
        if not self.data:
            return None
        return self.data[0].get("embedding")
