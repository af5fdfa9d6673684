"""Fluent builders for Gemini conversation contents, system prompts and embedding queries."""

from typing import Any, Dict, List, Optional, Union

from geminispeak.exceptions import TranslationError
from geminispeak.schemas import (
    ChatRole,
    TextEntry,
    ToolCallEntry,
    ToolDefinition,
    ToolResultEntry,
)
from geminispeak.wire import (
    Content,
    FunctionCall,
    FunctionCallPart,
    FunctionDeclaration,
    FunctionResponse,
    FunctionResponsePart,
    GeminiRole,
    TextPart,
)

RoleLike = Union[GeminiRole, ChatRole, str]


def gemini_role(role: RoleLike) -> str:
    """Lower-case a role and map ``assistant`` to ``model``; other roles pass through."""
    value = role.value if isinstance(role, (GeminiRole, ChatRole)) else str(role)
    value = value.lower()
    return GeminiRole.MODEL.value if value == ChatRole.ASSISTANT.value else value


def content_from_entry(entry: Any) -> Content:
    """Convert one universal conversation entry into a Gemini content turn.

    Raises:
        TranslationError: If the entry is not a known conversation entry type
    """
    if isinstance(entry, TextEntry):
        return Content(role=gemini_role(entry.role), parts=[TextPart(text=entry.content)])
    if isinstance(entry, ToolCallEntry):
        call = FunctionCall(name=entry.tool, args=dict(entry.input), id=entry.id)
        return Content(role=GeminiRole.MODEL.value, parts=[FunctionCallPart(function_call=call)])
    if isinstance(entry, ToolResultEntry):
        response = FunctionResponse(
            name=entry.tool,
            response={"name": entry.tool, "content": entry.result},
            id=entry.id,
        )
        return Content(
            role=GeminiRole.FUNCTION.value,
            parts=[FunctionResponsePart(function_response=response)],
        )
    raise TranslationError(f"Unsupported conversation entry: {type(entry).__name__}")


def declaration_from_tool(tool: Union[ToolDefinition, Dict[str, Any]]) -> FunctionDeclaration:
    """Reshape a ``{name, description, input_schema}`` tool into a function declaration."""
    if isinstance(tool, dict):
        tool = ToolDefinition.model_validate(tool)
    elif not isinstance(tool, ToolDefinition):
        raise TranslationError(f"Unsupported tool definition: {type(tool).__name__}")
    return FunctionDeclaration(
        name=tool.name,
        description=tool.description,
        parameters=dict(tool.input_schema),
    )


class ConversationBuilder:
    """Accumulates Gemini content turns in order.

    Example:
        contents = (
            ConversationBuilder()
            .add_text(GeminiRole.USER, "Turn off the lights")
            .add_tool_request("lights_off", {"off": True})
            .add_tool_result("lights_off", "done")
            .render()
        )
    """

    def __init__(self):
        self._contents: List[Content] = []

    def add_text(self, role: RoleLike, text: str) -> "ConversationBuilder":
        self._contents.append(Content(role=gemini_role(role), parts=[TextPart(text=text)]))
        return self

    def add_tool_request(
        self, name: str, args: Dict[str, Any], call_id: Optional[str] = None
    ) -> "ConversationBuilder":
        return self.add_entry(ToolCallEntry(tool=name, input=args, id=call_id))

    def add_tool_result(
        self, name: str, result: Any, call_id: Optional[str] = None
    ) -> "ConversationBuilder":
        return self.add_entry(ToolResultEntry(tool=name, result=result, id=call_id))

    def add_content(self, content: Union[Content, Dict[str, Any]]) -> "ConversationBuilder":
        if isinstance(content, dict):
            content = Content.model_validate(content)
        self._contents.append(content)
        return self

    def add_entry(self, entry: Any) -> "ConversationBuilder":
        self._contents.append(content_from_entry(entry))
        return self

    def __len__(self) -> int:
        return len(self._contents)

    def render(self) -> List[Content]:
        return list(self._contents)

    def render_dicts(self) -> List[Dict[str, Any]]:
        return [content.to_dict() for content in self._contents]


class SystemPromptBuilder:
    """Accumulates system prompt fragments, one text part each."""

    def __init__(self):
        self._parts: List[TextPart] = []

    def add_text(self, text: str) -> "SystemPromptBuilder":
        self._parts.append(TextPart(text=text))
        return self

    def render(self) -> Optional[Content]:
        """The system instruction, or None when nothing was added."""
        if not self._parts:
            return None
        return Content(parts=list(self._parts))


class EmbeddingQueryBuilder:
    """Accumulates texts to embed as the parts of one content."""

    def __init__(self):
        self._parts: List[TextPart] = []

    def add_query(self, text: str) -> "EmbeddingQueryBuilder":
        self._parts.append(TextPart(text=text))
        return self

    def render(self) -> Content:
        return Content(parts=list(self._parts))
