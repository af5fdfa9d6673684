"""
Chat translation between the universal schema and Gemini generateContent.

The mapping is lossy in places:
- ``assistant`` goes out as ``model`` and comes back as ``model``
- Several Gemini finish reasons collapse to ``content_filter``
- Frequency and presence penalties, parallel function calling and tool
  choice have no Gemini equivalent and are dropped
"""

import json
import logging
import time
import uuid
from typing import Any, Dict, List, Optional, Union

from geminispeak.base import BaseTranslationDriver, GeminiConfig
from geminispeak.builders import content_from_entry
from geminispeak.constants import DEFAULT_CHAT_MODEL_LABEL
from geminispeak.exceptions import TranslationError
from geminispeak.requests import GeminiGenerateRequest
from geminispeak.responses import GeminiGenerateResponse
from geminispeak.schemas import (
    ChatRole,
    ConversationEntry,
    Reasoning,
    ResponseFormat,
    SystemInstruction,
    TextEntry,
    ToolCallEntry,
    ToolDefinition,
    ToolKit,
    ToolResultEntry,
    UniversalChatRequest,
    UniversalChatResponse,
)
from geminispeak.services.schema_adapter import SchemaAdapter
from geminispeak.wire import (
    Candidate,
    Content,
    FinishReason,
    FunctionCall,
    FunctionCallPart,
    FunctionDeclaration,
    FunctionResponsePart,
    GeminiRole,
    TextPart,
    Tool,
    UsageMetadata,
)

logger = logging.getLogger(__name__)

_TO_GEMINI_FINISH = {
    "stop": FinishReason.STOP,
    "length": FinishReason.MAX_TOKENS,
    "tool_calls": FinishReason.FUNCTION_CALL,
    "content_filter": FinishReason.SAFETY,
}

_FROM_GEMINI_FINISH = {
    FinishReason.STOP.value: "stop",
    FinishReason.MAX_TOKENS.value: "length",
    FinishReason.SAFETY.value: "content_filter",
    FinishReason.RECITATION.value: "content_filter",
    FinishReason.LANGUAGE.value: "content_filter",
    FinishReason.OTHER.value: "stop",
}

_DROPPED_FIELDS = ("frequency_penalty", "presence_penalty", "parallel_function_calling", "tool_choice")


def map_to_gemini_finish_reason(reason: Optional[str]) -> str:
    """Universal finish reason to Gemini; anything unrecognized becomes ``STOP``."""
    return _TO_GEMINI_FINISH.get(reason, FinishReason.STOP).value


def map_from_gemini_finish_reason(reason: Optional[Union[str, FinishReason]]) -> Optional[str]:
    """Gemini finish reason to universal; anything unrecognized passes through unchanged."""
    key = reason.value if isinstance(reason, FinishReason) else reason
    return _FROM_GEMINI_FINISH.get(key, reason)


class GeminiTranslationDriver(
    BaseTranslationDriver[
        UniversalChatRequest, UniversalChatResponse, GeminiGenerateRequest, GeminiGenerateResponse
    ]
):
    """Bidirectional chat mapping.

    Args:
        config: Supplies the API key and base URL stamped on outbound requests
        normalize_tool_schemas: Downgrade tool parameter schemas Gemini would reject
    """

    def __init__(self, config: Optional[GeminiConfig] = None, normalize_tool_schemas: bool = False):
        self.config = config
        self.normalize_tool_schemas = normalize_tool_schemas
        self._schema_adapter = SchemaAdapter()

    # Universal -> Gemini

    def to_wire(self, request: UniversalChatRequest) -> GeminiGenerateRequest:
        self._check_type(request, UniversalChatRequest, "to_wire")

        dropped = [name for name in _DROPPED_FIELDS if getattr(request, name) is not None]
        if dropped:
            logger.debug(f"Dropping fields with no Gemini equivalent: {dropped}")

        contents = [content_from_entry(entry) for entry in request.messages]

        system_instruction = None
        if request.system_instructions:
            text = "\n\n".join(item.content for item in request.system_instructions)
            system_instruction = Content(parts=[TextPart(text=text)])

        tools = None
        if request.tools:
            tools = [Tool(function_declarations=[self._declaration(t) for t in request.tools.tools])]

        reasoning = request.reasoning or Reasoning()
        response_format = request.response_format or ResponseFormat()

        params: Dict[str, Any] = {
            "model": request.model,
            "contents": contents,
            "temperature": request.temperature,
            "top_p": request.top_p,
            "top_k": request.top_k,
            "stop_sequences": request.stop,
            "max_output_tokens": request.max_tokens,
            "thinking_budget": reasoning.budget,
            "include_thoughts": reasoning.include_thoughts,
            "response_mime_type": response_format.type,
            "response_schema": response_format.json_schema,
            "tools": tools,
            "system_instruction": system_instruction,
        }
        if self.config is not None:
            params["api_key"] = self.config.api_key
            params["base_url"] = self.config.base_url
        return GeminiGenerateRequest(**params)

    def _declaration(self, tool: ToolDefinition) -> FunctionDeclaration:
        parameters = dict(tool.input_schema)
        if self.normalize_tool_schemas and parameters:
            parameters = self._schema_adapter.normalize_parameters(parameters, tool.name)
        return FunctionDeclaration(
            name=tool.name, description=tool.description, parameters=parameters
        )

    # Gemini -> Universal

    def to_universal(self, request: GeminiGenerateRequest) -> UniversalChatRequest:
        self._check_type(request, GeminiGenerateRequest, "to_universal")

        messages: List[ConversationEntry] = []
        for content in request.contents:
            messages.extend(self._entries_from_content(content))

        system_instructions = None
        if request.system_instruction is not None:
            text = request.system_instruction.text()
            if text:
                system_instructions = [SystemInstruction(content=text)]

        tools = None
        if request.tools:
            tools = ToolKit(
                tools=[
                    ToolDefinition(
                        name=declaration.name,
                        description=declaration.description or "",
                        input_schema=declaration.parameters or {},
                    )
                    for tool in request.tools
                    for declaration in tool.function_declarations
                ]
            )

        config = request.effective_generation_config()
        reasoning = None
        response_format = None
        if config is not None:
            thinking = config.thinking_config
            if thinking is not None and (
                thinking.thinking_budget is not None or thinking.include_thoughts is not None
            ):
                reasoning = Reasoning(
                    budget=thinking.thinking_budget, include_thoughts=thinking.include_thoughts
                )
            if config.response_mime_type or config.response_schema:
                response_format = ResponseFormat(
                    type=config.response_mime_type, schema=config.response_schema
                )

        return UniversalChatRequest(
            model=request.model or "",
            messages=messages,
            tools=tools,
            system_instructions=system_instructions,
            max_tokens=config.max_output_tokens if config else None,
            temperature=config.temperature if config else None,
            top_p=config.top_p if config else None,
            top_k=config.top_k if config else None,
            stop=config.stop_sequences if config else None,
            response_format=response_format,
            reasoning=reasoning,
        )

    def _entries_from_content(self, content: Content) -> List[ConversationEntry]:
        if content.role == GeminiRole.MODEL.value:
            role = ChatRole.MODEL
        elif content.role == GeminiRole.FUNCTION.value:
            role = ChatRole.FUNCTION
        else:
            role = ChatRole.USER

        text_chunks: List[str] = []
        tool_entries: List[ConversationEntry] = []
        for part in content.parts:
            if isinstance(part, TextPart):
                text_chunks.append(part.text)
            elif isinstance(part, FunctionCallPart):
                call = part.function_call
                tool_entries.append(ToolCallEntry(tool=call.name, input=call.args, id=call.id))
            elif isinstance(part, FunctionResponsePart):
                response = part.function_response
                result = response.response.get("content", response.response)
                tool_entries.append(ToolResultEntry(tool=response.name, result=result, id=response.id))
            else:
                raise TranslationError(
                    f"Cannot map {type(part).__name__} in a '{content.role}' turn to a universal entry"
                )

        entries: List[ConversationEntry] = []
        text = "".join(text_chunks)
        # A turn of empty text still keeps its place in the conversation
        if text or (text_chunks and not tool_entries):
            entries.append(TextEntry(role=role, content=text))
        entries.extend(tool_entries)
        return entries

    def from_wire(self, response: GeminiGenerateResponse) -> UniversalChatResponse:
        self._check_type(response, GeminiGenerateResponse, "from_wire")

        choices = [self._choice(index, candidate) for index, candidate in enumerate(response.candidates)]
        usage = response.usage_metadata
        best = response.get_best_candidate()
        safety_ratings = [rating.to_dict() for rating in best.safety_ratings] if best else None

        return UniversalChatResponse(
            id=f"gemini_{uuid.uuid4().hex}",
            model=response.model_version or DEFAULT_CHAT_MODEL_LABEL,
            created=int(time.time()),
            choices=choices,
            usage={
                "prompt_tokens": usage.prompt_token_count or 0,
                "completion_tokens": usage.candidates_token_count or 0,
                "total_tokens": usage.total_token_count or 0,
            },
            finish_reason=choices[0]["finish_reason"] if choices else None,
            metadata={
                "model_version": response.model_version,
                "safety_ratings": safety_ratings,
            },
        )

    def _choice(self, index: int, candidate: Candidate) -> Dict[str, Any]:
        parts = candidate.content.parts if candidate.content else []
        text = "".join(p.text for p in parts if isinstance(p, TextPart) and not p.is_thought)

        tool_calls = []
        for part in parts:
            if isinstance(part, FunctionCallPart):
                call = part.function_call
                tool_calls.append(
                    {
                        "id": call.id or f"call_{len(tool_calls)}",
                        "type": "function",
                        "function": {"name": call.name, "arguments": json.dumps(call.args)},
                    }
                )

        message: Dict[str, Any] = {
            "role": (candidate.content.role if candidate.content else None) or "assistant",
            "content": text,
        }
        if tool_calls:
            message["tool_calls"] = tool_calls

        return {
            "index": index,
            "message": message,
            "finish_reason": map_from_gemini_finish_reason(candidate.finish_reason),
        }

    # Universal -> Gemini response

    def from_universal(self, response: UniversalChatResponse) -> GeminiGenerateResponse:
        self._check_type(response, UniversalChatResponse, "from_universal")

        candidates = []
        for position, choice in enumerate(response.choices):
            message = choice.get("message") or {}
            parts: List[Any] = [TextPart(text=message.get("content") or choice.get("content") or "")]
            for tool_call in message.get("tool_calls") or []:
                parts.append(FunctionCallPart(function_call=self._function_call(tool_call)))
            candidates.append(
                Candidate(
                    content=Content(role=GeminiRole.MODEL.value, parts=parts),
                    finish_reason=map_to_gemini_finish_reason(
                        choice.get("finish_reason") or response.finish_reason
                    ),
                    index=choice.get("index", position),
                )
            )

        return GeminiGenerateResponse(
            candidates=candidates,
            usage_metadata=UsageMetadata(
                prompt_token_count=response.prompt_tokens,
                candidates_token_count=response.completion_tokens,
                total_token_count=response.usage.get("total_tokens", 0),
            ),
            model_version=response.model,
        )

    @staticmethod
    def _function_call(tool_call: Dict[str, Any]) -> FunctionCall:
        function = tool_call.get("function") or {}
        arguments = function.get("arguments") or "{}"
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments)
            except json.JSONDecodeError as e:
                raise TranslationError(
                    f"Tool call arguments for '{function.get('name')}' are not valid JSON"
                ) from e
        if not isinstance(arguments, dict):
            raise TranslationError(
                f"Tool call arguments for '{function.get('name')}' must be a JSON object"
            )
        return FunctionCall(name=function.get("name", ""), args=arguments, id=tool_call.get("id"))
