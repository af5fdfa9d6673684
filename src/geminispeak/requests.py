"""
Immutable Gemini request builders.

Requests never fail to construct on out-of-range values; call ``validate()``
to get the list of problems. Every ``with_*`` method returns a new request
and leaves the receiver untouched, so a request can be shared between
concurrent calls.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from geminispeak.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_SAFETY_THRESHOLD,
    EMBED_CONTENT_ACTION,
    GENERATE_CONTENT_ACTION,
    LEGACY_EMBEDDING_MODELS,
)
from geminispeak.endpoints import (
    build_model_url,
    check_api_response,
    embed_content,
    generate_content,
)
from geminispeak.exceptions import ConfigurationError, ValidationError
from geminispeak.responses import GeminiEmbeddingsResponse, GeminiGenerateResponse
from geminispeak.transport import HttpClient, open_http_client
from geminispeak.wire import (
    HARM_CATEGORIES,
    Content,
    FunctionCallingConfig,
    FunctionDeclaration,
    GenerationConfig,
    SafetySetting,
    TaskType,
    TextPart,
    ThinkingConfig,
    Tool,
    ToolConfig,
)

logger = logging.getLogger(__name__)

_GENERATION_FIELDS = (
    "temperature",
    "top_p",
    "top_k",
    "stop_sequences",
    "max_output_tokens",
    "candidate_count",
    "response_mime_type",
    "response_schema",
    "thinking_budget",
    "include_thoughts",
)


def _strip_models_prefix(model: str) -> str:
    return model[len("models/"):] if model.startswith("models/") else model


class _ImmutableRequest(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    def _replace(self, **changes: Any):
        values = {name: getattr(self, name) for name in type(self).model_fields}
        values.update(changes)
        return type(self).model_validate(values)


class GeminiGenerateRequest(_ImmutableRequest):
    """A generateContent request.

    Generation parameters can be given flattened (``temperature``, ``top_p``...)
    or as a ready ``generation_config``; set flattened fields are laid over the
    explicit config.
    """

    model: Optional[str] = None
    contents: List[Content] = Field(default_factory=list)
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL

    # Flattened generation config
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    stop_sequences: Optional[List[str]] = None
    max_output_tokens: Optional[int] = None
    candidate_count: Optional[int] = None
    response_mime_type: Optional[str] = None
    response_schema: Optional[Dict[str, Any]] = None
    thinking_budget: Optional[int] = None
    include_thoughts: Optional[bool] = None

    generation_config: Optional[GenerationConfig] = None
    tools: Optional[List[Tool]] = None
    tool_config: Optional[ToolConfig] = None
    system_instruction: Optional[Content] = None
    safety_settings: Optional[List[SafetySetting]] = None
    cached_content: Optional[str] = None

    # Functional updates

    def with_model(self, model: str) -> "GeminiGenerateRequest":
        return self._replace(model=model)

    def with_contents(self, contents: List[Union[Content, Dict[str, Any]]]) -> "GeminiGenerateRequest":
        return self._replace(contents=list(contents))

    def with_api_key(self, api_key: str) -> "GeminiGenerateRequest":
        return self._replace(api_key=api_key)

    def with_base_url(self, base_url: str) -> "GeminiGenerateRequest":
        return self._replace(base_url=base_url)

    def with_temperature(self, temperature: float) -> "GeminiGenerateRequest":
        return self._replace(temperature=temperature)

    def with_top_p(self, top_p: float) -> "GeminiGenerateRequest":
        return self._replace(top_p=top_p)

    def with_top_k(self, top_k: int) -> "GeminiGenerateRequest":
        return self._replace(top_k=top_k)

    def with_stop_sequences(self, stop_sequences: List[str]) -> "GeminiGenerateRequest":
        return self._replace(stop_sequences=list(stop_sequences))

    def with_max_output_tokens(self, max_output_tokens: int) -> "GeminiGenerateRequest":
        return self._replace(max_output_tokens=max_output_tokens)

    def with_candidate_count(self, candidate_count: int) -> "GeminiGenerateRequest":
        return self._replace(candidate_count=candidate_count)

    def with_response_mime_type(self, mime_type: str) -> "GeminiGenerateRequest":
        return self._replace(response_mime_type=mime_type)

    def with_response_schema(self, schema: Dict[str, Any]) -> "GeminiGenerateRequest":
        return self._replace(response_schema=schema)

    def with_thinking_budget(self, budget: int) -> "GeminiGenerateRequest":
        return self._replace(thinking_budget=budget)

    def with_include_thoughts(self, include_thoughts: bool) -> "GeminiGenerateRequest":
        return self._replace(include_thoughts=include_thoughts)

    def with_generation_config(
        self, config: Union[GenerationConfig, Dict[str, Any]]
    ) -> "GeminiGenerateRequest":
        return self._replace(generation_config=config)

    def with_tools(self, tools: List[Union[Tool, Dict[str, Any]]]) -> "GeminiGenerateRequest":
        return self._replace(tools=list(tools))

    def with_tool_config(self, tool_config: Union[ToolConfig, Dict[str, Any]]) -> "GeminiGenerateRequest":
        return self._replace(tool_config=tool_config)

    def with_system_instruction(
        self, instruction: Union[Content, Dict[str, Any]]
    ) -> "GeminiGenerateRequest":
        return self._replace(system_instruction=instruction)

    def with_safety_settings(
        self, settings: List[Union[SafetySetting, Dict[str, Any]]]
    ) -> "GeminiGenerateRequest":
        return self._replace(safety_settings=list(settings))

    def with_cached_content(self, cached_content: str) -> "GeminiGenerateRequest":
        return self._replace(cached_content=cached_content)

    # Convenience updates

    def with_system_prompt(self, text: str) -> "GeminiGenerateRequest":
        return self.with_system_instruction(Content(parts=[TextPart(text=text)]))

    def with_function_calling_mode(self, mode: str) -> "GeminiGenerateRequest":
        mode = getattr(mode, "value", mode)
        return self.with_tool_config(
            ToolConfig(function_calling_config=FunctionCallingConfig(mode=mode))
        )

    def with_thinking_config(self, budget: int, include_thoughts: bool = False) -> "GeminiGenerateRequest":
        return self._replace(thinking_budget=budget, include_thoughts=include_thoughts)

    def with_json_response(self, schema: Optional[Dict[str, Any]] = None) -> "GeminiGenerateRequest":
        changes: Dict[str, Any] = {"response_mime_type": "application/json"}
        if schema:
            changes["response_schema"] = schema
        return self._replace(**changes)

    def add_tool(self, declaration: Union[FunctionDeclaration, Dict[str, Any]]) -> "GeminiGenerateRequest":
        """Append a function declaration to the first tool, creating it if needed."""
        if isinstance(declaration, dict):
            declaration = FunctionDeclaration.model_validate(declaration)
        tools = list(self.tools or [])
        if tools:
            first = tools[0]
            tools[0] = Tool(function_declarations=[*first.function_declarations, declaration])
        else:
            tools = [Tool(function_declarations=[declaration])]
        return self._replace(tools=tools)

    def with_safety_level(self, level: str = DEFAULT_SAFETY_THRESHOLD) -> "GeminiGenerateRequest":
        return self.with_safety_settings(
            [SafetySetting(category=category, threshold=level) for category in HARM_CATEGORIES]
        )

    # Inspection

    def validate(self) -> List[ValidationError]:
        """Return every problem with this request; an empty list means it can be sent."""
        errors: List[ValidationError] = []
        if not self.model:
            errors.append(ValidationError("model", "Model is required"))
        if not self.contents:
            errors.append(ValidationError("contents", "Contents are required"))
        if not self.api_key:
            errors.append(ValidationError("api_key", "API key is required"))
        config = self.effective_generation_config() or GenerationConfig()
        if config.temperature is not None and not 0 <= config.temperature <= 2:
            errors.append(ValidationError("temperature", "Temperature must be between 0 and 2"))
        if config.top_p is not None and not 0 <= config.top_p <= 1:
            errors.append(ValidationError("top_p", "TopP must be between 0 and 1"))
        if config.top_k is not None and config.top_k < 1:
            errors.append(ValidationError("top_k", "TopK must be >= 1"))
        if config.max_output_tokens is not None and config.max_output_tokens < 1:
            errors.append(ValidationError("max_output_tokens", "MaxOutputTokens must be >= 1"))
        if config.candidate_count is not None and not 1 <= config.candidate_count <= 8:
            errors.append(ValidationError("candidate_count", "CandidateCount must be between 1 and 8"))
        return errors

    def is_valid(self) -> bool:
        return not self.validate()

    def build_api_url(self) -> str:
        return build_model_url(self.base_url, self.model or "", GENERATE_CONTENT_ACTION)

    def get_tool_count(self) -> int:
        return sum(len(tool.function_declarations) for tool in self.tools or [])

    def effective_generation_config(self) -> Optional[GenerationConfig]:
        """The explicit generation config with any flattened fields laid over it."""
        overrides: Dict[str, Any] = {
            name: getattr(self, name)
            for name in _GENERATION_FIELDS
            if name not in ("thinking_budget", "include_thoughts") and getattr(self, name) is not None
        }
        base = self.generation_config
        if self.thinking_budget is not None or self.include_thoughts is not None:
            thinking: Dict[str, Any] = {}
            if base is not None and base.thinking_config is not None:
                thinking = base.thinking_config.model_dump(exclude_none=True)
            if self.thinking_budget is not None:
                thinking["thinking_budget"] = self.thinking_budget
            if self.include_thoughts is not None:
                thinking["include_thoughts"] = self.include_thoughts
            overrides["thinking_config"] = ThinkingConfig.model_validate(thinking)

        if base is None:
            return GenerationConfig(**overrides) if overrides else None
        if not overrides:
            return base
        return GenerationConfig.model_validate({**base.model_dump(exclude_none=True), **overrides})

    def to_payload(self) -> Dict[str, Any]:
        """The JSON body for generateContent; absent fields are omitted."""
        payload: Dict[str, Any] = {"contents": [content.to_dict() for content in self.contents]}
        generation_config = self.effective_generation_config()
        if generation_config is not None:
            payload["generationConfig"] = generation_config.to_dict()
        if self.tools:
            payload["tools"] = [tool.to_dict() for tool in self.tools]
        if self.tool_config is not None:
            payload["toolConfig"] = self.tool_config.to_dict()
        if self.system_instruction is not None:
            payload["systemInstruction"] = self.system_instruction.to_dict()
        if self.safety_settings:
            payload["safetySettings"] = [setting.to_dict() for setting in self.safety_settings]
        if self.cached_content:
            payload["cachedContent"] = self.cached_content
        return payload

    def to_debug_dict(self) -> Dict[str, Any]:
        """Loggable summary; never contains the API key."""
        return {
            "model": self.model,
            "url": self.build_api_url(),
            "contents_count": len(self.contents),
            "temperature": self.temperature,
            "max_output_tokens": self.max_output_tokens,
            "top_p": self.top_p,
            "top_k": self.top_k,
            "candidate_count": self.candidate_count,
            "response_mime_type": self.response_mime_type,
            "thinking_budget": self.thinking_budget,
            "include_thoughts": self.include_thoughts,
            "has_tools": bool(self.tools),
            "has_system_instruction": self.system_instruction is not None,
            "has_safety_settings": bool(self.safety_settings),
            "has_cached_content": bool(self.cached_content),
            "tool_count": self.get_tool_count(),
        }

    # Network

    async def post(self, http_client: Optional[HttpClient] = None) -> GeminiGenerateResponse:
        """
        Send the request to generateContent.

        Args:
            http_client: Client to use; a temporary httpx client is created if omitted

        Returns:
            The parsed response

        Raises:
            ConfigurationError: If model, contents or API key is missing (no I/O happens)
            TransportError: If the HTTP exchange fails
            APIError: On a non-2xx status or a non-JSON body
        """
        missing = [e.field for e in self.validate() if e.field in ("model", "contents", "api_key")]
        if missing:
            raise ConfigurationError(
                f"Cannot send generateContent request, missing: {', '.join(missing)}"
            )

        logger.debug(f"Sending generateContent request: {self.to_debug_dict()}")
        async with open_http_client(http_client) as client:
            response = await generate_content(
                client, self.build_api_url(), self.api_key, self.to_payload()
            )
        body = check_api_response(response)
        return GeminiGenerateResponse.from_api_response(
            body,
            headers=response.headers,
            status_code=response.status_code,
            raw_body=response.raw_body,
        )

    send = post


class GeminiEmbeddingsRequest(_ImmutableRequest):
    """An embedContent request for one content made of text parts."""

    model: Optional[str] = None
    content: Content = Field(default_factory=Content)
    task_type: Optional[str] = None
    title: Optional[str] = None
    output_dimensionality: Optional[int] = None
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL

    @classmethod
    def from_text(cls, model: str, text: str, **kwargs: Any) -> "GeminiEmbeddingsRequest":
        return cls(model=model, content=Content(parts=[TextPart(text=text)]), **kwargs)

    @classmethod
    def from_parts(
        cls, model: str, parts: List[Union[TextPart, Dict[str, Any]]], **kwargs: Any
    ) -> "GeminiEmbeddingsRequest":
        return cls(model=model, content=Content(parts=list(parts)), **kwargs)

    # Functional updates

    def with_model(self, model: str) -> "GeminiEmbeddingsRequest":
        return self._replace(model=model)

    def with_content(self, content: Union[Content, Dict[str, Any]]) -> "GeminiEmbeddingsRequest":
        return self._replace(content=content)

    def with_task_type(self, task_type: Optional[Union[TaskType, str]]) -> "GeminiEmbeddingsRequest":
        return self._replace(task_type=getattr(task_type, "value", task_type))

    def with_title(self, title: Optional[str]) -> "GeminiEmbeddingsRequest":
        return self._replace(title=title)

    def with_output_dimensionality(self, dimensions: Optional[int]) -> "GeminiEmbeddingsRequest":
        return self._replace(output_dimensionality=dimensions)

    def with_api_key(self, api_key: str) -> "GeminiEmbeddingsRequest":
        return self._replace(api_key=api_key)

    def with_base_url(self, base_url: str) -> "GeminiEmbeddingsRequest":
        return self._replace(base_url=base_url)

    def add_text_part(self, text: str) -> "GeminiEmbeddingsRequest":
        return self._replace(content=Content(parts=[*self.content.parts, TextPart(text=text)]))

    def replace_text(self, text: str) -> "GeminiEmbeddingsRequest":
        return self._replace(content=Content(parts=[TextPart(text=text)]))

    # Inspection

    def _texts(self) -> List[str]:
        return [part.text for part in self.content.parts if isinstance(part, TextPart)]

    def is_valid_task_type(self) -> bool:
        if self.task_type is None:
            return True
        return self.task_type in {task_type.value for task_type in TaskType}

    def is_valid_output_dimensionality(self) -> bool:
        return self.output_dimensionality is None or self.output_dimensionality > 0

    def has_title(self) -> bool:
        return bool(self.title and self.title.strip())

    def requires_title(self) -> bool:
        return self.task_type == TaskType.RETRIEVAL_DOCUMENT.value

    def is_valid_configuration(self) -> bool:
        """
        Whether the request is well formed for embedding.

        False for an unknown task type, non-positive dimensionality,
        RETRIEVAL_DOCUMENT without a title, or content that is empty or has
        a part without non-blank text.
        """
        if not self.is_valid_task_type() or not self.is_valid_output_dimensionality():
            return False
        if self.requires_title() and not self.has_title():
            return False
        if not self.content.parts:
            return False
        return all(isinstance(part, TextPart) and part.text.strip() for part in self.content.parts)

    def supports_output_dimensionality(self) -> bool:
        return self.model not in LEGACY_EMBEDDING_MODELS

    def supports_task_type(self) -> bool:
        return self.model not in LEGACY_EMBEDDING_MODELS

    def get_content_text_count(self) -> int:
        return len(self._texts())

    def get_total_text_length(self) -> int:
        return sum(len(text) for text in self._texts())

    def get_estimated_token_count(self) -> int:
        """Rough estimate at four characters per token."""
        return math.ceil(self.get_total_text_length() / 4)

    def validate(self) -> List[ValidationError]:
        errors: List[ValidationError] = []
        if not self.model:
            errors.append(ValidationError("model", "Model is required"))
        if not self.content.parts:
            errors.append(ValidationError("content", "Content is required"))
        if not self.api_key:
            errors.append(ValidationError("api_key", "API key is required"))
        if not self.is_valid_task_type():
            errors.append(ValidationError("task_type", f"Unknown task type '{self.task_type}'"))
        if not self.is_valid_output_dimensionality():
            errors.append(
                ValidationError("output_dimensionality", "OutputDimensionality must be > 0")
            )
        return errors

    def is_valid(self) -> bool:
        return not self.validate()

    def build_api_url(self) -> str:
        return build_model_url(
            self.base_url, _strip_models_prefix(self.model or ""), EMBED_CONTENT_ACTION
        )

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": f"models/{_strip_models_prefix(self.model or '')}",
            "content": self.content.to_dict(),
        }
        if self.task_type is not None:
            payload["taskType"] = self.task_type
        if self.title is not None:
            payload["title"] = self.title
        if self.output_dimensionality is not None:
            payload["outputDimensionality"] = self.output_dimensionality
        return payload

    def to_debug_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "url": self.build_api_url(),
            "part_count": len(self.content.parts),
            "total_text_length": self.get_total_text_length(),
            "task_type": self.task_type,
            "has_title": self.has_title(),
            "output_dimensionality": self.output_dimensionality,
        }

    # Network

    async def post(self, http_client: Optional[HttpClient] = None) -> GeminiEmbeddingsResponse:
        """
        Send the request to embedContent.

        Raises:
            ConfigurationError: If model, content or API key is missing (no I/O happens)
            TransportError: If the HTTP exchange fails
            APIError: On a non-2xx status or a non-JSON body
        """
        missing = [e.field for e in self.validate() if e.field in ("model", "content", "api_key")]
        if missing:
            raise ConfigurationError(
                f"Cannot send embedContent request, missing: {', '.join(missing)}"
            )

        logger.debug(f"Sending embedContent request: {self.to_debug_dict()}")
        async with open_http_client(http_client) as client:
            response = await embed_content(
                client, self.build_api_url(), self.api_key, self.to_payload()
            )
        body = check_api_response(response)
        return GeminiEmbeddingsResponse.from_api_response(
            body, headers=response.headers, status_code=response.status_code
        )

    send = post
