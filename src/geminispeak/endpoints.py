"""
Gemini REST endpoint invokers and the pipeline nodes that drive them.

Chat runs ``PrepareChatRequestNode -call-> GeminiMessagesEndpointNode
-wrap-up-> PrepareChatResultNode``; embeddings follows the same three steps.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from geminispeak.builders import content_from_entry, declaration_from_tool
from geminispeak.constants import (
    ACTION_CALL,
    ACTION_FINISHED,
    ACTION_WRAP_UP,
    API_KEY_HEADER,
    DEFAULT_BASE_URL,
    EMBED_CONTENT_ACTION,
    GENERATE_CONTENT_ACTION,
)
from geminispeak.exceptions import APIError, ConfigurationError
from geminispeak.pipeline import ChatContext, EmbeddingsContext, Flow, Node
from geminispeak.transport import HttpClient, HttpResponse, open_http_client
from geminispeak.wire import Content, GeminiCallResult, GeminiEmbeddingResult, TextPart, Tool

logger = logging.getLogger(__name__)


def build_model_url(base_url: str, model: str, action: str) -> str:
    """``{base_url}/models/{model}:{action}`` with the base URL's trailing slash stripped."""
    return f"{base_url.rstrip('/')}/models/{model}:{action}"


def build_headers(api_key: str) -> Dict[str, str]:
    return {"Content-Type": "application/json", API_KEY_HEADER: api_key}


async def _post(
    http_client: HttpClient, url: str, headers: Dict[str, str], body: Dict[str, Any]
) -> HttpResponse:
    logger.debug(f"POST {url} ({len(body)} top-level fields)")
    response = await http_client.post(url, headers, body)
    logger.debug(f"POST {url} -> HTTP {response.status_code}")
    return response


async def generate_content(
    http_client: HttpClient, url: str, api_key: str, body: Dict[str, Any]
) -> HttpResponse:
    """POST a generateContent body and return the raw HTTP response."""
    return await _post(http_client, url, build_headers(api_key), body)


async def embed_content(
    http_client: HttpClient, url: str, api_key: str, body: Dict[str, Any]
) -> HttpResponse:
    """POST an embedContent body and return the raw HTTP response."""
    return await _post(http_client, url, build_headers(api_key), body)


def check_api_response(response: HttpResponse) -> Dict[str, Any]:
    """
    Return the JSON body of a successful response.

    Raises:
        APIError: On a non-2xx status or an absent/non-object body
    """
    body = response.json_body
    if not response.ok:
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            detail = error["message"]
        else:
            detail = response.raw_body[:200] or "no response body"
        raise APIError(
            f"Gemini API returned HTTP {response.status_code}: {detail}",
            status_code=response.status_code,
            error=error if isinstance(error, dict) else None,
        )
    if not isinstance(body, dict):
        raise APIError(
            "Gemini API returned an empty or non-JSON body",
            status_code=response.status_code,
        )
    return body


def _wire_content(item: Any) -> Dict[str, Any]:
    if isinstance(item, Content):
        return item.to_dict()
    if isinstance(item, dict):
        return item
    return content_from_entry(item).to_dict()


def _wire_tools(tools: List[Any]) -> List[Dict[str, Any]]:
    """Group universal tool definitions into one declaration block; wire tools pass through."""
    wire_tools: List[Dict[str, Any]] = []
    declarations: List[Dict[str, Any]] = []
    for tool in tools:
        if isinstance(tool, Tool):
            wire_tools.append(tool.to_dict())
        elif isinstance(tool, dict) and "functionDeclarations" in tool:
            wire_tools.append(tool)
        else:
            declarations.append(declaration_from_tool(tool).to_dict())
    if declarations:
        wire_tools.insert(0, {"functionDeclarations": declarations})
    return wire_tools


def _system_instruction(system_prompt: Any) -> Dict[str, Any]:
    if isinstance(system_prompt, Content):
        return system_prompt.to_dict()
    if isinstance(system_prompt, str):
        return Content(parts=[TextPart(text=system_prompt)]).to_dict()
    return system_prompt


# Chat nodes


class PrepareChatRequestNode(Node[ChatContext]):
    """Turns the available parameters into request headers and body."""

    async def prep(self, context: ChatContext) -> Dict[str, Any]:
        return context.available_parameters

    async def exec(self, params: Dict[str, Any]) -> Dict[str, Any]:
        if not params.get("api_key"):
            raise ConfigurationError("API key is required for the request.")
        if not params.get("model"):
            raise ConfigurationError("Model is required for the request.")
        if not params.get("contents"):
            raise ConfigurationError("Contents are required for the request.")

        body: Dict[str, Any] = {"contents": list(params["contents"])}
        if params.get("system_prompt"):
            body["systemInstruction"] = params["system_prompt"]
        if params.get("tools"):
            body["tools"] = list(params["tools"])

        generation_config: Dict[str, Any] = {}
        if params.get("temperature") is not None:
            generation_config["temperature"] = params["temperature"]
        if params.get("max_tokens") is not None:
            generation_config["maxOutputTokens"] = params["max_tokens"]
        if generation_config:
            body["generationConfig"] = generation_config

        return {"headers": build_headers(params["api_key"]), "body": body}

    async def post(self, context: ChatContext, prep_result: Any, exec_result: Any) -> str:
        context.prepared_request = exec_result
        return ACTION_CALL


class GeminiMessagesEndpointNode(Node[ChatContext]):
    """Converts conversation entries and tools to wire shapes and calls generateContent."""

    def __init__(self, url: str, http_client: HttpClient):
        super().__init__()
        self.url = url
        self.http_client = http_client

    async def prep(self, context: ChatContext) -> Dict[str, Any]:
        return context.prepared_request

    async def exec(self, prepared: Dict[str, Any]) -> HttpResponse:
        body = dict(prepared["body"])
        body["contents"] = [_wire_content(item) for item in body["contents"]]
        if "tools" in body:
            body["tools"] = _wire_tools(body["tools"])
        if "systemInstruction" in body:
            body["systemInstruction"] = _system_instruction(body["systemInstruction"])
        return await _post(self.http_client, self.url, prepared["headers"], body)

    async def post(self, context: ChatContext, prep_result: Any, exec_result: HttpResponse) -> str:
        context.model_response = exec_result
        return ACTION_WRAP_UP


class PrepareChatResultNode(Node[ChatContext]):
    async def prep(self, context: ChatContext) -> HttpResponse:
        return context.model_response

    async def exec(self, response: HttpResponse) -> GeminiCallResult:
        return GeminiCallResult.model_validate(check_api_response(response))

    async def post(self, context: ChatContext, prep_result: Any, exec_result: Any) -> str:
        context.result = exec_result
        return ACTION_FINISHED


# Embeddings nodes


class PrepareEmbeddingsRequestNode(Node[EmbeddingsContext]):
    async def prep(self, context: EmbeddingsContext) -> Dict[str, Any]:
        return context.available_parameters

    async def exec(self, params: Dict[str, Any]) -> Dict[str, Any]:
        if not params.get("api_key"):
            raise ConfigurationError("API key is required for the request.")
        if not params.get("model"):
            raise ConfigurationError("Model is required for the request.")
        if not params.get("content"):
            raise ConfigurationError("Content is required for the request.")

        model = params["model"]
        content = params["content"]
        if isinstance(content, str):
            content = Content(parts=[TextPart(text=content)])
        body: Dict[str, Any] = {
            "model": model if model.startswith("models/") else f"models/{model}",
            "content": content.to_dict() if isinstance(content, Content) else content,
        }
        task_type = params.get("task_type")
        if task_type:
            body["taskType"] = getattr(task_type, "value", task_type)
        if params.get("title"):
            body["title"] = params["title"]
        if params.get("output_dimensionality") is not None:
            body["outputDimensionality"] = params["output_dimensionality"]

        return {"headers": build_headers(params["api_key"]), "body": body}

    async def post(self, context: EmbeddingsContext, prep_result: Any, exec_result: Any) -> str:
        context.prepared_request = exec_result
        return ACTION_CALL


class GeminiEmbeddingsEndpointNode(Node[EmbeddingsContext]):
    def __init__(self, url: str, http_client: HttpClient):
        super().__init__()
        self.url = url
        self.http_client = http_client

    async def prep(self, context: EmbeddingsContext) -> Dict[str, Any]:
        return context.prepared_request

    async def exec(self, prepared: Dict[str, Any]) -> HttpResponse:
        return await _post(self.http_client, self.url, prepared["headers"], prepared["body"])

    async def post(
        self, context: EmbeddingsContext, prep_result: Any, exec_result: HttpResponse
    ) -> str:
        context.model_response = exec_result
        return ACTION_WRAP_UP


class PrepareEmbeddingsResultNode(Node[EmbeddingsContext]):
    async def prep(self, context: EmbeddingsContext) -> HttpResponse:
        return context.model_response

    async def exec(self, response: HttpResponse) -> GeminiEmbeddingResult:
        return GeminiEmbeddingResult.model_validate(check_api_response(response))

    async def post(self, context: EmbeddingsContext, prep_result: Any, exec_result: Any) -> str:
        context.result = exec_result
        return ACTION_FINISHED


# Endpoint value objects


@dataclass(frozen=True)
class ChatEndpoint:
    """A generateContent call described as a value; :meth:`handle` runs it."""

    api_key: str
    model: str
    contents: List[Any]
    url: str = DEFAULT_BASE_URL
    system_prompt: Optional[Union[Content, Dict[str, Any], str]] = None
    max_tokens: Optional[int] = None
    tools: Optional[List[Any]] = None
    temperature: Optional[float] = None
    http_client: Optional[HttpClient] = field(default=None, compare=False, repr=False)

    @property
    def endpoint_url(self) -> str:
        return build_model_url(self.url, self.model, GENERATE_CONTENT_ACTION)

    def parameters(self) -> Dict[str, Any]:
        params = {
            "api_key": self.api_key,
            "model": self.model,
            "contents": self.contents,
            "system_prompt": self.system_prompt,
            "max_tokens": self.max_tokens,
            "tools": self.tools,
            "temperature": self.temperature,
        }
        return {key: value for key, value in params.items() if value is not None}

    async def handle(self) -> GeminiCallResult:
        async with open_http_client(self.http_client) as client:
            start = PrepareChatRequestNode()
            start.next(GeminiMessagesEndpointNode(self.endpoint_url, client), ACTION_CALL).next(
                PrepareChatResultNode(), ACTION_WRAP_UP
            )
            context = await Flow(start).run(ChatContext(available_parameters=self.parameters()))
        return context.result


@dataclass(frozen=True)
class EmbedEndpoint:
    """An embedContent call described as a value; :meth:`handle` runs it."""

    api_key: str
    model: str
    content: Union[Content, Dict[str, Any], str]
    url: str = DEFAULT_BASE_URL
    task_type: Optional[str] = None
    title: Optional[str] = None
    output_dimensionality: Optional[int] = None
    http_client: Optional[HttpClient] = field(default=None, compare=False, repr=False)

    @property
    def endpoint_url(self) -> str:
        model = self.model or ""
        model = model[len("models/"):] if model.startswith("models/") else model
        return build_model_url(self.url, model, EMBED_CONTENT_ACTION)

    def parameters(self) -> Dict[str, Any]:
        params = {
            "api_key": self.api_key,
            "model": self.model,
            "content": self.content,
            "task_type": self.task_type,
            "title": self.title,
            "output_dimensionality": self.output_dimensionality,
        }
        return {key: value for key, value in params.items() if value is not None}

    async def handle(self) -> GeminiEmbeddingResult:
        async with open_http_client(self.http_client) as client:
            start = PrepareEmbeddingsRequestNode()
            start.next(GeminiEmbeddingsEndpointNode(self.endpoint_url, client), ACTION_CALL).next(
                PrepareEmbeddingsResultNode(), ACTION_WRAP_UP
            )
            context = await Flow(start).run(
                EmbeddingsContext(available_parameters=self.parameters())
            )
        return context.result
