"""Unit tests for endpoint invokers and the chat/embeddings pipelines."""

from unittest.mock import AsyncMock

import pytest

from geminispeak.builders import SystemPromptBuilder
from geminispeak.endpoints import (
    ChatEndpoint,
    EmbedEndpoint,
    build_model_url,
    check_api_response,
    embed_content,
    generate_content,
)
from geminispeak.exceptions import APIError, ConfigurationError, TranslationError
from geminispeak.schemas import TextEntry, ToolCallEntry, ToolDefinition, ToolResultEntry
from geminispeak.transport import HttpResponse
from geminispeak.wire import GeminiCallResult, GeminiEmbeddingResult, Tool

BASE_URL = "https://example.test/v1beta/"


class TestHelpers:
    def test_build_model_url_strips_trailing_slash(self):
        assert build_model_url(BASE_URL, "gemini-2.5-flash", "generateContent") == (
            "https://example.test/v1beta/models/gemini-2.5-flash:generateContent"
        )

    @pytest.mark.asyncio
    async def test_generate_content_returns_raw_response(self, http_client_factory):
        client = http_client_factory({"error": {"message": "nope"}}, status_code=500)

        response = await generate_content(client, "https://example.test/x", "k", {"contents": []})

        assert response.status_code == 500
        assert client.last_call["headers"] == {
            "Content-Type": "application/json",
            "x-goog-api-key": "k",
        }

    @pytest.mark.asyncio
    async def test_embed_content_posts_once(self):
        http_client = AsyncMock()
        http_client.post.return_value = HttpResponse(200, json_body={"embedding": {"values": [1.0]}})

        response = await embed_content(http_client, "https://example.test/e", "k", {"model": "models/m"})

        assert response.json_body == {"embedding": {"values": [1.0]}}
        http_client.post.assert_awaited_once_with(
            "https://example.test/e",
            {"Content-Type": "application/json", "x-goog-api-key": "k"},
            {"model": "models/m"},
        )

    def test_check_api_response_ok(self):
        assert check_api_response(HttpResponse(200, json_body={"a": 1})) == {"a": 1}

    def test_check_api_response_error_without_body(self):
        with pytest.raises(APIError) as exc_info:
            check_api_response(HttpResponse(503, raw_body="Service Unavailable"))

        assert exc_info.value.status_code == 503
        assert exc_info.value.error is None
        assert "Service Unavailable" in str(exc_info.value)

    def test_check_api_response_non_object_body(self):
        with pytest.raises(APIError):
            check_api_response(HttpResponse(200, json_body=["not", "an", "object"]))


class TestChatEndpoint:
    @pytest.mark.asyncio
    async def test_full_request_shape(self, http_client_factory, generate_body):
        client = http_client_factory(generate_body)
        endpoint = ChatEndpoint(
            api_key="k",
            model="gemini-2.5-flash",
            contents=[
                TextEntry(role="user", content="Lights off please"),
                ToolCallEntry(tool="lights_off", input={"room": "kitchen"}),
                ToolResultEntry(tool="lights_off", result="done"),
            ],
            url=BASE_URL,
            system_prompt=SystemPromptBuilder().add_text("Be brief.").render(),
            tools=[
                {
                    "name": "lights_off",
                    "description": "Turn the lights off",
                    "input_schema": {"type": "object", "properties": {"room": {"type": "string"}}},
                },
                ToolDefinition(name="lights_on"),
            ],
            temperature=0.7,
            max_tokens=128,
            http_client=client,
        )

        result = await endpoint.handle()

        assert isinstance(result, GeminiCallResult)
        assert result.candidates[0].content.parts[0].text == "t1"

        call = client.last_call
        assert call["url"] == "https://example.test/v1beta/models/gemini-2.5-flash:generateContent"
        assert call["headers"]["x-goog-api-key"] == "k"

        body = call["json_body"]
        assert body["contents"] == [
            {"role": "user", "parts": [{"text": "Lights off please"}]},
            {"role": "model", "parts": [{"functionCall": {"name": "lights_off", "args": {"room": "kitchen"}}}]},
            {
                "role": "function",
                "parts": [
                    {
                        "functionResponse": {
                            "name": "lights_off",
                            "response": {"name": "lights_off", "content": "done"},
                        }
                    }
                ],
            },
        ]
        assert body["tools"] == [
            {
                "functionDeclarations": [
                    {
                        "name": "lights_off",
                        "description": "Turn the lights off",
                        "parameters": {"type": "object", "properties": {"room": {"type": "string"}}},
                    },
                    {"name": "lights_on", "description": "", "parameters": {}},
                ]
            }
        ]
        assert body["systemInstruction"] == {"parts": [{"text": "Be brief."}]}
        assert body["generationConfig"] == {"temperature": 0.7, "maxOutputTokens": 128}

    @pytest.mark.asyncio
    async def test_minimal_request(self, http_client_factory, generate_body):
        client = http_client_factory(generate_body)
        endpoint = ChatEndpoint(
            api_key="k",
            model="m",
            contents=[{"role": "user", "parts": [{"text": "hi"}]}],
            system_prompt="Plain string prompt",
            http_client=client,
        )

        await endpoint.handle()

        body = client.last_call["json_body"]
        assert set(body) == {"contents", "systemInstruction"}
        assert body["systemInstruction"] == {"parts": [{"text": "Plain string prompt"}]}

    @pytest.mark.asyncio
    async def test_wire_tools_pass_through(self, http_client_factory, generate_body):
        client = http_client_factory(generate_body)
        wire_tool = Tool.model_validate({"functionDeclarations": [{"name": "native"}]})
        endpoint = ChatEndpoint(
            api_key="k",
            model="m",
            contents=[TextEntry(role="user", content="hi")],
            tools=[wire_tool, {"name": "universal"}],
            http_client=client,
        )

        await endpoint.handle()

        assert client.last_call["json_body"]["tools"] == [
            {"functionDeclarations": [{"name": "universal", "description": "", "parameters": {}}]},
            {"functionDeclarations": [{"name": "native"}]},
        ]

    @pytest.mark.asyncio
    async def test_missing_api_key(self, http_client_factory):
        client = http_client_factory()
        endpoint = ChatEndpoint(
            api_key="", model="m", contents=[TextEntry(role="user", content="hi")], http_client=client
        )

        with pytest.raises(ConfigurationError, match="API key"):
            await endpoint.handle()

        assert client.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("model", ["", None])
    async def test_missing_model(self, http_client_factory, model):
        client = http_client_factory()
        endpoint = ChatEndpoint(
            api_key="k", model=model, contents=[TextEntry(role="user", content="hi")], http_client=client
        )

        with pytest.raises(ConfigurationError, match="Model"):
            await endpoint.handle()

        assert client.calls == []

    @pytest.mark.asyncio
    async def test_missing_contents(self, http_client_factory):
        client = http_client_factory()
        endpoint = ChatEndpoint(api_key="k", model="m", contents=[], http_client=client)

        with pytest.raises(ConfigurationError, match="Contents"):
            await endpoint.handle()

    @pytest.mark.asyncio
    async def test_unknown_entry_type(self, http_client_factory):
        client = http_client_factory()
        endpoint = ChatEndpoint(api_key="k", model="m", contents=[object()], http_client=client)

        with pytest.raises(TranslationError):
            await endpoint.handle()

        assert client.calls == []

    @pytest.mark.asyncio
    async def test_api_error(self, http_client_factory):
        client = http_client_factory({"error": {"code": 500, "message": "internal"}}, status_code=500)
        endpoint = ChatEndpoint(
            api_key="k", model="m", contents=[TextEntry(role="user", content="hi")], http_client=client
        )

        with pytest.raises(APIError, match="internal"):
            await endpoint.handle()

    def test_parameters_omit_absent_values(self):
        endpoint = ChatEndpoint(api_key="k", model="m", contents=["x"])

        assert endpoint.parameters() == {"api_key": "k", "model": "m", "contents": ["x"]}


class TestEmbedEndpoint:
    @pytest.mark.asyncio
    async def test_request_shape(self, http_client_factory, embedding_body):
        client = http_client_factory(embedding_body)
        endpoint = EmbedEndpoint(
            api_key="k",
            model="text-embedding-004",
            content="hello",
            url=BASE_URL,
            task_type="RETRIEVAL_QUERY",
            output_dimensionality=64,
            http_client=client,
        )

        result = await endpoint.handle()

        assert isinstance(result, GeminiEmbeddingResult)
        assert result.embedding.values == (0.1, 0.2, 0.3)
        call = client.last_call
        assert call["url"] == "https://example.test/v1beta/models/text-embedding-004:embedContent"
        assert call["json_body"] == {
            "model": "models/text-embedding-004",
            "content": {"parts": [{"text": "hello"}]},
            "taskType": "RETRIEVAL_QUERY",
            "outputDimensionality": 64,
        }

    @pytest.mark.asyncio
    async def test_prefixed_model_and_title(self, http_client_factory, embedding_body):
        client = http_client_factory(embedding_body)
        endpoint = EmbedEndpoint(
            api_key="k",
            model="models/text-embedding-004",
            content={"parts": [{"text": "doc"}]},
            task_type="RETRIEVAL_DOCUMENT",
            title="Doc",
            http_client=client,
        )

        await endpoint.handle()

        call = client.last_call
        assert call["url"].endswith("/models/text-embedding-004:embedContent")
        assert call["json_body"]["model"] == "models/text-embedding-004"
        assert call["json_body"]["title"] == "Doc"

    @pytest.mark.asyncio
    async def test_missing_content(self, http_client_factory):
        client = http_client_factory()
        endpoint = EmbedEndpoint(api_key="k", model="m", content="", http_client=client)

        with pytest.raises(ConfigurationError, match="Content"):
            await endpoint.handle()

        assert client.calls == []
