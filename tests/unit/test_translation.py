"""Unit tests for the chat translation driver."""

import json
import logging

import pytest

from geminispeak.base import GeminiConfig
from geminispeak.exceptions import TranslationError
from geminispeak.requests import GeminiGenerateRequest
from geminispeak.responses import GeminiGenerateResponse
from geminispeak.schemas import (
    ChatRole,
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
from geminispeak.services.translation import (
    GeminiTranslationDriver,
    map_from_gemini_finish_reason,
    map_to_gemini_finish_reason,
)
from geminispeak.wire import FinishReason, FunctionCallPart, FunctionResponsePart, TextPart


@pytest.fixture
def driver():
    return GeminiTranslationDriver()


@pytest.fixture
def lights_tool():
    return ToolDefinition(
        name="lights_off",
        description="Turn the lights off",
        input_schema={
            "type": "object",
            "properties": {"room": {"type": "string"}},
            "required": ["room"],
        },
    )


class TestFinishReasonMapping:
    @pytest.mark.parametrize(
        "universal,gemini",
        [
            ("stop", "STOP"),
            ("length", "MAX_TOKENS"),
            ("tool_calls", "FUNCTION_CALL"),
            ("content_filter", "SAFETY"),
            ("something_else", "STOP"),
            (None, "STOP"),
        ],
    )
    def test_to_gemini(self, universal, gemini):
        assert map_to_gemini_finish_reason(universal) == gemini

    @pytest.mark.parametrize(
        "gemini,universal",
        [
            ("STOP", "stop"),
            ("MAX_TOKENS", "length"),
            ("SAFETY", "content_filter"),
            ("RECITATION", "content_filter"),
            ("LANGUAGE", "content_filter"),
            ("OTHER", "stop"),
        ],
    )
    def test_from_gemini(self, gemini, universal):
        assert map_from_gemini_finish_reason(gemini) == universal

    def test_from_gemini_accepts_enum(self):
        assert map_from_gemini_finish_reason(FinishReason.MAX_TOKENS) == "length"

    def test_unrecognized_reason_passes_through(self):
        assert map_from_gemini_finish_reason("BLOCKLIST") == "BLOCKLIST"
        assert map_from_gemini_finish_reason(None) is None


class TestToWire:
    def test_text_messages_and_roles(self, driver):
        request = UniversalChatRequest(
            model="gemini-2.5-flash",
            messages=[
                TextEntry(role=ChatRole.USER, content="hi"),
                TextEntry(role=ChatRole.ASSISTANT, content="hello"),
                TextEntry(role="user", content="bye"),
            ],
        )

        wire = driver.to_wire(request)

        assert wire.model == "gemini-2.5-flash"
        assert [c.role for c in wire.contents] == ["user", "model", "user"]
        assert [c.text() for c in wire.contents] == ["hi", "hello", "bye"]

    def test_mixed_case_roles(self, driver):
        request = UniversalChatRequest.model_validate(
            {
                "model": "m",
                "messages": [
                    {"type": "text", "role": "USER", "content": "hi"},
                    {"type": "text", "role": "Assistant", "content": "hello"},
                ],
            }
        )

        wire = driver.to_wire(request)

        assert [c.role for c in wire.contents] == ["user", "model"]

    def test_system_instructions_are_joined(self, driver):
        request = UniversalChatRequest(
            model="m",
            messages=[TextEntry(role="user", content="hi")],
            system_instructions=[
                SystemInstruction(content="Be brief."),
                SystemInstruction(content="Answer in French."),
            ],
        )

        payload = driver.to_wire(request).to_payload()

        assert payload["systemInstruction"] == {
            "parts": [{"text": "Be brief.\n\nAnswer in French."}]
        }

    def test_tools_become_one_declaration_block(self, driver):
        tools = ToolKit(
            tools=[
                ToolDefinition(name=f"tool_{n}", description=f"Tool {n}", input_schema={"type": "object"})
                for n in range(3)
            ]
        )
        request = UniversalChatRequest(
            model="m", messages=[TextEntry(role="user", content="hi")], tools=tools
        )

        payload = driver.to_wire(request).to_payload()

        assert len(payload["tools"]) == 1
        declarations = payload["tools"][0]["functionDeclarations"]
        assert [d["name"] for d in declarations] == ["tool_0", "tool_1", "tool_2"]
        assert declarations[1] == {
            "name": "tool_1",
            "description": "Tool 1",
            "parameters": {"type": "object"},
        }

    def test_generation_parameters(self, driver):
        request = UniversalChatRequest(
            model="m",
            messages=[TextEntry(role="user", content="hi")],
            temperature=0.7,
            max_tokens=256,
            top_p=0.9,
            top_k=40,
            stop=["END"],
            reasoning=Reasoning(budget=1024, include_thoughts=True),
            response_format=ResponseFormat(type="application/json", schema={"type": "object"}),
        )

        config = driver.to_wire(request).to_payload()["generationConfig"]

        assert config == {
            "temperature": 0.7,
            "maxOutputTokens": 256,
            "topP": 0.9,
            "topK": 40,
            "stopSequences": ["END"],
            "responseMimeType": "application/json",
            "responseSchema": {"type": "object"},
            "thinkingConfig": {"thinkingBudget": 1024, "includeThoughts": True},
        }

    def test_fields_without_gemini_equivalent_are_dropped(self, driver, caplog):
        request = UniversalChatRequest(
            model="m",
            messages=[TextEntry(role="user", content="hi")],
            frequency_penalty=0.5,
            presence_penalty=0.1,
            tool_choice="auto",
            parallel_function_calling=True,
        )

        with caplog.at_level(logging.DEBUG, logger="geminispeak.services.translation"):
            payload = driver.to_wire(request).to_payload()

        assert set(payload) == {"contents"}
        assert "frequency_penalty" in caplog.text

    def test_tool_call_and_result_entries(self, driver):
        request = UniversalChatRequest(
            model="m",
            messages=[
                TextEntry(role="user", content="Lights off please"),
                ToolCallEntry(tool="lights_off", input={"room": "kitchen"}, id="c1"),
                ToolResultEntry(tool="lights_off", result="done", id="c1"),
            ],
        )

        contents = driver.to_wire(request).to_payload()["contents"]

        assert contents[1] == {
            "role": "model",
            "parts": [
                {"functionCall": {"name": "lights_off", "args": {"room": "kitchen"}, "id": "c1"}}
            ],
        }
        assert contents[2] == {
            "role": "function",
            "parts": [
                {
                    "functionResponse": {
                        "name": "lights_off",
                        "response": {"name": "lights_off", "content": "done"},
                        "id": "c1",
                    }
                }
            ],
        }

    def test_config_stamps_credentials(self):
        driver = GeminiTranslationDriver(GeminiConfig(api_key="k", base_url="https://example.test"))
        wire = driver.to_wire(
            UniversalChatRequest(model="m", messages=[TextEntry(role="user", content="hi")])
        )

        assert wire.api_key == "k"
        assert wire.build_api_url() == "https://example.test/models/m:generateContent"

    def test_rejects_wrong_type(self, driver):
        with pytest.raises(TypeError):
            driver.to_wire({"model": "m"})

    def test_tool_schema_kept_as_is_by_default(self, driver):
        schema = {
            "type": "object",
            "properties": {"x": {"type": ["string", "null"]}},
            "additionalProperties": False,
        }
        request = UniversalChatRequest(
            model="m",
            messages=[TextEntry(role="user", content="hi")],
            tools=ToolKit(tools=[ToolDefinition(name="t", input_schema=schema)]),
        )

        declaration = driver.to_wire(request).tools[0].function_declarations[0]

        assert declaration.parameters == schema

    def test_tool_schema_normalization_opt_in(self, caplog):
        driver = GeminiTranslationDriver(normalize_tool_schemas=True)
        schema = {
            "type": "object",
            "properties": {"x": {"type": ["string", "null"]}},
            "additionalProperties": False,
        }
        request = UniversalChatRequest(
            model="m",
            messages=[TextEntry(role="user", content="hi")],
            tools=ToolKit(tools=[ToolDefinition(name="t", input_schema=schema)]),
        )

        with caplog.at_level(logging.WARNING):
            declaration = driver.to_wire(request).tools[0].function_declarations[0]

        assert declaration.parameters == {
            "type": "object",
            "properties": {"x": {"type": "string"}},
        }
        assert "additionalProperties" in caplog.text


class TestRoundTrip:
    def test_lossy_round_trip_keeps_model_text_and_roles(self, driver, lights_tool):
        request = UniversalChatRequest(
            model="gemini-2.5-flash",
            messages=[
                TextEntry(role=ChatRole.USER, content="hi"),
                TextEntry(role=ChatRole.ASSISTANT, content="hello"),
                TextEntry(role=ChatRole.USER, content="bye"),
            ],
            tools=ToolKit(tools=[lights_tool]),
            temperature=0.2,
            max_tokens=64,
            frequency_penalty=0.5,
            presence_penalty=0.3,
            tool_choice="auto",
            parallel_function_calling=False,
        )

        back = driver.to_universal(driver.to_wire(request))

        assert back.model == request.model
        assert [m.content for m in back.messages] == ["hi", "hello", "bye"]
        assert [m.role for m in back.messages] == [ChatRole.USER, ChatRole.MODEL, ChatRole.USER]
        assert back.tools == request.tools
        assert back.temperature == 0.2
        assert back.max_tokens == 64
        assert back.frequency_penalty is None
        assert back.presence_penalty is None
        assert back.tool_choice is None
        assert back.parallel_function_calling is None

    def test_lossy_round_trip_keeps_empty_assistant_turn(self, driver):
        request = UniversalChatRequest(
            model="gemini-2.5-flash",
            messages=[
                TextEntry(role=ChatRole.USER, content="hi"),
                TextEntry(role=ChatRole.ASSISTANT, content=""),
                TextEntry(role=ChatRole.USER, content="again"),
            ],
        )

        back = driver.to_universal(driver.to_wire(request))

        assert [m.role for m in back.messages] == [ChatRole.USER, ChatRole.MODEL, ChatRole.USER]
        assert [m.content for m in back.messages] == ["hi", "", "again"]

    def test_turn_without_parts_is_skipped(self, driver):
        wire = GeminiGenerateRequest(
            model="m",
            contents=[{"role": "user", "parts": [{"text": "hi"}]}, {"role": "model", "parts": []}],
        )

        back = driver.to_universal(wire)

        assert [m.content for m in back.messages] == ["hi"]

    def test_tool_entries_survive(self, driver):
        request = UniversalChatRequest(
            model="m",
            messages=[
                ToolCallEntry(tool="lights_off", input={"off": True}),
                ToolResultEntry(tool="lights_off", result={"status": "ok"}),
            ],
        )

        back = driver.to_universal(driver.to_wire(request))

        call, result = back.messages
        assert isinstance(call, ToolCallEntry)
        assert call.tool == "lights_off"
        assert call.input == {"off": True}
        assert isinstance(result, ToolResultEntry)
        assert result.result == {"status": "ok"}

    def test_system_reasoning_and_format_survive(self, driver):
        request = UniversalChatRequest(
            model="m",
            messages=[TextEntry(role="user", content="hi")],
            system_instructions=[SystemInstruction(content="Be brief.")],
            reasoning=Reasoning(budget=512, include_thoughts=False),
            response_format=ResponseFormat(type="application/json"),
        )

        back = driver.to_universal(driver.to_wire(request))

        assert back.system_instructions == [SystemInstruction(content="Be brief.")]
        assert back.reasoning == Reasoning(budget=512, include_thoughts=False)
        assert back.response_format.type == "application/json"
        assert back.response_format.json_schema is None


class TestToUniversal:
    def test_unmodelled_part_is_rejected(self, driver):
        request = GeminiGenerateRequest(
            model="m",
            contents=[
                {"role": "user", "parts": [{"inlineData": {"mimeType": "image/png", "data": "AA=="}}]}
            ],
        )

        with pytest.raises(TranslationError):
            driver.to_universal(request)

    def test_unknown_role_becomes_user(self, driver):
        request = GeminiGenerateRequest(
            model="m", contents=[{"role": "narrator", "parts": [{"text": "once"}]}]
        )

        (entry,) = driver.to_universal(request).messages

        assert entry.role == ChatRole.USER

    def test_explicit_generation_config_is_read(self, driver):
        request = GeminiGenerateRequest(
            model="m",
            contents=[{"role": "user", "parts": [{"text": "hi"}]}],
            generation_config={"temperature": 1.1, "topK": 3},
        )

        back = driver.to_universal(request)

        assert back.temperature == 1.1
        assert back.top_k == 3


class TestFromWire:
    def test_text_usage_and_metadata(self, driver, generate_body):
        response = GeminiGenerateResponse.from_api_response(generate_body)

        universal = driver.from_wire(response)

        assert universal.id.startswith("gemini_")
        assert universal.model == "gemini-2.5-flash"
        assert universal.content == "t1"
        assert universal.choices[0]["message"]["role"] == "model"
        assert universal.finish_reason == "stop"
        assert universal.usage == {"prompt_tokens": 4, "completion_tokens": 2, "total_tokens": 10}
        assert universal.metadata["model_version"] == "gemini-2.5-flash"
        assert len(universal.metadata["safety_ratings"]) == 2

    def test_tool_calls(self, driver, tool_call_body):
        universal = driver.from_wire(GeminiGenerateResponse.from_api_response(tool_call_body))

        message = universal.choices[0]["message"]
        assert message["content"] == ""
        assert message["tool_calls"] == [
            {
                "id": "call_0",
                "type": "function",
                "function": {"name": "lights_off", "arguments": json.dumps({"off": True})},
            }
        ]
        assert universal.model == "gemini-model"
        assert universal.completion_tokens == 0
        assert universal.total_tokens == 15

    def test_empty_response(self, driver):
        universal = driver.from_wire(GeminiGenerateResponse.from_api_response({}))

        assert universal.choices == []
        assert universal.finish_reason is None
        assert universal.content is None
        assert universal.usage == {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
        assert universal.metadata["safety_ratings"] is None

    def test_ids_are_unique(self, driver, generate_body):
        response = GeminiGenerateResponse.from_api_response(generate_body)

        assert driver.from_wire(response).id != driver.from_wire(response).id


class TestFromUniversal:
    def test_text_choice(self, driver):
        response = UniversalChatResponse(
            id="x",
            model="gemini-2.5-pro",
            created=1,
            choices=[
                {"index": 0, "message": {"role": "assistant", "content": "hello"}, "finish_reason": "length"}
            ],
            usage={"prompt_tokens": 3, "completion_tokens": 5, "total_tokens": 8},
        )

        wire = driver.from_universal(response)

        assert wire.get_text_content() == "hello"
        assert wire.get_finish_reason() == "MAX_TOKENS"
        assert wire.candidates[0].content.role == "model"
        assert wire.get_input_tokens() == 3
        assert wire.get_output_tokens() == 5
        assert wire.get_total_tokens() == 8
        assert wire.model_version == "gemini-2.5-pro"

    def test_tool_calls_become_function_call_parts(self, driver):
        response = UniversalChatResponse(
            id="x",
            model="m",
            created=1,
            choices=[
                {
                    "message": {
                        "content": None,
                        "tool_calls": [
                            {
                                "id": "c9",
                                "type": "function",
                                "function": {"name": "lights_off", "arguments": '{"off": true}'},
                            }
                        ],
                    },
                    "finish_reason": "tool_calls",
                }
            ],
        )

        wire = driver.from_universal(response)

        parts = wire.candidates[0].content.parts
        assert isinstance(parts[0], TextPart)
        assert isinstance(parts[1], FunctionCallPart)
        assert parts[1].function_call.args == {"off": True}
        assert parts[1].function_call.id == "c9"
        assert wire.get_finish_reason() == "FUNCTION_CALL"
        assert not any(isinstance(p, FunctionResponsePart) for p in parts)

    def test_invalid_tool_arguments(self, driver):
        response = UniversalChatResponse(
            id="x",
            model="m",
            created=1,
            choices=[
                {
                    "message": {
                        "tool_calls": [{"function": {"name": "f", "arguments": "{not json"}}]
                    }
                }
            ],
        )

        with pytest.raises(TranslationError):
            driver.from_universal(response)
