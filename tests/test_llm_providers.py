"""Tests for LLM provider request building and response parsing."""

from podcast_engine.adapters.llm import anthropic, gemini, openai
from podcast_engine.adapters.llm.base import (
    JSON_ONLY_INSTRUCTION,
    LLMMessage,
    split_system_prompt,
)

MESSAGES = [
    LLMMessage("system", "You are a research producer."),
    LLMMessage("system", "Be concise."),
    LLMMessage("user", "List three topics."),
]


class TestSplitSystemPrompt:
    """Tests for split_system_prompt."""

    def test_system_messages_joined(self):
        system, turns = split_system_prompt(MESSAGES)

        assert system == "You are a research producer.\n\nBe concise."
        assert [m.role for m in turns] == ["user"]

    def test_no_system_messages(self):
        system, turns = split_system_prompt([LLMMessage("user", "Hi")])

        assert system == ""
        assert len(turns) == 1


class TestAnthropicPayload:
    """Tests for the Anthropic request and response mapping."""

    def test_json_mode_prefills_brace(self):
        payload = anthropic.build_payload("claude", MESSAGES, 0.3, 1000, json_mode=True)

        assert payload["messages"][-1] == {"role": "assistant", "content": "{"}
        assert payload["system"].endswith(JSON_ONLY_INSTRUCTION)
        assert payload["system"].startswith("You are a research producer.")

    def test_temperature_capped(self):
        payload = anthropic.build_payload("claude", MESSAGES, 1.5, 1000, json_mode=False)

        assert payload["temperature"] == 1.0
        assert "Respond with" not in payload["system"]

    def test_parse_restores_brace(self):
        data = {
            "content": [{"type": "text", "text": '"topics": []}'}],
            "usage": {"input_tokens": 10, "output_tokens": 5},
            "stop_reason": "end_turn",
        }

        response = anthropic.parse_response(data, "claude", json_mode=True)

        assert response.content == '{"topics": []}'
        assert response.usage["total_tokens"] == 15
        assert response.truncated is False

    def test_parse_flags_truncation(self):
        data = {"content": [{"type": "text", "text": "Once upon"}], "stop_reason": "max_tokens"}

        response = anthropic.parse_response(data, "claude", json_mode=False)

        assert response.content == "Once upon"
        assert response.truncated is True


class TestOpenAIPayload:
    """Tests for the OpenAI request and response mapping."""

    def test_json_mode(self):
        payload = openai.build_payload("gpt", MESSAGES, 0.3, 1000, json_mode=True)

        assert payload["response_format"] == {"type": "json_object"}
        assert payload["messages"][0]["role"] == "system"
        assert "JSON" in payload["messages"][0]["content"]
        assert payload["messages"][1] == {"role": "user", "content": "List three topics."}

    def test_plain_request_without_system(self):
        payload = openai.build_payload(
            "gpt", [LLMMessage("user", "Hi")], 0.7, 100, json_mode=False
        )

        assert payload["messages"] == [{"role": "user", "content": "Hi"}]
        assert "response_format" not in payload

    def test_parse_response(self):
        data = {
            "model": "gpt-4o-mini",
            "choices": [{"message": {"content": "Done"}, "finish_reason": "length"}],
            "usage": {"prompt_tokens": 3, "completion_tokens": 4},
        }

        response = openai.parse_response(data, "gpt")

        assert response.content == "Done"
        assert response.model == "gpt-4o-mini"
        assert response.usage == {"prompt_tokens": 3, "completion_tokens": 4, "total_tokens": 7}
        assert response.truncated is True


class TestGeminiRequest:
    """Tests for the Gemini content mapping."""

    def test_roles_mapped(self):
        _, turns = split_system_prompt(
            [*MESSAGES, LLMMessage("assistant", "Sure."), LLMMessage("user", "More.")]
        )

        contents = gemini.build_contents(turns)

        assert [c.role for c in contents] == ["user", "model", "user"]
        assert contents[1].parts[0].text == "Sure."

    def test_config(self):
        config = gemini.build_config("Persona", 0.2, 512, json_mode=True)

        assert config.response_mime_type == "application/json"
        assert config.max_output_tokens == 512
