"""Tests for src/relay/request.py — boundary validation and message assembly."""

import json

import pytest

from src.relay.models import Message, Service
from src.relay.request import RequestError, build_messages, parse_request


def _body(**fields) -> bytes:
    return json.dumps(fields).encode()


class TestParseRequestErrors:

    @pytest.mark.parametrize("body", [None, b"", ""])
    def test_missing_body(self, body):
        with pytest.raises(RequestError, match="No request body detected"):
            parse_request(body)

    def test_invalid_json(self):
        with pytest.raises(RequestError, match="not valid JSON"):
            parse_request(b"{systemPrompt: nope")

    def test_non_object_body(self):
        with pytest.raises(RequestError, match="must be a JSON object"):
            parse_request(b'["systemPrompt", "queryPrompt"]')

    def test_missing_system_prompt(self):
        with pytest.raises(RequestError) as exc_info:
            parse_request(_body(queryPrompt="Q"))
        assert exc_info.value.message == "System Prompt (systemPrompt) missing"

    def test_empty_system_prompt_counts_as_missing(self):
        with pytest.raises(RequestError) as exc_info:
            parse_request(_body(systemPrompt="", queryPrompt="Q"))
        assert exc_info.value.message == "System Prompt (systemPrompt) missing"

    def test_missing_query_prompt(self):
        with pytest.raises(RequestError) as exc_info:
            parse_request(_body(systemPrompt="S"))
        assert exc_info.value.message == "User Query (queryPrompt) missing"

    def test_system_prompt_checked_before_query_prompt(self):
        with pytest.raises(RequestError) as exc_info:
            parse_request(_body(service="Bedrock"))
        assert exc_info.value.message == "System Prompt (systemPrompt) missing"

    def test_unknown_service(self):
        with pytest.raises(RequestError) as exc_info:
            parse_request(_body(service="OpenAI", systemPrompt="S", queryPrompt="Q"))
        assert exc_info.value.message == (
            "Unsupported service 'OpenAI'; expected one of: Azure, Bedrock"
        )

    def test_malformed_history_entry(self):
        with pytest.raises(RequestError) as exc_info:
            parse_request(_body(
                systemPrompt="S",
                queryPrompt="Q",
                history=[{"role": "tool", "content": "x"}],
            ))
        assert exc_info.value.message.startswith("Invalid request: history.0.role")

    def test_same_malformed_request_same_error(self):
        body = _body(systemPrompt="S")
        messages = set()
        for _ in range(3):
            with pytest.raises(RequestError) as exc_info:
                parse_request(body)
            messages.add(exc_info.value.message)
        assert messages == {"User Query (queryPrompt) missing"}


class TestParseRequestDefaults:

    def test_minimal_request(self):
        req = parse_request(_body(systemPrompt="S", queryPrompt="Q"))
        assert req.service == Service.AZURE
        assert req.deployment is None
        assert req.params == {}
        assert req.history == []
        assert req.callback is None
        assert req.system_prompt == "S"
        assert req.query_prompt == "Q"

    def test_null_service_defaults_to_azure(self):
        req = parse_request(_body(service=None, systemPrompt="S", queryPrompt="Q"))
        assert req.service == Service.AZURE

    def test_null_params_and_history(self):
        req = parse_request(_body(systemPrompt="S", queryPrompt="Q", params=None, history=None))
        assert req.params == {}
        assert req.history == []

    def test_blank_deployment_means_default(self):
        req = parse_request(_body(systemPrompt="S", queryPrompt="Q", deployment=""))
        assert req.deployment is None

    def test_full_request(self):
        req = parse_request(_body(
            service="Bedrock",
            deployment="anthropic.claude-3-haiku",
            params={"temperature": 0.2, "maxTokens": 50},
            systemPrompt="S",
            queryPrompt="Q",
            history=[{"role": "user", "content": "H1"}, {"role": "assistant", "content": "A1"}],
            callback=True,
        ))
        assert req.service == Service.BEDROCK
        assert req.deployment == "anthropic.claude-3-haiku"
        assert req.params == {"temperature": 0.2, "maxTokens": 50}
        assert req.history[1] == Message(role="assistant", content="A1")
        assert req.callback is True


class TestBuildMessages:

    def test_order_system_history_user(self):
        messages = build_messages("S", [Message(role="user", content="H1")], "Q")
        assert [m.model_dump() for m in messages] == [
            {"role": "system", "content": "S"},
            {"role": "user", "content": "H1"},
            {"role": "user", "content": "Q"},
        ]

    def test_history_order_preserved(self):
        history = [
            Message(role="user", content="1"),
            Message(role="assistant", content="2"),
            Message(role="user", content="3"),
        ]
        messages = build_messages("S", history, "Q")
        assert [m.content for m in messages] == ["S", "1", "2", "3", "Q"]

    def test_no_history(self):
        messages = build_messages("S", [], "Q")
        assert [m.role for m in messages] == ["system", "user"]

    def test_empty_is_fatal(self):
        with pytest.raises(RequestError, match="No valid messages"):
            build_messages("", [], "")
