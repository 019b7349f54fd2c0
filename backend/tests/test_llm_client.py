import asyncio
from types import SimpleNamespace

import anthropic
import httpx
import pytest
from prometheus_client import REGISTRY
from pydantic import ValidationError

from bridge.core.llm.llm_client import LLMClient
from bridge.errors import MalformedResponseError, PipelineError
from bridge.models import TranslationOutput

from conftest import SAMPLE_OUTPUT

REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


class StubMessages:
    def __init__(self, message=None, error=None):
        self.message = message
        self.error = error
        self.calls = []

    def parse(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return self.message


def _client(message=None, error=None, max_input_chars=100_000):
    stub = SimpleNamespace(messages=StubMessages(message=message, error=error))
    return LLMClient(client=stub, model="claude-test", max_tokens=4096, max_input_chars=max_input_chars)


def _message(parsed_output=None, stop_reason="end_turn"):
    return SimpleNamespace(
        parsed_output=parsed_output,
        usage=SimpleNamespace(input_tokens=120, output_tokens=45),
        model="claude-test",
        stop_reason=stop_reason,
    )


def _generate(client, content="Estimados padres"):
    return asyncio.run(client.generate_structured(content, "system", TranslationOutput))


def _schema_error():
    try:
        TranslationOutput.model_validate({"translation_html": "<p>x</p>"})
    except ValidationError as e:
        return e
    raise AssertionError("expected a validation error")


def test_parsed_output_is_returned_with_usage():
    client = _client(_message(TranslationOutput.model_validate(SAMPLE_OUTPUT)))
    before = REGISTRY.get_sample_value("llm_token_usage_total", {"model": "claude-test", "token_type": "input"}) or 0

    response = _generate(client)

    assert response["data"]["translation_html"] == SAMPLE_OUTPUT["translation_html"]
    assert response["data"]["summary"]["actions"] == SAMPLE_OUTPUT["summary"]["actions"]
    assert response["usage"] == {"input_tokens": 120, "output_tokens": 45, "model": "claude-test"}
    assert REGISTRY.get_sample_value("llm_token_usage_total", {"model": "claude-test", "token_type": "input"}) == before + 120

    call = client.client.messages.calls[0]
    assert call["output_format"] is TranslationOutput
    assert call["system"] == "system"
    assert call["messages"] == [{"role": "user", "content": "Estimados padres"}]


def test_content_blocks_pass_through_untouched():
    client = _client(_message(TranslationOutput.model_validate(SAMPLE_OUTPUT)), max_input_chars=10)
    blocks = [{"type": "text", "text": "x" * 50}]

    _generate(client, content=blocks)

    assert client.client.messages.calls[0]["messages"][0]["content"] is blocks


def test_timeout_maps_to_generating_stage():
    client = _client(error=anthropic.APITimeoutError(request=REQUEST))

    with pytest.raises(PipelineError) as exc_info:
        _generate(client)

    assert exc_info.value.to_dict()["stage"] == "generating"
    assert "timed out" in exc_info.value.message


def test_api_error_maps_to_generating_stage():
    client = _client(error=anthropic.APIError("overloaded", REQUEST, body=None))

    with pytest.raises(PipelineError) as exc_info:
        _generate(client)

    assert exc_info.value.to_dict()["stage"] == "generating"
    assert not isinstance(exc_info.value, MalformedResponseError)


def test_schema_mismatch_is_malformed():
    client = _client(error=_schema_error())

    with pytest.raises(MalformedResponseError) as exc_info:
        _generate(client)
    assert exc_info.value.to_dict()["stage"] == "validating"


def test_missing_parsed_output_is_malformed():
    with pytest.raises(MalformedResponseError):
        _generate(_client(_message(parsed_output=None, stop_reason="max_tokens")))


def test_short_text_is_not_truncated():
    client = _client(max_input_chars=100)
    assert client.truncate_text("a" * 100) == "a" * 100


def test_long_text_keeps_head_and_tail():
    client = _client(max_input_chars=100)
    text = "H" * 150 + "T" * 150

    truncated = client.truncate_text(text)

    assert truncated.startswith("H" * 80)
    assert truncated.endswith("T" * 20)
    assert "[TRUNCATED: 200 characters removed from middle section]" in truncated


def test_long_text_is_truncated_before_the_call():
    client = _client(_message(TranslationOutput.model_validate(SAMPLE_OUTPUT)), max_input_chars=100)

    _generate(client, content="x" * 500)

    sent = client.client.messages.calls[0]["messages"][0]["content"]
    assert "TRUNCATED" in sent
    assert sent.count("x") == 100
