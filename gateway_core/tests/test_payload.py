import pytest

from gateway_core.domain.exceptions import InvalidConversationError
from gateway_core.domain.models import ChatMessage, CompletionOptions, Configuration
from gateway_core.providers.payload import PayloadBuilder


def test_chat_payload_with_system_prompt():
    cfg = Configuration(endpoint="http://gw", secret_key="sk", model="gpt-4", system_prompt="be brief")
    payload = PayloadBuilder().build_chat(cfg, "hi", stream=True)
    assert payload == {
        "model": "gpt-4",
        "messages": [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hi"},
        ],
        "stream": True,
        "max_tokens": 4000,
        "temperature": 0.7,
    }


def test_chat_payload_defaults_model_and_skips_empty_system():
    cfg = Configuration(endpoint="http://gw", secret_key="sk")
    payload = PayloadBuilder().build_chat(cfg, "hi", stream=False)
    assert payload["model"] == "gpt-3.5-turbo"
    assert payload["messages"] == [{"role": "user", "content": "hi"}]
    assert payload["stream"] is False


def test_tool_chat_payload_passes_tools_through():
    cfg = Configuration(endpoint="http://gw", secret_key="sk", model="gpt-4", system_prompt="ignored")
    tool = {"type": "function", "function": {"name": "lookup", "parameters": {"type": "object"}}}
    messages = [
        ChatMessage(role="system", content="sys"),
        {"role": "user", "content": "find it"},
    ]
    payload = PayloadBuilder().build_tool_chat(
        cfg, messages, CompletionOptions(model="claude-3-opus-20240229", temperature=0.0, tools=[tool])
    )
    assert payload["model"] == "claude-3-opus-20240229"
    assert payload["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "find it"},
    ]
    assert payload["temperature"] == 0.0
    assert payload["max_tokens"] == 4000
    assert payload["tools"] == [tool]
    assert payload["tool_choice"] == "auto"


def test_tool_chat_payload_omits_tools_when_empty():
    cfg = Configuration(endpoint="http://gw", secret_key="sk")
    payload = PayloadBuilder().build_tool_chat(cfg, [ChatMessage(role="user", content="x")], CompletionOptions(tools=[]))
    assert "tools" not in payload
    assert "tool_choice" not in payload
    assert payload["model"] == "gpt-3.5-turbo"


def test_tool_chat_rejects_misplaced_system_message():
    cfg = Configuration(endpoint="http://gw", secret_key="sk")
    messages = [ChatMessage(role="user", content="x"), ChatMessage(role="system", content="late")]
    with pytest.raises(InvalidConversationError):
        PayloadBuilder().build_tool_chat(cfg, messages)


def test_tool_message_serialization():
    msg = ChatMessage(role="tool", content="42", tool_call_id="call_1")
    assistant = ChatMessage(role="assistant", content="", extra={"tool_calls": [{"id": "call_1"}], "name": None})
    assert PayloadBuilder.serialize_messages([assistant, msg]) == [
        {"role": "assistant", "tool_calls": [{"id": "call_1"}]},
        {"role": "tool", "content": "42", "tool_call_id": "call_1"},
    ]


def test_transcription_payload_defaults():
    data, files = PayloadBuilder().build_transcription(b"RIFF", language="", model=None)
    assert data == {"model": "whisper-1", "language": "auto"}
    assert files == {"file": ("audio.wav", b"RIFF", "audio/wav")}
