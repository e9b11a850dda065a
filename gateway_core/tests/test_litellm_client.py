import json

import httpx
import pytest

from gateway_core.config.provider import StaticConfigProvider
from gateway_core.config.resolver import ConfigResolver
from gateway_core.domain.exceptions import (
    GatewayError,
    InvalidConversationError,
    InvalidResponseError,
    NotConfiguredError,
    TransportFailureError,
)
from gateway_core.domain.models import ChatMessage, CompletionOptions
from gateway_core.providers.litellm_client import LiteLLMClient


class SettingsStub:
    chat_timeout = 120.0
    transcription_timeout = 60.0
    models_timeout = 10.0


class LoggerStub:
    def __init__(self):
        self.warnings = []
        self.errors = []

    def warning(self, msg, *a, **kw):
        self.warnings.append(msg)

    def error(self, msg, *a, **kw):
        self.errors.append(msg)


KEYS = {
    "litellm_endpoint": "http://gw/",
    "litellm_secret_key": "sk-123",
    "ai_model": "gpt-4",
    "pre_prompt": "",
}


def _client(keys=KEYS, log=None):
    log = log or LoggerStub()
    provider = StaticConfigProvider({"AiConnection": keys} if keys is not None else {})
    resolver = ConfigResolver(provider=provider, integration_name="AiConnection", logger=log)
    return LiteLLMClient(resolver=resolver, cfg=SettingsStub(), logger=log), log


class Resp:
    def __init__(self, body, status_code=200):
        self.status_code = status_code
        self._body = body
        self.text = body if isinstance(body, str) else json.dumps(body)

    def json(self):
        if isinstance(self._body, str):
            return json.loads(self._body)
        return self._body


def _fake_client(captured, response=None, error=None):
    class Client:
        def __init__(self, *a, **kw):
            captured["timeout"] = kw.get("timeout")

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, url, **kw):
            captured["url"] = url
            captured.update(kw)
            if error is not None:
                raise error
            return response

    return Client


def test_get_completion_ok(monkeypatch):
    captured = {}
    body = {"choices": [{"message": {"role": "assistant", "content": "ok"}, "finish_reason": "stop"}]}
    monkeypatch.setattr("httpx.Client", _fake_client(captured, Resp(body)))
    client, _ = _client()
    assert client.get_completion("hi") == "ok"
    assert captured["url"] == "http://gw/chat/completions"
    assert captured["timeout"] == 120.0
    assert captured["headers"]["Authorization"] == "Bearer sk-123"
    assert captured["headers"]["Content-Type"] == "application/json"
    assert captured["json"]["stream"] is False
    assert captured["json"]["model"] == "gpt-4"


def test_get_completion_not_configured_skips_network(monkeypatch):
    class Client:
        def __init__(self, *a, **kw):
            raise AssertionError("network must not be touched")

    monkeypatch.setattr("httpx.Client", Client)
    client, log = _client(keys={"litellm_endpoint": "", "litellm_secret_key": ""})
    with pytest.raises(NotConfiguredError):
        client.get_completion("hi")
    assert log.errors


def test_get_completion_transport_failure(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _fake_client(captured, error=httpx.ConnectError("dns down")))
    client, log = _client()
    with pytest.raises(TransportFailureError) as exc_info:
        client.get_completion("hi")
    err = exc_info.value
    assert err.code == "TRANSPORT_FAILURE"
    assert err.message == "Failed to communicate with AI service"
    assert isinstance(err.__cause__, httpx.ConnectError)
    assert "dns down" in log.errors[0]


def test_get_completion_timeout_is_transport_failure(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _fake_client(captured, error=httpx.ReadTimeout("slow")))
    client, _ = _client()
    with pytest.raises(TransportFailureError):
        client.get_completion("hi")


def test_get_completion_error_status(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _fake_client(captured, Resp({"error": "bad key"}, status_code=401)))
    client, _ = _client()
    with pytest.raises(TransportFailureError) as exc_info:
        client.get_completion("hi")
    assert exc_info.value.http_status == 401


def test_get_completion_missing_content(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _fake_client(captured, Resp({"choices": [{"message": {"role": "assistant"}}]})))
    client, log = _client()
    with pytest.raises(InvalidResponseError):
        client.get_completion("hi")
    assert log.errors


def test_get_completion_non_json_body(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _fake_client(captured, Resp("<html>gateway</html>")))
    client, _ = _client()
    with pytest.raises(InvalidResponseError) as exc_info:
        client.get_completion("hi")
    assert exc_info.value.extra["raw"] == "<html>gateway</html>"


def test_get_chat_completion_tools_and_fingerprint(monkeypatch):
    captured = {}
    body = {
        "choices": [
            {
                "message": {
                    "role": "assistant",
                    "content": None,
                    "tool_calls": [{"id": "c1", "type": "function", "function": {"name": "lookup", "arguments": "{}"}}],
                },
                "finish_reason": "tool_calls",
            }
        ]
    }
    monkeypatch.setattr("httpx.Client", _fake_client(captured, Resp(body)))
    client, _ = _client()
    tool = {"type": "function", "function": {"name": "lookup"}}
    result = client.get_chat_completion(
        [ChatMessage(role="user", content="find")],
        CompletionOptions(tools=[tool], tool_choice="required", fingerprint="fp-1"),
    )
    assert result == body
    assert captured["headers"]["Mautic"] == "fp-1"
    assert captured["json"]["tools"] == [tool]
    assert captured["json"]["tool_choice"] == "required"


def test_get_chat_completion_without_fingerprint_header(monkeypatch):
    captured = {}
    body = {"choices": [{"message": {"role": "assistant", "content": "hi"}}]}
    monkeypatch.setattr("httpx.Client", _fake_client(captured, Resp(body)))
    client, _ = _client()
    client.get_chat_completion([{"role": "user", "content": "x"}])
    assert "Mautic" not in captured["headers"]
    assert "tools" not in captured["json"]


def test_get_chat_completion_missing_message(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _fake_client(captured, Resp({"choices": [{"finish_reason": "stop"}]})))
    client, log = _client()
    with pytest.raises(InvalidResponseError) as exc_info:
        client.get_chat_completion([ChatMessage(role="user", content="x")])
    assert "finish_reason" in exc_info.value.extra["raw"]
    assert "finish_reason" in log.errors[0]


def test_speech_to_text_ok(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _fake_client(captured, Resp({"text": "hello there"})))
    client, _ = _client()
    text = client.speech_to_text(b"RIFF....", language="en", fingerprint="fp-2")
    assert text == "hello there"
    assert captured["url"] == "http://gw/audio/transcriptions"
    assert captured["timeout"] == 60.0
    assert captured["data"] == {"model": "whisper-1", "language": "en"}
    assert captured["files"]["file"] == ("audio.wav", b"RIFF....", "audio/wav")
    assert captured["headers"] == {"Authorization": "Bearer sk-123", "Mautic": "fp-2"}


def test_speech_to_text_missing_text(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _fake_client(captured, Resp({"result": "?"})))
    client, _ = _client()
    with pytest.raises(InvalidResponseError) as exc_info:
        client.speech_to_text(b"RIFF")
    assert "speech-to-text" in exc_info.value.message


def test_speech_to_text_transport_failure(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _fake_client(captured, error=httpx.ConnectTimeout("timeout")))
    client, _ = _client()
    with pytest.raises(TransportFailureError) as exc_info:
        client.speech_to_text(b"RIFF")
    assert exc_info.value.message == "Failed to communicate with speech-to-text service"


# ---- 流式 ----


class FakeStreamResponse:
    def __init__(self, chunks, status_code=200, error=None):
        self.status_code = status_code
        self.text = ""
        self._chunks = list(chunks)
        self._error = error
        self.closed = False

    def read(self):
        return b""

    def iter_bytes(self):
        for chunk in self._chunks:
            yield chunk
        if self._error is not None:
            raise self._error


class StreamContext:
    def __init__(self, response):
        self._response = response

    def __enter__(self):
        return self._response

    def __exit__(self, *args):
        self._response.closed = True
        return False


def _stream_client(captured, response):
    class Client:
        def __init__(self, *a, **kw):
            captured["timeout"] = kw.get("timeout")

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, *a, **kw):
            raise AssertionError("post should not be called in stream test")

        def stream(self, method, url, **kw):
            captured["method"] = method
            captured["url"] = url
            captured.update(kw)
            return StreamContext(response)

    return Client


STREAM_CHUNKS = [
    b'data: {"choices":[{"delta":{"role":"assistant"}}]}\n\nda',
    b'ta: {"choices":[{"delta":{"content":"Hel"}}]}\ndata: {"choices":[{"delta":{"content":"lo"}}]}\n',
    b"data: [DONE]\n",
    b'data: {"choices":[{"delta":{"content":"ignored"}}]}\n',
]


def test_stream_completion_callback(monkeypatch):
    captured = {}
    response = FakeStreamResponse(STREAM_CHUNKS)
    monkeypatch.setattr("httpx.Client", _stream_client(captured, response))
    client, _ = _client()
    received = []
    client.stream_completion("hi", received.append)
    assert received == ["Hel", "lo"]
    assert captured["method"] == "POST"
    assert captured["json"]["stream"] is True
    assert response.closed


def test_stream_completion_eof_without_done(monkeypatch):
    captured = {}
    chunks = [b'data: {"choices":[{"delta":{"content":"a"}}]}\ndata: {"choices":[{"delta":{"content":"b"}}]}']
    monkeypatch.setattr("httpx.Client", _stream_client(captured, FakeStreamResponse(chunks)))
    client, _ = _client()
    received = []
    client.stream_completion("hi", received.append)
    assert received == ["a", "b"]


def test_stream_completion_read_error_keeps_delivered_chunks(monkeypatch):
    captured = {}
    response = FakeStreamResponse(
        [b'data: {"choices":[{"delta":{"content":"partial"}}]}\n'],
        error=httpx.ReadError("connection reset"),
    )
    monkeypatch.setattr("httpx.Client", _stream_client(captured, response))
    client, log = _client()
    received = []
    with pytest.raises(TransportFailureError):
        client.stream_completion("hi", received.append)
    assert received == ["partial"]
    assert "connection reset" in log.errors[0]


def test_stream_completion_error_status(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", _stream_client(captured, FakeStreamResponse([], status_code=500)))
    client, _ = _client()
    with pytest.raises(TransportFailureError) as exc_info:
        client.stream_completion("hi", lambda text: None)
    assert exc_info.value.http_status == 500


def test_stream_completion_malformed_line_continues(monkeypatch):
    captured = {}
    chunks = [b'data: {not json\ndata: {"choices":[{"delta":{"content":"ok"}}]}\ndata: [DONE]\n']
    monkeypatch.setattr("httpx.Client", _stream_client(captured, FakeStreamResponse(chunks)))
    client, log = _client()
    received = []
    client.stream_completion("hi", received.append)
    assert received == ["ok"]
    assert len(log.warnings) == 1


def test_iter_completion_close_releases_connection(monkeypatch):
    captured = {}
    response = FakeStreamResponse(STREAM_CHUNKS)
    monkeypatch.setattr("httpx.Client", _stream_client(captured, response))
    client, _ = _client()
    deltas = client.iter_completion("hi")
    assert next(deltas) == "Hel"
    deltas.close()
    assert response.closed


def test_stream_completion_not_configured(monkeypatch):
    class Client:
        def __init__(self, *a, **kw):
            raise AssertionError("network must not be touched")

    monkeypatch.setattr("httpx.Client", Client)
    client, _ = _client(keys=None)
    with pytest.raises(NotConfiguredError):
        client.stream_completion("hi", lambda text: None)


# ---- 非法 endpoint / 对话顺序 ----


@pytest.mark.parametrize("endpoint", ["http://gw:notaport", "http://[::1"])
def test_invalid_endpoint_is_transport_failure(endpoint):
    keys = {**KEYS, "litellm_endpoint": endpoint}
    calls = [
        lambda c: c.get_completion("hi"),
        lambda c: c.stream_completion("hi", lambda text: None),
        lambda c: c.speech_to_text(b"RIFF"),
        lambda c: c.get_chat_completion([ChatMessage(role="user", content="x")]),
    ]
    for call in calls:
        client, log = _client(keys=keys)
        with pytest.raises(TransportFailureError) as exc_info:
            call(client)
        assert isinstance(exc_info.value.__cause__, httpx.InvalidURL)
        assert log.errors


def test_get_chat_completion_misplaced_system_message(monkeypatch):
    class Client:
        def __init__(self, *a, **kw):
            raise AssertionError("network must not be touched")

    monkeypatch.setattr("httpx.Client", Client)
    client, log = _client()
    messages = [ChatMessage(role="user", content="x"), ChatMessage(role="system", content="late")]
    with pytest.raises(InvalidConversationError) as exc_info:
        client.get_chat_completion(messages)
    assert isinstance(exc_info.value, GatewayError)
    assert exc_info.value.code == "INVALID_CONVERSATION"
    assert log.errors


def test_iter_completion_checks_config_on_call(monkeypatch):
    class Client:
        def __init__(self, *a, **kw):
            raise AssertionError("network must not be touched")

    monkeypatch.setattr("httpx.Client", Client)
    client, _ = _client(keys=None)
    with pytest.raises(NotConfiguredError):
        client.iter_completion("hi")
