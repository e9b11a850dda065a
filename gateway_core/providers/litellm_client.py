"""LiteLLM（OpenAI 兼容网关）客户端。

本模块负责：

1. 每次调用前通过 ConfigResolver 重新读取网关配置，缺失时直接抛 NotConfiguredError。
2. 使用 PayloadBuilder 构造请求体，调用 HTTP 接口。
3. 流式调用时把响应字节块交给 StreamDecoder，按到达顺序回调增量文本。
4. 把网络错误、错误状态码、缺字段的响应统一映射为 GatewayError，
   并在抛出前以 error 级别记录底层原因。

不做自动重试，重试策略由调用方决定。
"""

import json
from contextlib import closing
from typing import Any, Callable, Dict, Iterator, Optional, Sequence

import httpx

from gateway_core.config.resolver import ConfigResolver
from gateway_core.config.settings import settings
from gateway_core.domain.exceptions import (
    InvalidConversationError,
    InvalidResponseError,
    NotConfiguredError,
    TransportFailureError,
)
from gateway_core.domain.models import (
    DEFAULT_TRANSCRIPTION_LANGUAGE,
    DEFAULT_TRANSCRIPTION_MODEL,
    CompletionOptions,
    Configuration,
)
from gateway_core.infrastructure.logging.logger import LoggerSink, logger as default_logger
from gateway_core.providers.payload import MessageLike, PayloadBuilder
from gateway_core.providers.stream import StreamDecoder

AI_SERVICE = "AI service"
STT_SERVICE = "speech-to-text service"
FINGERPRINT_HEADER = "Mautic"

# InvalidURL 不是 HTTPError 的子类，endpoint 格式错误时在构造请求阶段抛出
TRANSPORT_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


def _first_message(data: Any) -> Optional[Dict[str, Any]]:
    """读取 choices[0].message，结构不符时返回 None。"""

    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    return message if isinstance(message, dict) else None


class LiteLLMClient:
    """LiteLLM 网关客户端实现。

    - name: Provider 名称（供日志/调试使用）。
    - get_completion / stream_completion: 单轮提示词对话。
    - get_chat_completion: 自定义消息列表 + 工具调用，返回完整响应。
    - speech_to_text: 音频转写。
    """

    name = "litellm"

    def __init__(
        self,
        resolver: Optional[ConfigResolver] = None,
        cfg=None,
        logger: Optional[LoggerSink] = None,
        builder: Optional[PayloadBuilder] = None,
    ):
        self._settings = cfg or settings
        self._logger = logger or default_logger
        self._resolver = resolver or ConfigResolver(logger=self._logger)
        self._builder = builder or PayloadBuilder()

    # ---- 非流式 ----

    def get_completion(self, prompt: str) -> str:
        config = self._require_config()
        payload = self._builder.build_chat(config, prompt, stream=False)
        data = self._post_json(self._chat_url(config), payload, self._headers(config))
        message = _first_message(data)
        content = message.get("content") if message else None
        if not isinstance(content, str):
            raise self._invalid_response("Invalid response from LiteLLM API", data, AI_SERVICE)
        return content

    def get_chat_completion(
        self,
        messages: Sequence[MessageLike],
        options: Optional[CompletionOptions] = None,
    ) -> Dict[str, Any]:
        """高级对话调用：调用方提供完整对话，可携带 tools 与 fingerprint。"""

        config = self._require_config()
        opts = options or CompletionOptions()
        try:
            payload = self._builder.build_tool_chat(config, messages, opts)
        except InvalidConversationError as err:
            self._logger.error(err.message, extra={"extra": {"code": err.code}})
            raise
        headers = self._headers(config, fingerprint=opts.fingerprint)
        data = self._post_json(self._chat_url(config), payload, headers)
        if _first_message(data) is None:
            raise self._invalid_response("Invalid API response", data, AI_SERVICE)
        return data

    # ---- 流式 ----

    def stream_completion(self, prompt: str, on_chunk: Callable[[str], Any]) -> None:
        """流式对话，每收到一段增量就同步调用 on_chunk(text)。

        已回调的内容不会因后续错误撤回；连接结束或收到 [DONE] 后返回。
        """

        with closing(self.iter_completion(prompt)) as deltas:
            for text in deltas:
                on_chunk(text)

    def iter_completion(self, prompt: str) -> Iterator[str]:
        """流式对话的生成器形式，关闭生成器即关闭底层连接。

        配置在调用时立即校验，未配置时直接抛 NotConfiguredError，而不是等到第一次迭代。
        """

        config = self._require_config()
        payload = self._builder.build_chat(config, prompt, stream=True)
        return self._iter_stream(config, payload)

    def _iter_stream(self, config: Configuration, payload: Dict[str, Any]) -> Iterator[str]:
        decoder = StreamDecoder(logger=self._logger)
        try:
            with httpx.Client(timeout=self._settings.chat_timeout, trust_env=False) as client:
                with client.stream(
                    "POST",
                    self._chat_url(config),
                    json=payload,
                    headers=self._headers(config),
                ) as resp:
                    if resp.status_code >= 400:
                        resp.read()
                        raise self._status_failure(resp, AI_SERVICE)
                    for chunk in resp.iter_bytes():
                        for event in decoder.feed(chunk):
                            yield event.text
                        if decoder.is_done():
                            break
                    # EOF 未收到 [DONE] 也视为正常结束
                    for event in decoder.close():
                        yield event.text
        except TRANSPORT_ERRORS as e:
            raise self._transport_failure(e, AI_SERVICE) from e

    # ---- 语音转写 ----

    def speech_to_text(
        self,
        audio: bytes,
        language: str = DEFAULT_TRANSCRIPTION_LANGUAGE,
        model: str = DEFAULT_TRANSCRIPTION_MODEL,
        fingerprint: Optional[str] = None,
    ) -> str:
        config = self._require_config()
        data, files = self._builder.build_transcription(audio, language=language, model=model)
        # multipart 的 Content-Type（含 boundary）交给 httpx 生成
        headers = self._headers(config, fingerprint=fingerprint, json_body=False)
        url = f"{config.endpoint.rstrip('/')}/audio/transcriptions"
        try:
            with httpx.Client(timeout=self._settings.transcription_timeout, trust_env=False) as client:
                resp = client.post(url, data=data, files=files, headers=headers)
        except TRANSPORT_ERRORS as e:
            raise self._transport_failure(e, STT_SERVICE) from e
        body = self._decode_json(resp, STT_SERVICE)
        text = body.get("text") if isinstance(body, dict) else None
        if not isinstance(text, str):
            raise self._invalid_response("Invalid response from speech-to-text service", body, STT_SERVICE)
        return text

    # ---- 辅助方法 ----

    def _require_config(self) -> Configuration:
        config = self._resolver.resolve()
        if not config.is_usable:
            err = NotConfiguredError()
            self._logger.error(err.message, extra={"extra": {"code": err.code}})
            raise err
        return config

    @staticmethod
    def _chat_url(config: Configuration) -> str:
        return f"{config.endpoint.rstrip('/')}/chat/completions"

    @staticmethod
    def _headers(config: Configuration, fingerprint: Optional[str] = None, json_body: bool = True) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {config.secret_key}"}
        if json_body:
            headers["Content-Type"] = "application/json"
        if fingerprint:
            headers[FINGERPRINT_HEADER] = fingerprint
        return headers

    def _post_json(self, url: str, payload: Dict[str, Any], headers: Dict[str, str]) -> Any:
        try:
            with httpx.Client(timeout=self._settings.chat_timeout, trust_env=False) as client:
                resp = client.post(url, json=payload, headers=headers)
        except TRANSPORT_ERRORS as e:
            raise self._transport_failure(e, AI_SERVICE) from e
        return self._decode_json(resp, AI_SERVICE)

    def _decode_json(self, resp, service: str) -> Any:
        if resp.status_code >= 400:
            raise self._status_failure(resp, service)
        try:
            return resp.json()
        except ValueError as e:
            raise self._invalid_response(f"Response is not valid JSON: {e}", resp.text, service) from e

    def _transport_failure(self, exc: Exception, service: str) -> TransportFailureError:
        self._logger.error(
            f"LiteLLM API error: {exc}",
            extra={"extra": {"code": "TRANSPORT_FAILURE", "error_type": type(exc).__name__}},
        )
        return TransportFailureError(f"Failed to communicate with {service}", cause=str(exc))

    def _status_failure(self, resp, service: str) -> TransportFailureError:
        self._logger.error(
            f"LiteLLM API error: HTTP {resp.status_code}: {resp.text}",
            extra={"extra": {"code": "TRANSPORT_FAILURE", "http_status": resp.status_code}},
        )
        return TransportFailureError(
            f"Failed to communicate with {service}",
            http_status=resp.status_code,
            raw=resp.text,
        )

    def _invalid_response(self, reason: str, raw: Any, service: str) -> InvalidResponseError:
        raw_text = raw if isinstance(raw, str) else json.dumps(raw, ensure_ascii=False)
        self._logger.error(
            f"{reason}: {raw_text}",
            extra={"extra": {"code": "INVALID_RESPONSE"}},
        )
        return InvalidResponseError(f"Failed to communicate with {service}: {reason}", raw=raw_text)
