"""请求体构造。

把调用方内容与解析后的 Configuration 转成 OpenAI 兼容网关需要的请求：

- chat / 流式 chat: 自动注入 system（若配置了 pre_prompt）与 user 消息。
- tool chat: 调用方直接提供完整对话，按 CompletionOptions 附加 tools。
- transcription: multipart 表单（model、language、file）。

所有请求体都会省略空值字段，而不是发送 null。
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from gateway_core.domain.exceptions import InvalidConversationError
from gateway_core.domain.models import (
    DEFAULT_CHAT_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOOL_CHOICE,
    DEFAULT_TRANSCRIPTION_LANGUAGE,
    DEFAULT_TRANSCRIPTION_MODEL,
    ChatMessage,
    CompletionOptions,
    Configuration,
)

MessageLike = Union[ChatMessage, Mapping[str, Any]]

# httpx files 参数格式：{字段名: (文件名, 内容, content-type)}
MultipartFiles = Dict[str, Tuple[str, bytes, str]]

AUDIO_FILENAME = "audio.wav"
AUDIO_CONTENT_TYPE = "audio/wav"


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, dict, tuple)) and not value)


def compact(payload: Dict[str, Any]) -> Dict[str, Any]:
    """去掉值为空的字段（0 / False 保留）。"""

    return {k: v for k, v in payload.items() if not _is_empty(v)}


class PayloadBuilder:
    """网关请求体构造器，无状态，可在并发调用间共享。"""

    def build_chat(self, config: Configuration, prompt: str, stream: bool) -> Dict[str, Any]:
        messages: List[Dict[str, Any]] = []
        if config.system_prompt:
            messages.append({"role": "system", "content": config.system_prompt})
        messages.append({"role": "user", "content": prompt})
        return compact(
            {
                "model": config.model or DEFAULT_CHAT_MODEL,
                "messages": messages,
                "stream": stream,
                "max_tokens": DEFAULT_MAX_TOKENS,
                "temperature": DEFAULT_TEMPERATURE,
            }
        )

    def build_tool_chat(
        self,
        config: Configuration,
        messages: Sequence[MessageLike],
        options: Optional[CompletionOptions] = None,
    ) -> Dict[str, Any]:
        opts = options or CompletionOptions()
        payload: Dict[str, Any] = {
            "model": opts.model or config.model or DEFAULT_CHAT_MODEL,
            "messages": self.serialize_messages(messages),
            "stream": False,
            "max_tokens": DEFAULT_MAX_TOKENS if opts.max_tokens is None else opts.max_tokens,
            "temperature": DEFAULT_TEMPERATURE if opts.temperature is None else opts.temperature,
        }
        # 工具定义原样透传，不解析 schema
        if opts.tools:
            payload["tools"] = list(opts.tools)
            payload["tool_choice"] = opts.tool_choice or DEFAULT_TOOL_CHOICE
        return compact(payload)

    def build_transcription(
        self,
        audio: bytes,
        language: Optional[str] = None,
        model: Optional[str] = None,
    ) -> Tuple[Dict[str, str], MultipartFiles]:
        """返回 (表单字段, 文件部分)，分别对应 httpx 的 data / files 参数。"""

        data = compact(
            {
                "model": model or DEFAULT_TRANSCRIPTION_MODEL,
                "language": language or DEFAULT_TRANSCRIPTION_LANGUAGE,
            }
        )
        files: MultipartFiles = {"file": (AUDIO_FILENAME, bytes(audio), AUDIO_CONTENT_TYPE)}
        return data, files

    @staticmethod
    def serialize_messages(messages: Sequence[MessageLike]) -> List[Dict[str, Any]]:
        serialized: List[Dict[str, Any]] = []
        for message in messages:
            if isinstance(message, ChatMessage):
                serialized.append(message.to_payload())
            else:
                serialized.append(dict(message))
        for idx, item in enumerate(serialized):
            if item.get("role") == "system" and idx != 0:
                raise InvalidConversationError(position=idx)
        return serialized
