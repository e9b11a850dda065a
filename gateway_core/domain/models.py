"""网关客户端共享的数据模型。

- Configuration: 单次调用解析出的连接配置（只读快照）。
- ChatMessage: 一条对话消息，按顺序组成 Conversation。
- CompletionOptions: 高级对话调用的可选参数。
- StreamEvent: 流式响应中的一段增量文本。
- ModelEntry: 模型列表中的一项（id + 展示名）。

ToolSpec 是透传给网关的任意 JSON 结构，这里不做解析。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional


# 消息角色（与 OpenAI 兼容接口的 role 字段对应）
Role = Literal["system", "user", "assistant", "tool"]

ToolSpec = Dict[str, Any]

DEFAULT_CHAT_MODEL = "gpt-3.5-turbo"
DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TOOL_CHOICE = "auto"
DEFAULT_TRANSCRIPTION_MODEL = "whisper-1"
DEFAULT_TRANSCRIPTION_LANGUAGE = "auto"


@dataclass(frozen=True)
class Configuration:
    """一次调用使用的网关配置。

    所有字段都可能为空字符串；endpoint 或 secret_key 为空即视为“不可用”，
    由调用方通过 is_usable 判断，而不是依赖异常。
    """

    endpoint: str = ""
    secret_key: str = ""
    model: str = ""
    system_prompt: str = ""

    @property
    def is_usable(self) -> bool:
        return bool(self.endpoint) and bool(self.secret_key)

    @classmethod
    def empty(cls) -> "Configuration":
        return cls()


@dataclass
class ChatMessage:
    """一条对话消息。

    - role: system/user/assistant/tool。
    - content: 纯文本内容。
    - tool_call_id: role 为 tool 时关联的工具调用 ID。
    - extra: 其他需要原样透传给网关的字段（如 assistant 的 tool_calls）。
    """

    role: Role
    content: str
    tool_call_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"role": self.role}
        if self.content:
            payload["content"] = self.content
        if self.tool_call_id:
            payload["tool_call_id"] = self.tool_call_id
        for key, value in self.extra.items():
            if value is not None and value != "":
                payload[key] = value
        return payload


@dataclass
class CompletionOptions:
    """get_chat_completion 的可选参数，未设置的字段使用默认值。"""

    model: Optional[str] = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    tools: Optional[List[ToolSpec]] = None
    tool_choice: str = DEFAULT_TOOL_CHOICE
    fingerprint: Optional[str] = None


@dataclass(frozen=True)
class StreamEvent:
    """流式响应中的一段增量文本。"""

    text: str


@dataclass(frozen=True)
class ModelEntry:
    """模型列表中的一项。"""

    id: str
    display_name: str
