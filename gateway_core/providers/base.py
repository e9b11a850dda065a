"""网关客户端抽象接口。

宿主代码依赖此协议而不是具体实现，测试时可以替换为桩对象。
"""

from typing import Any, Callable, Dict, Iterable, Optional, Protocol, Sequence

from gateway_core.domain.models import CompletionOptions
from gateway_core.providers.payload import MessageLike


class GatewayClient(Protocol):
    """LLM 网关客户端协议。

    实现者需要提供：
    - name: 名称，用于日志。
    - get_completion / stream_completion / iter_completion: 单轮对话。
    - get_chat_completion: 带工具的多轮对话，返回完整响应 JSON。
    - speech_to_text: 音频转写。
    """

    name: str

    def get_completion(self, prompt: str) -> str:
        ...

    def stream_completion(self, prompt: str, on_chunk: Callable[[str], Any]) -> None:
        ...

    def iter_completion(self, prompt: str) -> Iterable[str]:
        ...

    def get_chat_completion(
        self,
        messages: Sequence[MessageLike],
        options: Optional[CompletionOptions] = None,
    ) -> Dict[str, Any]:
        ...

    def speech_to_text(
        self,
        audio: bytes,
        language: str = ...,
        model: str = ...,
        fingerprint: Optional[str] = None,
    ) -> str:
        ...
