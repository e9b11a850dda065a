"""对外 API 服务模块。

提供简化的函数接口供宿主应用调用，内部使用惰性创建的默认客户端。
宿主若自行管理凭据，可先调用 configure() 注入配置提供方与日志接收方。
"""

from typing import Any, Callable, Dict, List, Optional, Sequence

from gateway_core.config.provider import ConfigProvider
from gateway_core.domain.models import CompletionOptions, ModelEntry
from gateway_core.infrastructure.logging.logger import LoggerSink
from gateway_core.providers import create_catalog, create_client
from gateway_core.providers.base import GatewayClient
from gateway_core.providers.catalog import ModelCatalog
from gateway_core.providers.payload import MessageLike


_client: Optional[GatewayClient] = None
_catalog: Optional[ModelCatalog] = None
_provider: Optional[ConfigProvider] = None
_logger: Optional[LoggerSink] = None


def configure(provider: Optional[ConfigProvider] = None, logger: Optional[LoggerSink] = None) -> None:
    """替换默认的配置提供方 / 日志接收方，并丢弃已创建的默认实例。"""
    global _client, _catalog, _provider, _logger
    _provider = provider
    _logger = logger
    _client = None
    _catalog = None


def get_default_client() -> GatewayClient:
    """获取默认的网关客户端实例（单例）。"""
    global _client
    if _client is None:
        _client = create_client(provider=_provider, logger=_logger)
    return _client


def get_default_catalog() -> ModelCatalog:
    global _catalog
    if _catalog is None:
        _catalog = create_catalog(provider=_provider, logger=_logger)
    return _catalog


def get_completion(prompt: str) -> str:
    return get_default_client().get_completion(prompt)


def stream_completion(prompt: str, on_chunk: Callable[[str], Any]) -> None:
    get_default_client().stream_completion(prompt, on_chunk)


def get_chat_completion(
    messages: Sequence[MessageLike],
    options: Optional[CompletionOptions] = None,
) -> Dict[str, Any]:
    """运行带工具的对话。

    Args:
        messages: 完整对话，system 消息（若有）必须在首位
        options: 模型、温度、tools、fingerprint 等可选参数

    Returns:
        网关返回的完整响应 JSON

    Raises:
        domain.exceptions 中定义的 GatewayError
    """
    return get_default_client().get_chat_completion(messages, options)


def speech_to_text(
    audio: bytes,
    language: str = "auto",
    model: str = "whisper-1",
    fingerprint: Optional[str] = None,
) -> str:
    return get_default_client().speech_to_text(audio, language=language, model=model, fingerprint=fingerprint)


def list_models(endpoint: Optional[str] = None, secret_key: Optional[str] = None) -> List[ModelEntry]:
    return get_default_catalog().list_models(endpoint, secret_key)
