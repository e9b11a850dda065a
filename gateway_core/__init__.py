"""Gateway Core 顶层包。

该包提供 OpenAI 兼容 LLM 网关（LiteLLM）的客户端核心实现，
包括配置解析、请求体构造、流式响应解析、模型列表与统一错误模型。
"""

from gateway_core.config.provider import ConfigProvider, SettingsConfigProvider, StaticConfigProvider
from gateway_core.config.resolver import ConfigResolver
from gateway_core.domain.exceptions import (
    GatewayError,
    InvalidConversationError,
    InvalidResponseError,
    NotConfiguredError,
    ParseWarning,
    TransportFailureError,
)
from gateway_core.domain.models import ChatMessage, CompletionOptions, Configuration, ModelEntry, StreamEvent
from gateway_core.providers import create_catalog, create_client
from gateway_core.providers.catalog import ModelCatalog
from gateway_core.providers.litellm_client import LiteLLMClient
from gateway_core.providers.payload import PayloadBuilder
from gateway_core.providers.stream import StreamDecoder

__all__ = [
    "ChatMessage",
    "CompletionOptions",
    "ConfigProvider",
    "ConfigResolver",
    "Configuration",
    "GatewayError",
    "InvalidConversationError",
    "InvalidResponseError",
    "LiteLLMClient",
    "ModelCatalog",
    "ModelEntry",
    "NotConfiguredError",
    "ParseWarning",
    "PayloadBuilder",
    "SettingsConfigProvider",
    "StaticConfigProvider",
    "StreamDecoder",
    "StreamEvent",
    "TransportFailureError",
    "create_catalog",
    "create_client",
]
