"""LLM 网关集成层。

该包下的模块负责：
- 定义客户端抽象接口 (base)。
- 请求体构造 (payload) 与流式响应解析 (stream)。
- 模型展示名与默认模型列表 (registry)，模型列表获取 (catalog)。
- LiteLLM 网关的具体实现 (litellm_client)。
"""

from typing import Optional

from gateway_core.config.provider import ConfigProvider
from gateway_core.config.resolver import ConfigResolver
from gateway_core.config.settings import settings
from gateway_core.infrastructure.logging.logger import LoggerSink
from gateway_core.providers.base import GatewayClient
from gateway_core.providers.catalog import ModelCatalog
from gateway_core.providers.litellm_client import LiteLLMClient


def create_client(
    provider: Optional[ConfigProvider] = None,
    logger: Optional[LoggerSink] = None,
) -> GatewayClient:
    """根据宿主的配置提供方创建客户端，未提供时从 settings 读取凭据。"""

    resolver = ConfigResolver(provider=provider, logger=logger)
    return LiteLLMClient(resolver=resolver, cfg=settings, logger=logger)


def create_catalog(
    provider: Optional[ConfigProvider] = None,
    logger: Optional[LoggerSink] = None,
) -> ModelCatalog:
    resolver = ConfigResolver(provider=provider, logger=logger)
    return ModelCatalog(resolver=resolver, cfg=settings, logger=logger)
