"""按次解析网关配置。

ConfigResolver.resolve() 永不抛异常：集成不存在、未配置或读取出错时，
返回全空的 Configuration 并记录 warning，由调用方检查 is_usable。
"""

from typing import Optional

from gateway_core.config.provider import ConfigProvider, SettingsConfigProvider
from gateway_core.config.settings import settings
from gateway_core.domain.models import Configuration
from gateway_core.infrastructure.logging.logger import LoggerSink, logger as default_logger


class ConfigResolver:
    """从宿主配置提供方读取凭据，每次调用都重新读取，不做缓存。"""

    def __init__(
        self,
        provider: Optional[ConfigProvider] = None,
        integration_name: Optional[str] = None,
        logger: Optional[LoggerSink] = None,
    ):
        self._provider = provider or SettingsConfigProvider()
        self._integration_name = integration_name or settings.integration_name
        self._logger = logger or default_logger

    @property
    def integration_name(self) -> str:
        return self._integration_name

    def resolve(self) -> Configuration:
        try:
            if not self._provider.is_configured(self._integration_name):
                self._logger.warning(
                    f"Integration {self._integration_name} is not configured",
                    extra={"extra": {"integration": self._integration_name}},
                )
                return Configuration.empty()
            keys = self._provider.get_keys(self._integration_name) or {}
            return Configuration(
                endpoint=str(keys.get("litellm_endpoint") or ""),
                secret_key=str(keys.get("litellm_secret_key") or ""),
                model=str(keys.get("ai_model") or ""),
                system_prompt=str(keys.get("pre_prompt") or ""),
            )
        except Exception as e:
            # 宿主的存储层可能抛出任意异常，这里统一降级为空配置
            self._logger.warning(
                f"Failed to get AI Connection configuration: {e}",
                extra={"extra": {"integration": self._integration_name, "error": str(e)}},
            )
            return Configuration.empty()
