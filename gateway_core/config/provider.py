"""宿主配置提供方协议及两种内置实现。

网关客户端不持有凭据，只通过 ConfigProvider 按集成名读取 key/value：

- is_configured(name): 该集成是否已配置。
- get_keys(name): 该集成保存的凭据字典。

SettingsConfigProvider 从全局 settings（环境变量 / .env / config.yaml）读取，
StaticConfigProvider 适合自行管理密钥的宿主以及测试。
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Protocol

from gateway_core.config.settings import settings as default_settings

CREDENTIAL_FIELDS = ("litellm_endpoint", "litellm_secret_key", "ai_model", "pre_prompt")


@dataclass(frozen=True)
class IntegrationSpec:
    """宿主中保存网关凭据的集成描述。"""

    name: str
    display_name: str
    required_key_fields: Dict[str, str]


AI_CONNECTION = IntegrationSpec(
    name="AiConnection",
    display_name="AI Connection Settings",
    required_key_fields={
        "litellm_endpoint": "LiteLLM Endpoint",
        "litellm_secret_key": "LiteLLM Secret Key",
    },
)

INTEGRATION_REGISTRY: Mapping[str, IntegrationSpec] = {
    AI_CONNECTION.name: AI_CONNECTION,
}


def get_integration_spec(name: str) -> Optional[IntegrationSpec]:
    """根据名称获取 IntegrationSpec，名称不区分大小写；未知集成返回 None。"""

    key = name.lower()
    for k, spec in INTEGRATION_REGISTRY.items():
        if k.lower() == key:
            return spec
    return None


class ConfigProvider(Protocol):
    """宿主配置提供方协议。"""

    def is_configured(self, name: str) -> bool:
        ...

    def get_keys(self, name: str) -> Mapping[str, str]:
        ...


def _has_required_keys(name: str, keys: Mapping[str, str]) -> bool:
    spec = get_integration_spec(name)
    if spec is None:
        return bool(keys)
    return all(keys.get(field) for field in spec.required_key_fields)


class SettingsConfigProvider:
    """从 Settings 对象读取凭据，只认 settings.integration_name 对应的集成。"""

    def __init__(self, cfg=None):
        self._settings = cfg or default_settings

    def get_keys(self, name: str) -> Mapping[str, str]:
        if name.lower() != self._settings.integration_name.lower():
            return {}
        keys: Dict[str, str] = {}
        for field in CREDENTIAL_FIELDS:
            value = getattr(self._settings, field, None)
            if value:
                keys[field] = value
        return keys

    def is_configured(self, name: str) -> bool:
        return _has_required_keys(name, self.get_keys(name))


class StaticConfigProvider:
    """内存中的集成凭据表：{集成名: {key: value}}。"""

    def __init__(self, integrations: Optional[Mapping[str, Mapping[str, str]]] = None):
        self._integrations: Dict[str, Dict[str, str]] = {
            name: dict(keys) for name, keys in (integrations or {}).items()
        }

    def set_keys(self, name: str, keys: Mapping[str, str]) -> None:
        self._integrations[name] = dict(keys)

    def get_keys(self, name: str) -> Mapping[str, str]:
        return dict(self._integrations.get(name, {}))

    def is_configured(self, name: str) -> bool:
        if name not in self._integrations:
            return False
        return _has_required_keys(name, self._integrations[name])
