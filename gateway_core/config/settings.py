"""配置管理模块。

支持从环境变量、.env 以及 gateway.yaml / config.yaml 加载配置。
凭据字段（litellm_endpoint 等）只作为 SettingsConfigProvider 的数据来源，
网关客户端每次调用都会重新读取，不在这里缓存解析结果。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


YAML_SECTION = "gateway"


def _config_file_candidates() -> List[Path]:
    explicit = os.getenv("GATEWAY_CONFIG_FILE")
    if explicit:
        # 显式指定时只读这一个文件
        return [Path(explicit).expanduser()]
    return [Path.cwd() / "gateway.yaml", Path.cwd() / "config.yaml"]


def _load_config_from_yaml() -> Dict[str, Any]:
    """读取第一个存在的 YAML 配置文件。

    文件中若有 ``gateway:`` 段则只取该段，否则整个文件都视为网关配置，
    这样宿主可以把网关凭据和自己的配置放在同一个 config.yaml 里。
    """
    for path in _config_file_candidates():
        if not path.is_file():
            continue
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
            continue
        section = data.get(YAML_SECTION, data) if isinstance(data, dict) else None
        if isinstance(section, dict):
            return section
        warnings.warn(f"Config file {path} has no usable mapping, ignored")
    return {}


class GatewaySettings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- 集成与凭据 ----
    integration_name: str = Field(
        default="AiConnection",
        description="宿主中保存网关凭据的集成名称",
    )
    litellm_endpoint: Optional[str] = Field(default=None, description="LiteLLM 网关地址")
    litellm_secret_key: Optional[str] = Field(default=None, description="LiteLLM 密钥")
    ai_model: Optional[str] = Field(default=None, description="默认模型 ID")
    pre_prompt: Optional[str] = Field(default=None, description="系统提示词")

    # ---- 超时（秒） ----
    chat_timeout: float = Field(default=120.0, ge=1.0, description="对话接口超时时间")
    transcription_timeout: float = Field(default=60.0, ge=1.0, description="语音转写超时时间")
    models_timeout: float = Field(default=10.0, ge=1.0, description="模型列表超时时间")

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_to_file: bool = Field(default=True, description="是否写入日志文件")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("litellm_endpoint")
    @classmethod
    def strip_endpoint(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = GatewaySettings()

# 类型别名，让外部代码可以使用 Settings 类型
Settings = GatewaySettings
