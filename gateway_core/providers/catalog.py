"""网关模型列表。

ModelCatalog.list_models() 永不抛异常：凭据缺失、请求失败/超时、
非 200 状态码或返回空列表时，一律返回默认模型列表。
"""

from typing import Dict, List, Optional

import httpx

from gateway_core.config.resolver import ConfigResolver
from gateway_core.config.settings import settings
from gateway_core.domain.models import ModelEntry
from gateway_core.infrastructure.logging.logger import LoggerSink, logger as default_logger
from gateway_core.providers.litellm_client import TRANSPORT_ERRORS
from gateway_core.providers.registry import default_models, format_model_name


class ModelCatalog:
    def __init__(
        self,
        resolver: Optional[ConfigResolver] = None,
        cfg=None,
        logger: Optional[LoggerSink] = None,
    ):
        self._settings = cfg or settings
        self._logger = logger or default_logger
        self._resolver = resolver or ConfigResolver(logger=self._logger)

    def list_models(
        self,
        endpoint: Optional[str] = None,
        secret_key: Optional[str] = None,
    ) -> List[ModelEntry]:
        if not (endpoint and secret_key):
            config = self._resolver.resolve()
            endpoint = endpoint or config.endpoint
            secret_key = secret_key or config.secret_key
        if not endpoint or not secret_key:
            return default_models()

        try:
            with httpx.Client(timeout=self._settings.models_timeout, trust_env=False) as client:
                resp = client.get(
                    f"{endpoint.rstrip('/')}/models",
                    headers={
                        "Authorization": f"Bearer {secret_key}",
                        "Content-Type": "application/json",
                    },
                )
        except TRANSPORT_ERRORS as e:
            self._logger.warning(
                f"Failed to fetch models from LiteLLM API: {e}",
                extra={"extra": {"error_type": type(e).__name__}},
            )
            return default_models()

        if resp.status_code != 200:
            self._logger.warning(
                f"Failed to fetch models from LiteLLM API: HTTP {resp.status_code}",
                extra={"extra": {"http_status": resp.status_code}},
            )
            return default_models()

        try:
            data = resp.json()
        except ValueError as e:
            self._logger.warning(f"Failed to fetch models from LiteLLM API: {e}")
            return default_models()

        models = self._parse_models(data)
        return models or default_models()

    def as_choices(
        self,
        endpoint: Optional[str] = None,
        secret_key: Optional[str] = None,
    ) -> Dict[str, str]:
        """{展示名: 模型 ID}，供宿主的下拉框使用，保持顺序。"""

        return {m.display_name: m.id for m in self.list_models(endpoint, secret_key)}

    @staticmethod
    def format_model_name(model_id: str) -> str:
        return format_model_name(model_id)

    @staticmethod
    def _parse_models(data) -> List[ModelEntry]:
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return []
        models: List[ModelEntry] = []
        seen: set[str] = set()
        for item in items:
            model_id = item.get("id") if isinstance(item, dict) else None
            if not isinstance(model_id, str) or not model_id or model_id in seen:
                continue
            seen.add(model_id)
            models.append(ModelEntry(id=model_id, display_name=format_model_name(model_id)))
        return models
