"""模型的静态配置。

本模块集中维护模型 ID 与展示名的映射表，以及网关不可用时的默认模型列表。
"""

from typing import List, Mapping, Tuple

from gateway_core.domain.models import ModelEntry


# 顺序即默认模型列表的展示顺序
_KNOWN_MODELS: Tuple[Tuple[str, str], ...] = (
    ("gpt-4", "GPT-4"),
    ("gpt-3.5-turbo", "GPT-3.5 Turbo"),
    ("claude-3-haiku-20240307", "Claude 3 Haiku"),
    ("claude-3-sonnet-20240229", "Claude 3 Sonnet"),
    ("claude-3-opus-20240229", "Claude 3 Opus"),
    ("llama-2-70b-chat", "Llama 2 70B"),
)

MODEL_NAME_MAP: Mapping[str, str] = dict(_KNOWN_MODELS)


def default_models() -> List[ModelEntry]:
    """网关不可达或未配置时使用的模型列表（每次返回新列表）。"""

    return [ModelEntry(id=model_id, display_name=name) for model_id, name in _KNOWN_MODELS]


def format_model_name(model_id: str) -> str:
    """模型 ID 转展示名：优先查表，否则把 -/_ 替换为空格并首字母大写。"""

    if model_id in MODEL_NAME_MAP:
        return MODEL_NAME_MAP[model_id]
    humanized = model_id.replace("-", " ").replace("_", " ")
    return humanized[:1].upper() + humanized[1:]
