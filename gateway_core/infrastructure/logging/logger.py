import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Protocol

from gateway_core.config.settings import settings

_BEARER_RE = re.compile(r"Bearer\s+\S+")


class LoggerSink(Protocol):
    """宿主注入的日志接收方，只要求 warning / error 两个级别。"""

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        ...

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        ...


class JsonFormatter(logging.Formatter):
    """一行一条 JSON 日志。

    code / integration / http_status 作为一级字段输出，便于按错误类型检索；
    其余 extra 字段原样合并。消息中的 Bearer token 会被遮盖。
    """

    LIFTED_FIELDS = ("code", "integration", "http_status")

    def format(self, record: logging.LogRecord) -> str:
        msg = _BEARER_RE.sub("Bearer ***", record.getMessage() or "")
        if settings.log_redact_content:
            msg = msg[:64]
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "event": msg,
        }
        extra = dict(getattr(record, "extra", None) or {})
        for key in self.LIFTED_FIELDS:
            value = extra.pop(key, None)
            if value is not None:
                payload[key] = value
        if extra:
            payload["context"] = extra
        if record.exc_info and record.exc_info[0] is not None:
            payload["error_type"] = record.exc_info[0].__name__
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger() -> logging.Logger:
    logger = logging.getLogger("gateway_core")
    logger.setLevel(logging.INFO)
    if logger.handlers or not settings.log_to_file:
        return logger
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / "gateway.log", encoding="utf-8")
    fh.setLevel(logging.INFO)
    fh.setFormatter(JsonFormatter())
    logger.addHandler(fh)
    return logger


logger = setup_logger()
