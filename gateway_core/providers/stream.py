"""流式响应（text/event-stream 风格）增量解析。

StreamDecoder 按任意大小的字节块接收数据，只在遇到换行后才解码整行，
因此一行 data 被拆在两次 feed 之间（包括 UTF-8 多字节字符中间）也能正确处理。

行处理规则：

1. 去掉首尾空白；空行或不以 "data: " 开头的行直接跳过。
2. 去掉前缀后为 "[DONE]" 时进入终止状态，之后的 feed 全部忽略。
3. 其余按 JSON 解析；失败记录 ParseWarning 并继续处理下一行。
4. 解析成功且存在 choices[0].delta.content 时产出一个 StreamEvent。
"""

import json
from typing import Any, List, Optional

from gateway_core.domain.exceptions import ParseWarning
from gateway_core.domain.models import StreamEvent
from gateway_core.infrastructure.logging.logger import LoggerSink, logger as default_logger

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def extract_delta_content(data: Any) -> Optional[str]:
    """读取 choices[0].delta.content，结构不符时返回 None。"""

    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None


class StreamDecoder:
    """单个流式响应的解码器，每个请求使用独立实例。"""

    def __init__(self, logger: Optional[LoggerSink] = None):
        self._logger = logger or default_logger
        self._buffer = bytearray()
        self._done = False
        self.warnings: List[ParseWarning] = []

    def is_done(self) -> bool:
        return self._done

    def feed(self, chunk: bytes) -> List[StreamEvent]:
        if self._done or not chunk:
            return []
        self._buffer.extend(chunk)
        events: List[StreamEvent] = []
        while not self._done:
            newline = self._buffer.find(b"\n")
            if newline < 0:
                break
            raw_line = bytes(self._buffer[:newline])
            del self._buffer[: newline + 1]
            event = self._process_line(raw_line)
            if event is not None:
                events.append(event)
        if self._done:
            self._buffer.clear()
        return events

    def close(self) -> List[StreamEvent]:
        """连接结束（EOF）：处理残留的最后一行，然后进入终止状态。"""

        if self._done:
            return []
        events: List[StreamEvent] = []
        if self._buffer:
            raw_line = bytes(self._buffer)
            self._buffer.clear()
            event = self._process_line(raw_line)
            if event is not None:
                events.append(event)
        self._done = True
        return events

    def _process_line(self, raw_line: bytes) -> Optional[StreamEvent]:
        line = raw_line.decode("utf-8", errors="replace").strip()
        if not line or not line.startswith(DATA_PREFIX):
            return None
        data_str = line[len(DATA_PREFIX):]
        if data_str == DONE_SENTINEL:
            self._done = True
            return None
        try:
            data = json.loads(data_str)
        except json.JSONDecodeError as e:
            warning = ParseWarning(f"Failed to parse streaming response: {e}", line=line)
            self.warnings.append(warning)
            self._logger.warning(warning.message, extra={"extra": {"code": warning.code}})
            return None
        content = extract_delta_content(data)
        if content is None:
            return None
        return StreamEvent(text=content)
