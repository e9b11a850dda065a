"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
网关客户端只对外暴露 GatewayError 体系，底层 httpx 异常不会泄漏给调用方。

GatewayError 分为四类：

- NotConfiguredError: endpoint / secret key 缺失，未发起任何网络请求。
- TransportFailureError: 连接失败、超时、DNS 错误或网关返回非 2xx。
- InvalidResponseError: 网关返回 2xx，但响应缺少约定字段。
- InvalidConversationError: 调用方提供的对话顺序不合法，未发起网络请求。
- ParseWarning: 流式响应中单行无法解析，只记录日志，不会被抛出。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "TRANSPORT_FAILURE"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如原始响应体、底层异常信息）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class GatewayError(BusinessError):
    """LLM 网关调用相关错误的基类。"""


class NotConfiguredError(GatewayError):
    """endpoint 或 secret key 未配置。"""

    def __init__(self, message: str = "LiteLLM endpoint and secret key must be configured", **extra):
        super().__init__(code="NOT_CONFIGURED", message=message, http_status=400, **extra)


class TransportFailureError(GatewayError):
    """网络层错误或网关返回错误状态码。"""

    def __init__(self, message: str, http_status: int = 502, **extra):
        super().__init__(code="TRANSPORT_FAILURE", message=message, http_status=http_status, **extra)


class InvalidResponseError(GatewayError):
    """网关响应缺少约定字段，extra["raw"] 保存原始响应体便于排查。"""

    def __init__(self, message: str, **extra):
        super().__init__(code="INVALID_RESPONSE", message=message, http_status=502, **extra)


class ParseWarning(GatewayError):
    """流式响应中的单行解析失败，非致命。"""

    def __init__(self, message: str, line: str = "", **extra):
        super().__init__(code="PARSE_WARNING", message=message, http_status=200, line=line, **extra)


class InvalidConversationError(GatewayError):
    """对话消息顺序不合法（system 消息不在首位），在发起请求之前抛出。"""

    def __init__(self, message: str = "System message must be the first message of the conversation", **extra):
        super().__init__(code="INVALID_CONVERSATION", message=message, http_status=400, **extra)
