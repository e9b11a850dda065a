"""领域层模型与异常。

包含：
- models: Configuration / ChatMessage / CompletionOptions / StreamEvent / ModelEntry。
- exceptions: BusinessError 与 GatewayError 异常体系。
"""
