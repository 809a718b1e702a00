"""
分发异常体系

- PreconditionError: 没有任何可用凭据，不发起网络请求，直接抛出
- TerminalRequestError: 请求内容本身被拒绝（HTTP 400 / 安全过滤），不重试
- TransientAttemptError: 单次尝试失败（鉴权/配额/服务器/网络），内部吸收，切换下一组合
- ExhaustedError: 所有尝试都以 TransientAttemptError 结束，携带最后一次的原因

TransientAttemptError 不会单独暴露给调用方，只有最后一个会被包装进 ExhaustedError。
"""

from __future__ import annotations

from typing import Any


class ProxyDispatchError(Exception):
    """所有分发异常的基类，message 为面向用户的消息"""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PreconditionError(ProxyDispatchError):
    """没有可用凭据（调用方应引导用户获取凭据，而不是重试）"""


class TerminalRequestError(ProxyDispatchError):
    """请求内容被拒绝，更换凭据或服务器都不会改变结果"""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        server_url: str | None = None,
        upstream_response: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.server_url = server_url
        self.upstream_response = upstream_response


class TransientAttemptError(ProxyDispatchError):
    """单次尝试的可重试失败"""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        server_url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.server_url = server_url


class ExhaustedError(ProxyDispatchError):
    """所有尝试均失败"""

    def __init__(self, last_error: TransientAttemptError, attempts: int) -> None:
        super().__init__(f"All attempts failed: {last_error.message}")
        self.last_error = last_error
        self.attempts = attempts


class SlotServiceError(Exception):
    """槽位计数服务自身不可用（网络/数据库错误），准入控制据此降级放行"""


__all__ = [
    "ProxyDispatchError",
    "PreconditionError",
    "TerminalRequestError",
    "TransientAttemptError",
    "ExhaustedError",
    "SlotServiceError",
]
