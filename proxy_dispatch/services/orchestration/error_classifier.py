"""
错误分类器（纯逻辑，无副作用）

- 终止（ABORT）：HTTP 400，或错误消息中包含 safety / blocked（不区分大小写）。
  请求内容本身被拒绝，换凭据、换服务器都不会改变结果，继续尝试只会浪费配额并掩盖真实原因
- 重试（RETRY）：401 / 429 / 5xx / 其他非 2xx、网络层失败（连接错误、超时）、
  2xx 但缺少预期结果（上游偶发问题）
- 成功（SUCCESS）：2xx 且包含预期结果
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

TERMINAL_STATUS_CODES = frozenset({400})

# 内容被拒绝的标记词
TERMINAL_MESSAGE_MARKERS = ("safety", "blocked")

NO_RESULT_MESSAGE = "No result returned"


class ErrorAction(str, Enum):
    SUCCESS = "success"
    RETRY = "retry"
    ABORT = "abort"


@dataclass(frozen=True)
class Classification:
    action: ErrorAction
    message: str | None = None
    status_code: int | None = None


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 300


def has_terminal_marker(message: str | None) -> bool:
    if not message:
        return False
    lowered = message.lower()
    return any(marker in lowered for marker in TERMINAL_MESSAGE_MARKERS)


class ErrorClassifier:
    """错误分类器"""

    @staticmethod
    def classify_response(
        status_code: int,
        error_message: str | None,
        *,
        has_result: bool,
    ) -> Classification:
        """
        对一次 HTTP 响应分类

        Args:
            status_code: HTTP 状态码
            error_message: 从响应体中提取的错误消息（非 2xx 时）
            has_result: 响应体中是否包含预期结果
        """
        if is_success_status(status_code):
            if has_result:
                return Classification(ErrorAction.SUCCESS, status_code=status_code)
            return Classification(ErrorAction.RETRY, NO_RESULT_MESSAGE, status_code)

        message = error_message or f"API call failed ({status_code})"
        if status_code in TERMINAL_STATUS_CODES or has_terminal_marker(message):
            return Classification(ErrorAction.ABORT, message, status_code)
        return Classification(ErrorAction.RETRY, message, status_code)

    @staticmethod
    def classify_transport_error(message: str) -> Classification:
        """网络层失败（连接错误、超时）总是可重试"""
        return Classification(ErrorAction.RETRY, message)
