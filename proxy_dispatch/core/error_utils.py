"""
错误消息处理工具函数
"""

from __future__ import annotations

from typing import Any

from proxy_dispatch.config.constants import DispatchDefaults


def extract_response_error_message(data: Any, status_code: int) -> str:
    """
    从代理返回的 JSON 中提取人类可读的错误消息

    优先级：error.message > error（字符串）> message > "API call failed (<status>)"
    """
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            if isinstance(message, str) and message.strip():
                return message
        elif isinstance(error, str) and error.strip():
            return error

        message = data.get("message")
        if isinstance(message, str) and message.strip():
            return message

    return f"API call failed ({status_code})"


def synthesize_non_json_error(status_code: int, raw_text: str) -> dict[str, Any]:
    """代理返回非 JSON 内容时，构造携带原始状态码的错误体"""
    preview = raw_text[: DispatchDefaults.RAW_BODY_PREVIEW_LENGTH]
    return {"error": {"message": f"Proxy returned non-JSON ({status_code}): {preview}"}}


def extract_transport_error_message(error: Exception) -> str:
    """
    从网络层异常中提取消息

    httpx 的超时异常 str() 可能为空，回退到 repr 并带上异常类型。
    """
    error_str = str(error)
    if error_str:
        return f"{type(error).__name__}: {error_str}"
    return repr(error)


def extract_client_error_message(error: Exception) -> str:
    """提取面向最终用户的错误消息"""
    message = getattr(error, "message", None)
    if message and isinstance(message, str) and message.strip():
        return message
    return str(error) or repr(error)
