"""
代理请求构建工具

负责:
- 根据服务器与服务类型生成请求 URL
- 构建请求头（Bearer 凭据 + 调用方身份）
- URL / 凭据脱敏（用于日志记录）
"""

from __future__ import annotations

import re

from proxy_dispatch.config.constants import DispatchDefaults

# URL 中需要脱敏的查询参数（正则模式）
_SENSITIVE_QUERY_PARAMS_PATTERN = re.compile(
    r"([?&])(key|api_key|apikey|token|secret|password|credential)=([^&]*)",
    re.IGNORECASE,
)

UNKNOWN_USERNAME = "unknown"


def redact_url_for_log(url: str) -> str:
    """将 ?token=xxx 替换为 ?token=***"""
    return _SENSITIVE_QUERY_PARAMS_PATTERN.sub(r"\1\2=***", url)


def mask_token(token: str) -> str:
    """只保留凭据末尾几位，例如 ...a1b2c3"""
    return f"...{token[-DispatchDefaults.TOKEN_SUFFIX_LENGTH:]}"


def normalize_base_url(url: str) -> str:
    return url.strip().rstrip("/")


def build_endpoint_url(base_url: str, service_type: str, relative_path: str) -> str:
    """
    生成代理端点 URL: {server}/api/{serviceType}{relativePath}

    兼容以下写法：
    - base_url 带或不带末尾斜杠
    - relative_path 带或不带前导斜杠
    """
    path = relative_path if relative_path.startswith("/") or not relative_path else f"/{relative_path}"
    return f"{normalize_base_url(base_url)}/api/{service_type}{path}"


def build_request_headers(token: str, username: str | None) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {token}",
        "x-user-username": username or UNKNOWN_USERNAME,
    }
