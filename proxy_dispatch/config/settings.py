"""
运行时配置

从环境变量读取，缺省值来自 constants.py。
"""

from __future__ import annotations

import os

from .constants import AdmissionDefaults, DispatchDefaults, HTTPDefaults


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


class Config:
    """进程级配置（只读）"""

    def __init__(self) -> None:
        # HTTP 客户端
        self.http_connect_timeout = _env_float("HTTP_CONNECT_TIMEOUT", HTTPDefaults.CONNECT_TIMEOUT)
        self.http_read_timeout = _env_float("HTTP_READ_TIMEOUT", HTTPDefaults.READ_TIMEOUT)
        self.http_write_timeout = _env_float("HTTP_WRITE_TIMEOUT", HTTPDefaults.WRITE_TIMEOUT)
        self.http_pool_timeout = _env_float("HTTP_POOL_TIMEOUT", HTTPDefaults.POOL_TIMEOUT)
        self.http_max_connections = _env_int("HTTP_MAX_CONNECTIONS", HTTPDefaults.MAX_CONNECTIONS)
        self.http_keepalive_connections = _env_int(
            "HTTP_KEEPALIVE_CONNECTIONS", HTTPDefaults.KEEPALIVE_CONNECTIONS
        )
        self.http_keepalive_expiry = _env_float(
            "HTTP_KEEPALIVE_EXPIRY", HTTPDefaults.KEEPALIVE_EXPIRY
        )

        # 本地开发时把所有服务类型固定到本地代理，例如 http://localhost:3001
        self.local_proxy_url: str | None = os.getenv("PROXY_LOCAL_URL") or None

        # 尝试计划
        self.pool_max_eligible = _env_int("POOL_MAX_ELIGIBLE", DispatchDefaults.POOL_MAX_ELIGIBLE)
        self.primary_pool_sample = _env_int(
            "POOL_PRIMARY_SAMPLE", DispatchDefaults.PRIMARY_POOL_SAMPLE
        )
        self.strict_fallback_count = _env_int(
            "STRICT_FALLBACK_COUNT", DispatchDefaults.STRICT_FALLBACK_COUNT
        )
        self.backup_server_count = _env_int(
            "BACKUP_SERVER_COUNT", DispatchDefaults.BACKUP_SERVER_COUNT
        )
        self.backup_pool_sample = _env_int("BACKUP_POOL_SAMPLE", DispatchDefaults.BACKUP_POOL_SAMPLE)

        # 准入控制
        self.admission_cooldown_seconds = _env_int(
            "ADMISSION_COOLDOWN_SECONDS", AdmissionDefaults.COOLDOWN_SECONDS
        )
        self.admission_backoff_seconds = _env_float(
            "ADMISSION_BACKOFF_SECONDS", AdmissionDefaults.BACKOFF_SECONDS
        )
        self.admission_max_attempts = _env_int(
            "ADMISSION_MAX_ATTEMPTS", AdmissionDefaults.MAX_ATTEMPTS
        )
        self.slot_rpc_url: str | None = os.getenv("SLOT_RPC_URL") or None
        self.slot_rpc_key: str | None = os.getenv("SLOT_RPC_KEY") or None
        # 配置后使用 Redis 做槽位计数（优先于 RPC）
        self.slot_redis_url: str | None = os.getenv("SLOT_REDIS_URL") or None


config = Config()
