"""
全局 HTTP 客户端池

所有分发调用复用同一个 httpx.AsyncClient（keep-alive 连接），
单个调用内的尝试是串行的，并发来自多个独立的分发调用。
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from proxy_dispatch.config import config
from proxy_dispatch.core.logger import logger

_default_client_lock = asyncio.Lock()


def _default_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        connect=config.http_connect_timeout,
        read=config.http_read_timeout,
        write=config.http_write_timeout,
        pool=config.http_pool_timeout,
    )


def _default_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=config.http_max_connections,
        max_keepalive_connections=config.http_keepalive_connections,
        keepalive_expiry=config.http_keepalive_expiry,
    )


class HTTPClientPool:
    """
    全局 HTTP 客户端池单例

    - 默认客户端：所有代理服务器共用（不同 base_url 由请求 URL 决定）
    - 命名客户端：需要特殊配置的场景（例如槽位 RPC 服务）
    """

    _instance: HTTPClientPool | None = None
    _default_client: httpx.AsyncClient | None = None
    _clients: dict[str, httpx.AsyncClient] = {}

    def __new__(cls) -> "HTTPClientPool":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    async def get_default_client_async(cls) -> httpx.AsyncClient:
        """获取默认 HTTP 客户端（并发首次调用安全）"""
        if cls._default_client is not None and not cls._default_client.is_closed:
            return cls._default_client

        async with _default_client_lock:
            # 双重检查，避免重复创建
            if cls._default_client is None or cls._default_client.is_closed:
                cls._default_client = httpx.AsyncClient(
                    timeout=_default_timeout(),
                    limits=_default_limits(),
                    follow_redirects=True,
                )
                logger.info(
                    "全局HTTP客户端已初始化: max_connections={}, keepalive={}, read_timeout={}s",
                    config.http_max_connections,
                    config.http_keepalive_connections,
                    config.http_read_timeout,
                )
        return cls._default_client

    @classmethod
    def get_client(cls, name: str, **kwargs: Any) -> httpx.AsyncClient:
        """
        获取或创建命名的 HTTP 客户端

        Args:
            name: 客户端标识符
            **kwargs: httpx.AsyncClient 的配置参数（覆盖默认值）
        """
        client = cls._clients.get(name)
        if client is None or client.is_closed:
            default_config: dict[str, Any] = {
                "timeout": _default_timeout(),
                "follow_redirects": True,
            }
            default_config.update(kwargs)
            client = httpx.AsyncClient(**default_config)
            cls._clients[name] = client
            logger.debug("创建命名HTTP客户端: {}", name)
        return client

    @classmethod
    async def close_all(cls) -> None:
        """关闭所有 HTTP 客户端"""
        if cls._default_client is not None:
            await cls._default_client.aclose()
            cls._default_client = None
            logger.info("默认HTTP客户端已关闭")

        for name, client in cls._clients.items():
            try:
                await client.aclose()
                logger.debug("命名HTTP客户端已关闭: {}", name)
            except Exception as e:
                logger.warning("关闭命名HTTP客户端失败: {} ({})", name, e)
        cls._clients.clear()


async def get_http_client() -> httpx.AsyncClient:
    """获取默认 HTTP 客户端的便捷函数"""
    return await HTTPClientPool.get_default_client_async()


async def close_http_clients() -> None:
    """关闭所有 HTTP 客户端的便捷函数"""
    await HTTPClientPool.close_all()
