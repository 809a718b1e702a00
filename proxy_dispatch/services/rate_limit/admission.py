"""
生成槽位准入控制

生成类请求在真正发出前，需要先从外部计数服务申请一个“生成槽位”
（按 服务器 + 冷却窗口 计数）。准入是建议性的，不是硬门槛：

1. 计数服务本身出错（网络/数据库）-> 视为已获取，立即放行（fail open）
2. 服务返回“拒绝” -> 固定间隔退避后重试，最多 max_attempts 次
3. 重试耗尽仍被拒绝 -> 照样放行，不无限挂起

永久阻塞用户比偶尔超额放行更糟糕。
计数服务的并发安全由服务自身保证，这里不加锁。
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import httpx

from proxy_dispatch.clients.http_client import HTTPClientPool
from proxy_dispatch.config.constants import AdmissionDefaults
from proxy_dispatch.core.exceptions import SlotServiceError
from proxy_dispatch.core.logger import logger
from proxy_dispatch.models.dispatch import Server

StatusCallback = Callable[[str], None]
SleepFn = Callable[[float], Awaitable[None]]

STATUS_QUEUEING = "Queueing..."
STATUS_PROCESSING = "Processing..."


def queue_position_status(position: int) -> str:
    return f"Queue position {position}... waiting..."


def emit_status(on_status: StatusCallback | None, message: str) -> None:
    """状态回调纯观察用途，回调自身的异常不能影响分发"""
    if on_status is None:
        return
    try:
        on_status(message)
    except Exception as e:
        logger.debug("状态回调异常（已忽略）: {}", e)


class SlotService(Protocol):
    """外部槽位计数服务：返回是否获取到槽位，服务不可用时抛异常"""

    async def request_generation_slot(self, cooldown_seconds: int, server_url: str) -> bool: ...


class AlwaysGrantSlotService:
    """未配置计数服务时使用：总是放行"""

    async def request_generation_slot(self, cooldown_seconds: int, server_url: str) -> bool:
        return True


class RpcSlotService:
    """
    通过 HTTP RPC 调用远程过程 request_generation_slot

    POST {base_url}/rest/v1/rpc/request_generation_slot
    body: {"cooldown_seconds": 10, "server_url": "https://s1.example.com"}
    响应: JSON 布尔值
    """

    RPC_PATH = "/rest/v1/rpc/request_generation_slot"

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client = client
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self.client is not None:
            return self.client
        return HTTPClientPool.get_client("slot_rpc", timeout=self.timeout)

    async def request_generation_slot(self, cooldown_seconds: int, server_url: str) -> bool:
        payload = {"cooldown_seconds": cooldown_seconds, "server_url": server_url}
        try:
            response = await self._get_client().post(
                f"{self.base_url}{self.RPC_PATH}",
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise SlotServiceError(f"槽位服务请求失败: {e!r}") from e

        if response.status_code >= 400:
            raise SlotServiceError(
                f"槽位服务返回错误 HTTP {response.status_code}: {response.text[:200]}"
            )
        try:
            data = response.json()
        except ValueError as e:
            raise SlotServiceError("槽位服务返回非 JSON 响应") from e
        return data is True


class RedisSlotService:
    """
    基于 Redis 的槽位计数：SET slot:{server_url} token NX EX cooldown

    键存在期间（冷却窗口内）其他请求会被拒绝。
    """

    KEY_PREFIX = "slot:"

    def __init__(self, redis_client: Any) -> None:
        self.redis = redis_client

    def _redis_key(self, server_url: str) -> str:
        return f"{self.KEY_PREFIX}{server_url.rstrip('/')}"

    async def request_generation_slot(self, cooldown_seconds: int, server_url: str) -> bool:
        token = str(uuid.uuid4())
        try:
            acquired = await self.redis.set(
                self._redis_key(server_url), token, nx=True, ex=max(int(cooldown_seconds), 1)
            )
        except Exception as e:
            raise SlotServiceError(f"Redis 槽位计数失败: {e}") from e
        return bool(acquired)

    async def aclose(self) -> None:
        await self.redis.aclose()


class AdmissionController:
    """
    准入控制器

    Args:
        slot_service: 外部槽位计数服务
        max_attempts: 被拒绝时的最大尝试次数
        backoff_seconds: 被拒绝后的等待间隔
        sleep: 可注入的异步 sleep（测试中替换为不等待的实现）
    """

    def __init__(
        self,
        slot_service: SlotService | None = None,
        *,
        max_attempts: int = AdmissionDefaults.MAX_ATTEMPTS,
        backoff_seconds: float = AdmissionDefaults.BACKOFF_SECONDS,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.slot_service: SlotService = slot_service or AlwaysGrantSlotService()
        self.max_attempts = max(max_attempts, 1)
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    async def aclose(self) -> None:
        """关闭槽位服务持有的连接（如 Redis 客户端）"""
        close = getattr(self.slot_service, "aclose", None)
        if close is not None:
            await close()

    async def acquire_slot(
        self,
        server: Server,
        cooldown_seconds: int = AdmissionDefaults.COOLDOWN_SECONDS,
        on_status: StatusCallback | None = None,
    ) -> bool:
        """
        申请生成槽位（尽力而为）

        Returns:
            True 表示获取到槽位或计数服务不可用而放行；
            False 表示重试耗尽仍被拒绝、但依然放行
        """
        emit_status(on_status, STATUS_QUEUEING)

        acquired = False
        for attempt in range(1, self.max_attempts + 1):
            try:
                granted = await self.slot_service.request_generation_slot(
                    cooldown_seconds, server.url
                )
            except Exception as e:
                logger.warning("[Admission] 槽位服务不可用，直接放行: {}", e)
                acquired = True
                break

            if granted:
                logger.debug("[Admission] 第 {} 次申请获取到槽位: {}", attempt, server.name)
                acquired = True
                break

            emit_status(on_status, queue_position_status(attempt))
            if attempt < self.max_attempts:
                await self._sleep(self.backoff_seconds)

        if not acquired:
            logger.warning(
                "[Admission] {} 次申请均被拒绝，仍然放行: {}", self.max_attempts, server.name
            )

        emit_status(on_status, STATUS_PROCESSING)
        return acquired
