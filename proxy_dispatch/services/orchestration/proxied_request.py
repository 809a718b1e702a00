"""
代理请求服务

调用链：
    调用方 -> 准入控制（仅生成类请求）-> 尝试计划 -> 串行分发 -> 结果上报（仅最终失败）

多个分发调用可以并发执行（例如批量生成的每个槽位一个），
它们只共享只读的凭据存储和服务器目录，各自拥有独立的尝试计划。
"""

from __future__ import annotations

import random
from typing import Any

import redis.asyncio as aioredis

from proxy_dispatch.clients.http_client import close_http_clients
from proxy_dispatch.config import config
from proxy_dispatch.core.enums import RequestKind, ServiceType
from proxy_dispatch.core.exceptions import ExhaustedError
from proxy_dispatch.core.logger import logger
from proxy_dispatch.models.dispatch import DispatchResult
from proxy_dispatch.services.credentials.store import CredentialStore
from proxy_dispatch.services.orchestration.outcome_reporter import OutcomeReporter
from proxy_dispatch.services.orchestration.plan_builder import AttemptPlanBuilder, PlanLimits
from proxy_dispatch.services.orchestration.request_dispatcher import (
    RequestDispatcher,
    ResultExtractor,
)
from proxy_dispatch.services.rate_limit.admission import (
    AdmissionController,
    RedisSlotService,
    RpcSlotService,
    SlotService,
    StatusCallback,
)
from proxy_dispatch.services.servers.directory import ServerDirectory


class ProxiedRequestService:
    """带准入控制和故障转移的代理请求服务"""

    def __init__(
        self,
        store: CredentialStore,
        directory: ServerDirectory,
        *,
        dispatcher: RequestDispatcher | None = None,
        admission: AdmissionController | None = None,
        reporter: OutcomeReporter | None = None,
        limits: PlanLimits | None = None,
        rng: random.Random | None = None,
        cooldown_seconds: int = config.admission_cooldown_seconds,
    ) -> None:
        self.store = store
        self.directory = directory
        self.plan_builder = AttemptPlanBuilder(store, directory, limits=limits, rng=rng)
        self.dispatcher = dispatcher or RequestDispatcher()
        self.admission = admission or AdmissionController()
        self.reporter = reporter or OutcomeReporter()
        self.cooldown_seconds = cooldown_seconds

    async def aclose(self) -> None:
        """释放服务持有的外部连接（槽位计数服务）"""
        await self.admission.aclose()

    async def execute(
        self,
        relative_path: str,
        service_type: ServiceType | str,
        body: Any,
        log_context: str,
        *,
        kind: RequestKind = RequestKind.AUXILIARY,
        specific_token: str | None = None,
        on_status: StatusCallback | None = None,
        result_extractor: ResultExtractor | None = None,
        summary: str | None = None,
    ) -> DispatchResult:
        """
        执行一次代理请求

        Args:
            relative_path: 相对路径，例如 "/generate"
            service_type: 服务类型（veo / imagen）
            body: JSON 请求体（对分发器不透明）
            log_context: 日志上下文标签
            kind: 请求类别，GENERATION 会先申请生成槽位
            specific_token: 显式凭据（严格模式）
            on_status: 进度回调（"Queueing..." / "Processing..."）
            result_extractor: 从 2xx 响应中提取预期结果，返回 None 视为缺少结果
            summary: 失败记录中的请求摘要（例如截断的 prompt）

        Raises:
            PreconditionError: 没有可用凭据
            TerminalRequestError: 请求内容被拒绝
            ExhaustedError: 所有尝试失败
        """
        service = ServiceType(service_type)
        logger.info("[{}] Starting proxied request: {}{}", log_context, service.value, relative_path)

        if kind == RequestKind.GENERATION:
            await self.admission.acquire_slot(
                self.directory.current_server(service),
                cooldown_seconds=self.cooldown_seconds,
                on_status=on_status,
            )

        plan = self.plan_builder.build(service, specific_token=specific_token, kind=kind)

        try:
            return await self.dispatcher.dispatch(
                plan,
                service,
                relative_path,
                body,
                username=self.store.current_username(),
                result_extractor=result_extractor,
                log_context=log_context,
            )
        except ExhaustedError as e:
            self.reporter.report_failure(
                label=log_context,
                error=e.last_error.message,
                attempts=e.attempts,
                mode=plan.mode,
                summary=summary,
            )
            raise


def build_slot_service() -> SlotService | None:
    """按环境配置选择槽位计数服务：Redis > RPC > 不限制"""
    if config.slot_redis_url:
        return RedisSlotService(aioredis.from_url(config.slot_redis_url, decode_responses=True))
    if config.slot_rpc_url:
        return RpcSlotService(config.slot_rpc_url, config.slot_rpc_key)
    return None


def build_default_service(
    store: CredentialStore | None = None,
    directory: ServerDirectory | None = None,
) -> ProxiedRequestService:
    """按环境配置组装默认服务"""
    slot_service = build_slot_service()
    return ProxiedRequestService(
        store or CredentialStore(max_eligible=config.pool_max_eligible),
        directory or ServerDirectory(local_url=config.local_proxy_url),
        admission=AdmissionController(
            slot_service,
            max_attempts=config.admission_max_attempts,
            backoff_seconds=config.admission_backoff_seconds,
        ),
    )


_default_service: ProxiedRequestService | None = None


def configure_default_service(service: ProxiedRequestService | None) -> None:
    global _default_service
    _default_service = service


def get_default_service() -> ProxiedRequestService:
    global _default_service
    if _default_service is None:
        _default_service = build_default_service()
    return _default_service


async def execute_proxied_request(
    relative_path: str,
    service_type: ServiceType | str,
    body: Any,
    log_context: str,
    specific_token: str | None = None,
    on_status: StatusCallback | None = None,
    **kwargs: Any,
) -> DispatchResult:
    """使用默认服务执行代理请求的便捷函数"""
    return await get_default_service().execute(
        relative_path,
        service_type,
        body,
        log_context,
        specific_token=specific_token,
        on_status=on_status,
        **kwargs,
    )


async def close_default_service() -> None:
    """关闭默认服务（包括 SLOT_REDIS_URL 创建的 Redis 客户端）和全局 HTTP 客户端"""
    global _default_service
    if _default_service is not None:
        await _default_service.aclose()
        _default_service = None
    await close_http_clients()
