"""
尝试计划构建器

根据调用模式生成有序、去重的 (凭据, 服务器) 尝试序列，每次调用重新构建。

严格模式（调用方显式提供凭据）：
    1. (指定凭据, 当前服务器)
    2. 非纯校验请求：追加少量共享池兜底（同一服务器），
       让多步流程在单个凭据失效时无需放弃

稳健模式：
    阶段 1（当前服务器）：个人凭据 -> 最新共享池凭据的随机子集
    阶段 2（备用服务器）：随机选 1~2 台，每台重复缩减版的阶段 1
                         （个人凭据 -> 更小的共享池子集）

随机打乱用于分散并发调用方的负载，随机源可注入以便测试。
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass

from proxy_dispatch.config import config
from proxy_dispatch.core.enums import DispatchMode, RequestKind, ServiceType
from proxy_dispatch.core.exceptions import PreconditionError
from proxy_dispatch.core.logger import logger
from proxy_dispatch.models.dispatch import AttemptPlan, Credential, Server
from proxy_dispatch.services.credentials.store import CredentialStore, ExplicitCredentialSource
from proxy_dispatch.services.servers.directory import ServerDirectory

NO_CREDENTIALS_MESSAGE = (
    "No authentication tokens available. Please refresh the page or contact admin."
)


@dataclass(frozen=True)
class PlanLimits:
    """计划规模（可调配置，不是契约）"""

    primary_pool_sample: int = config.primary_pool_sample
    strict_fallback_count: int = config.strict_fallback_count
    backup_server_count: int = config.backup_server_count
    backup_pool_sample: int = config.backup_pool_sample


class AttemptPlanBuilder:
    """尝试计划构建器（纯逻辑，不做网络 I/O）"""

    def __init__(
        self,
        store: CredentialStore,
        directory: ServerDirectory,
        limits: PlanLimits | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.directory = directory
        self.limits = limits or PlanLimits()
        self.rng = rng or random.Random()

    def build(
        self,
        service_type: ServiceType | str,
        *,
        specific_token: str | None = None,
        kind: RequestKind = RequestKind.AUXILIARY,
    ) -> AttemptPlan:
        """
        构建尝试计划

        Raises:
            PreconditionError: 没有任何可用凭据（个人/共享池/指定凭据均为空）
        """
        service = ServiceType(service_type)
        current = self.directory.current_server(service)

        explicit = ExplicitCredentialSource(specific_token).credentials()
        if explicit:
            plan = self._build_strict(explicit[0], current, kind)
        else:
            plan = self._build_robust(current)

        if plan.is_empty:
            logger.warning("[Plan] 没有可用凭据，无法构建尝试计划 ({})", service.value)
            raise PreconditionError(NO_CREDENTIALS_MESSAGE)

        logger.debug(
            "[Plan] mode={} attempts={} servers={}",
            plan.mode.value,
            len(plan),
            sorted({pair.server.name for pair in plan}),
        )
        return plan

    def _sample(self, credentials: Sequence[Credential], size: int) -> list[Credential]:
        """从已按新旧排序的凭据中取最新的 size 个并打乱"""
        if size <= 0 or not credentials:
            return []
        picked = list(credentials[:size])
        self.rng.shuffle(picked)
        return picked

    def _build_strict(self, specific: Credential, current: Server, kind: RequestKind) -> AttemptPlan:
        plan = AttemptPlan(mode=DispatchMode.STRICT)
        plan.append(specific, current)

        # 纯校验请求保持精确，不做任何替换
        if kind == RequestKind.HEALTH_CHECK:
            return plan

        pool = self.store.pool_credentials()
        for credential in self._sample(pool, self.limits.strict_fallback_count):
            plan.append(credential, current)
        return plan

    def _build_robust(self, current: Server) -> AttemptPlan:
        plan = AttemptPlan(mode=DispatchMode.ROBUST)
        personal = self.store.personal_credential()
        pool = self.store.pool_credentials()

        # 阶段 1：当前服务器
        if personal is not None:
            plan.append(personal, current)
        for credential in self._sample(pool, self.limits.primary_pool_sample):
            plan.append(credential, current)

        if personal is None and not pool:
            return plan

        # 阶段 2：备用服务器（恢复服务器级故障，而不仅是凭据级故障）
        backups = self.directory.alternate_servers(current)[: max(self.limits.backup_server_count, 0)]
        for server in backups:
            if personal is not None:
                plan.append(personal, server)
            for credential in self._sample(pool, self.limits.backup_pool_sample):
                plan.append(credential, server)

        return plan
