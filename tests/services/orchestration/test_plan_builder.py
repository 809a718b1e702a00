import random
from collections.abc import Callable

import pytest
from conftest import pool_of

from proxy_dispatch.core.enums import CredentialSource, DispatchMode, RequestKind, ServiceType
from proxy_dispatch.core.exceptions import PreconditionError
from proxy_dispatch.services.credentials.store import CredentialStore
from proxy_dispatch.services.orchestration.plan_builder import (
    NO_CREDENTIALS_MESSAGE,
    AttemptPlanBuilder,
    PlanLimits,
)
from proxy_dispatch.services.servers.directory import ServerDirectory

LIMITS = PlanLimits(
    primary_pool_sample=5,
    strict_fallback_count=5,
    backup_server_count=2,
    backup_pool_sample=2,
)

StoreFactory = Callable[..., CredentialStore]


def _builder(store: CredentialStore, directory: ServerDirectory, seed: int = 1234) -> AttemptPlanBuilder:
    return AttemptPlanBuilder(store, directory, LIMITS, random.Random(seed))


class TestRobustPlan:
    def test_personal_first_then_pool_on_current_server(
        self, store_factory: StoreFactory, directory: ServerDirectory
    ) -> None:
        store = store_factory(personal="personal-token", pool=pool_of(12))

        plan = _builder(store, directory).build(ServiceType.VEO)

        assert plan.mode == DispatchMode.ROBUST
        assert plan[0].source == CredentialSource.PERSONAL
        assert plan[0].server.name == "S1"

        primary = [p for p in plan if p.server.name == "S1"]
        assert len(primary) == 1 + 5
        # 只从最新的 5 个共享池凭据中抽样
        newest = {f"pool-token-{i:02d}" for i in range(7, 12)}
        assert {p.credential.token for p in primary[1:]} == newest

    def test_current_server_precedes_backups(
        self, store_factory: StoreFactory, directory: ServerDirectory
    ) -> None:
        store = store_factory(personal="personal-token", pool=pool_of(12))

        plan = _builder(store, directory).build(ServiceType.VEO)

        names = [p.server.name for p in plan]
        first_backup = next(i for i, name in enumerate(names) if name != "S1")
        assert all(name == "S1" for name in names[:first_backup])
        assert all(name != "S1" for name in names[first_backup:])

        backup_names = set(names[first_backup:])
        assert len(backup_names) == 2
        # 每台备用服务器：个人凭据 + 2 个共享池凭据
        assert len(plan) == 6 + 2 * 3
        for name in backup_names:
            backup = [p for p in plan if p.server.name == name]
            assert backup[0].source == CredentialSource.PERSONAL

    def test_no_duplicate_pairs(self, store_factory: StoreFactory, directory: ServerDirectory) -> None:
        # 个人凭据同时出现在共享池中
        store = store_factory(
            personal="pool-token-11",
            pool=pool_of(12),
        )

        plan = _builder(store, directory).build(ServiceType.VEO)

        keys = [pair.dedupe_key for pair in plan]
        assert len(keys) == len(set(keys))

    def test_pool_only(self, store_factory: StoreFactory, directory: ServerDirectory) -> None:
        store = store_factory(personal=None, pool=pool_of(3))

        plan = _builder(store, directory).build("imagen")

        assert plan[0].server.name == "S2"
        assert all(p.source == CredentialSource.POOL for p in plan)

    def test_personal_only(self, store_factory: StoreFactory, directory: ServerDirectory) -> None:
        store = store_factory(personal="personal-token")

        plan = _builder(store, directory).build(ServiceType.VEO)

        # 当前服务器 + 2 台备用服务器，每台只有个人凭据
        assert len(plan) == 3
        assert all(p.source == CredentialSource.PERSONAL for p in plan)

    def test_deterministic_under_seed(self, store_factory: StoreFactory, servers) -> None:  # type: ignore[no-untyped-def]
        def build_once() -> list[tuple[str, str]]:
            rng = random.Random(99)
            directory = ServerDirectory(
                servers,
                defaults={"veo": "https://s1.example.com", "imagen": "https://s2.example.com"},
                rng=rng,
            )
            store = store_factory(personal="p", pool=pool_of(8))
            plan = AttemptPlanBuilder(store, directory, LIMITS, rng).build("veo")
            return [(p.credential.token, p.server.name) for p in plan]

        assert build_once() == build_once()


class TestStrictPlan:
    def test_specific_token_first_with_pool_fallbacks(
        self, store_factory: StoreFactory, directory: ServerDirectory
    ) -> None:
        store = store_factory(personal="personal-token", pool=pool_of(8))

        plan = _builder(store, directory).build(
            ServiceType.VEO, specific_token="upload-token", kind=RequestKind.GENERATION
        )

        assert plan.mode == DispatchMode.STRICT
        assert plan[0].credential.token == "upload-token"
        assert plan[0].source == CredentialSource.SPECIFIC
        assert len(plan) == 1 + 5
        # 严格模式不换服务器，也不使用个人凭据
        assert {p.server.name for p in plan} == {"S1"}
        assert all(p.source != CredentialSource.PERSONAL for p in plan)

    def test_health_check_uses_exactly_one_pair(
        self, store_factory: StoreFactory, directory: ServerDirectory
    ) -> None:
        store = store_factory(personal="personal-token", pool=pool_of(8))

        plan = _builder(store, directory).build(
            ServiceType.VEO, specific_token="check-me", kind=RequestKind.HEALTH_CHECK
        )

        assert len(plan) == 1
        assert plan[0].credential.token == "check-me"

    def test_specific_token_also_in_pool_is_not_repeated(
        self, store_factory: StoreFactory, directory: ServerDirectory
    ) -> None:
        store = store_factory(pool=pool_of(3))

        plan = _builder(store, directory).build(ServiceType.VEO, specific_token="pool-token-02")

        tokens = [p.credential.token for p in plan]
        assert tokens.count("pool-token-02") == 1
        assert len(plan) == 3

    def test_strict_plan_without_pool(self, store_factory: StoreFactory, directory: ServerDirectory) -> None:
        plan = _builder(store_factory(), directory).build(ServiceType.VEO, specific_token="only")
        assert len(plan) == 1


def test_no_credentials_raises_precondition(
    store_factory: StoreFactory, directory: ServerDirectory
) -> None:
    with pytest.raises(PreconditionError) as exc_info:
        _builder(store_factory(), directory).build(ServiceType.VEO)

    assert exc_info.value.message == NO_CREDENTIALS_MESSAGE
