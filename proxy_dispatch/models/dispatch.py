"""
分发相关的核心数据结构

- Credential: 凭据值 + 来源标签，一次分发内不可变
- Server: 代理服务器
- AttemptPair: 一次尝试 (凭据, 服务器, 来源)
- AttemptPlan: 一次调用的有序尝试序列，按 (凭据指纹, 服务器) 去重
- DispatchResult: 成功结果
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from proxy_dispatch.core.enums import CredentialSource, DispatchMode
from proxy_dispatch.core.transport import mask_token, normalize_base_url


@dataclass(frozen=True)
class Credential:
    token: str
    source: CredentialSource
    created_at: datetime | None = field(default=None, compare=False)

    @property
    def fingerprint(self) -> str:
        return hashlib.sha256(self.token.encode("utf-8")).hexdigest()[:16]

    @property
    def masked(self) -> str:
        return mask_token(self.token)

    def __repr__(self) -> str:
        # 避免在 repr/日志中泄露完整凭据
        return f"Credential(source={self.source.value}, token={self.masked})"


@dataclass(frozen=True)
class Server:
    id: str
    name: str
    url: str

    @property
    def key(self) -> str:
        return normalize_base_url(self.url)


@dataclass(frozen=True)
class AttemptPair:
    credential: Credential
    server: Server

    @property
    def source(self) -> CredentialSource:
        return self.credential.source

    @property
    def dedupe_key(self) -> tuple[str, str]:
        return (self.credential.fingerprint, self.server.key)


@dataclass
class AttemptPlan:
    """有序尝试计划，只存在于一次分发调用期间"""

    mode: DispatchMode
    pairs: list[AttemptPair] = field(default_factory=list, init=False)
    _seen: set[tuple[str, str]] = field(default_factory=set, init=False, repr=False)

    def append(self, credential: Credential, server: Server) -> bool:
        """追加一次尝试，已存在的 (凭据指纹, 服务器) 组合静默跳过"""
        pair = AttemptPair(credential=credential, server=server)
        if pair.dedupe_key in self._seen:
            return False
        self._seen.add(pair.dedupe_key)
        self.pairs.append(pair)
        return True

    def __iter__(self) -> Iterator[AttemptPair]:
        return iter(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)

    def __getitem__(self, index: int) -> AttemptPair:
        return self.pairs[index]

    @property
    def is_empty(self) -> bool:
        return not self.pairs


@dataclass
class DispatchResult:
    """成功结果：载荷 + 成功的凭据，是否持久化为“首选凭据”由调用方决定"""

    data: Any
    credential: Credential
    server: Server
    attempts: int
    result: Any = None

    @property
    def successful_token(self) -> str:
        return self.credential.token
