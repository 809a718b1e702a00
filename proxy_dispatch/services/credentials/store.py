"""
凭据存储访问器

从本地缓存（键值存储，值为 JSON 文本）中读取个人凭据和共享池凭据，不做任何网络 I/O。

设计约束：
1. 永远不向调用方抛异常：存储损坏降级为“没有可用凭据”，并以 DEBUG 级别记录
2. 共享池按签发时间从新到旧排序，只取最新的 N 个，更旧的视为过期
3. 只读，多个并发分发调用可以安全共享同一个实例

凭据来源是可替换的（CredentialProvider 协议），测试中可以直接注入固定数据。
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from proxy_dispatch.config.constants import DispatchDefaults, StorageKeys
from proxy_dispatch.core.enums import CredentialSource
from proxy_dispatch.core.logger import logger
from proxy_dispatch.models.dispatch import Credential
from proxy_dispatch.models.records import CurrentUserRecord, PoolTokenRecord

# 没有时间戳的记录排在最后
_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


@runtime_checkable
class CredentialProvider(Protocol):
    """凭据来源协议"""

    def credentials(self) -> list[Credential]: ...


class JsonFileStorage(Mapping[str, str]):
    """
    只读的 JSON 文件键值存储

    文件内容为一个 JSON 对象，值可以是字符串（原样返回）或任意 JSON（重新序列化）。
    文件不存在或损坏时表现为空存储。
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.debug("读取凭据存储文件失败 {}: {}", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def __getitem__(self, key: str) -> str:
        value = self._load()[key]
        return value if isinstance(value, str) else json.dumps(value)

    def __iter__(self) -> Iterator[str]:
        return iter(self._load())

    def __len__(self) -> int:
        return len(self._load())


def _read_json(storage: Mapping[str, str], key: str) -> Any:
    raw = storage.get(key)
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.debug("凭据存储键 {} 不是合法 JSON: {}", key, e)
        return None


def load_current_user(storage: Mapping[str, str]) -> CurrentUserRecord | None:
    data = _read_json(storage, StorageKeys.CURRENT_USER)
    if not isinstance(data, dict):
        return None
    try:
        return CurrentUserRecord.model_validate(data)
    except ValidationError as e:
        logger.debug("当前用户记录解析失败: {}", e.error_count())
        return None


def load_pool_records(storage: Mapping[str, str]) -> list[PoolTokenRecord]:
    """读取共享池记录，单条无效记录跳过，不影响其他记录"""
    data = _read_json(storage, StorageKeys.POOL_TOKENS)
    if not isinstance(data, list):
        if data is not None:
            logger.debug("共享池凭据不是列表，忽略: {}", type(data).__name__)
        return []

    records: list[PoolTokenRecord] = []
    skipped = 0
    for item in data:
        try:
            records.append(PoolTokenRecord.model_validate(item))
        except ValidationError:
            skipped += 1
    if skipped:
        logger.debug("共享池中 {} 条记录无效，已跳过", skipped)
    return records


def _sort_key(record: PoolTokenRecord) -> datetime:
    created_at = record.created_at
    if created_at is None:
        return _OLDEST
    if created_at.tzinfo is None:
        return created_at.replace(tzinfo=timezone.utc)
    return created_at


class PersonalCredentialSource:
    """当前用户的个人凭据"""

    def __init__(self, storage: Mapping[str, str]) -> None:
        self.storage = storage

    def credentials(self) -> list[Credential]:
        user = load_current_user(self.storage)
        if user is None or not user.personal_auth_token:
            return []
        return [Credential(token=user.personal_auth_token, source=CredentialSource.PERSONAL)]


class PoolCredentialSource:
    """共享池凭据：最新的在前，只保留最新的 max_eligible 个"""

    def __init__(
        self,
        storage: Mapping[str, str],
        max_eligible: int = DispatchDefaults.POOL_MAX_ELIGIBLE,
    ) -> None:
        self.storage = storage
        self.max_eligible = max_eligible

    def credentials(self) -> list[Credential]:
        records = sorted(load_pool_records(self.storage), key=_sort_key, reverse=True)
        return [
            Credential(token=r.token, source=CredentialSource.POOL, created_at=r.created_at)
            for r in records[: max(self.max_eligible, 0)]
        ]


class ExplicitCredentialSource:
    """调用方显式提供的凭据（严格模式）"""

    def __init__(self, token: str | None) -> None:
        self.token = token

    def credentials(self) -> list[Credential]:
        if not self.token:
            return []
        return [Credential(token=self.token, source=CredentialSource.SPECIFIC)]


class CredentialStore:
    """
    凭据存储访问器

    Args:
        local_storage: 持久存储（当前用户记录）
        session_storage: 会话存储（共享池），缺省与 local_storage 相同
        max_eligible: 共享池中被视为可用的最新凭据数量
    """

    def __init__(
        self,
        local_storage: Mapping[str, str] | None = None,
        session_storage: Mapping[str, str] | None = None,
        *,
        max_eligible: int = DispatchDefaults.POOL_MAX_ELIGIBLE,
        personal_source: CredentialProvider | None = None,
        pool_source: CredentialProvider | None = None,
    ) -> None:
        self.local_storage: Mapping[str, str] = local_storage if local_storage is not None else {}
        self.session_storage: Mapping[str, str] = (
            session_storage if session_storage is not None else self.local_storage
        )
        self.personal_source = personal_source or PersonalCredentialSource(self.local_storage)
        self.pool_source = pool_source or PoolCredentialSource(self.session_storage, max_eligible)

    def personal_credential(self) -> Credential | None:
        try:
            found = self.personal_source.credentials()
        except Exception as e:
            logger.debug("读取个人凭据失败: {}", e)
            return None
        return found[0] if found else None

    def pool_credentials(self) -> list[Credential]:
        try:
            return list(self.pool_source.credentials())
        except Exception as e:
            logger.debug("读取共享池凭据失败: {}", e)
            return []

    def current_username(self) -> str | None:
        try:
            user = load_current_user(self.local_storage)
        except Exception as e:
            logger.debug("读取当前用户失败: {}", e)
            return None
        if user is None or not user.id:
            return None
        return user.username
