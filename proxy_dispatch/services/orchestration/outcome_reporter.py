"""
结果上报

- 最终失败（所有尝试耗尽）：向日志协作方写入一条结构化失败记录，
  仅限稳健模式（用户发起的生成），严格模式的例行校验不写，避免刷屏
- 成功：返回载荷和成功的凭据，是否持久化为“首选凭据”由调用方决定

日志协作方是 fire-and-forget：写入失败只记日志，不能掩盖真正的请求错误。
"""

from __future__ import annotations

from typing import Any, Protocol

from pydantic import BaseModel, Field

from proxy_dispatch.config.constants import DispatchDefaults
from proxy_dispatch.core.enums import DispatchMode, LogStatus
from proxy_dispatch.core.logger import logger
from proxy_dispatch.models.dispatch import Credential, DispatchResult


class FailureLogEntry(BaseModel):
    """失败记录"""

    model: str = Field(..., description="上下文标签")
    prompt: str = Field("", description="截断后的请求摘要")
    output: str = Field("", description="错误文本")
    token_count: int = Field(0, description="消耗的 token 数（失败时为 0）")
    status: LogStatus = Field(LogStatus.ERROR)
    error: str | None = Field(None, description="错误文本")
    attempts: int = Field(0, description="已尝试次数")


class FailureLogSink(Protocol):
    def add_log_entry(self, entry: FailureLogEntry) -> Any: ...


class LoggerFailureSink:
    """默认实现：写入 loguru"""

    def add_log_entry(self, entry: FailureLogEntry) -> None:
        logger.bind(failure_record=entry.model_dump(mode="json")).error(
            "[FailureLog] {} | attempts={} | {}", entry.model, entry.attempts, entry.error
        )


class MemoryFailureSink:
    """内存实现：保留所有记录（诊断 / 测试）"""

    def __init__(self) -> None:
        self.entries: list[FailureLogEntry] = []

    def add_log_entry(self, entry: FailureLogEntry) -> None:
        self.entries.append(entry)


def truncate_summary(text: str, limit: int = DispatchDefaults.SUMMARY_MAX_LENGTH) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return f"{text[:limit]}..."


class OutcomeReporter:
    def __init__(self, sink: FailureLogSink | None = None) -> None:
        self.sink: FailureLogSink = sink or LoggerFailureSink()

    def report_failure(
        self,
        *,
        label: str,
        error: str,
        attempts: int,
        mode: DispatchMode,
        summary: str | None = None,
    ) -> FailureLogEntry | None:
        """写入失败记录；严格模式直接跳过，返回 None"""
        if mode != DispatchMode.ROBUST:
            logger.debug("[{}] 严格模式失败不写失败记录", label)
            return None

        entry = FailureLogEntry(
            model=label,
            prompt=truncate_summary(summary or f"Request failed after {attempts} attempts"),
            output=error,
            token_count=0,
            status=LogStatus.ERROR,
            error=error,
            attempts=attempts,
        )
        try:
            self.sink.add_log_entry(entry)
        except Exception as e:
            logger.warning("[{}] 写入失败记录异常（已忽略）: {}", label, e)
        return entry

    @staticmethod
    def report_success(result: DispatchResult) -> tuple[Any, Credential]:
        return result.data, result.credential
