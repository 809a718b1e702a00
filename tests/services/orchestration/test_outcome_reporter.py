from unittest.mock import MagicMock

from proxy_dispatch.core.enums import CredentialSource, DispatchMode, LogStatus
from proxy_dispatch.models.dispatch import Credential, DispatchResult, Server
from proxy_dispatch.services.orchestration import outcome_reporter
from proxy_dispatch.services.orchestration.outcome_reporter import (
    LoggerFailureSink,
    MemoryFailureSink,
    OutcomeReporter,
    truncate_summary,
)


def test_robust_failure_is_recorded() -> None:
    sink = MemoryFailureSink()

    entry = OutcomeReporter(sink).report_failure(
        label="VEO GENERATE", error="Quota exceeded", attempts=7, mode=DispatchMode.ROBUST
    )

    assert sink.entries == [entry]
    assert entry is not None
    assert entry.prompt == "Request failed after 7 attempts"
    assert entry.output == "Quota exceeded"
    assert entry.status == LogStatus.ERROR


def test_strict_failure_is_not_recorded() -> None:
    sink = MemoryFailureSink()

    entry = OutcomeReporter(sink).report_failure(
        label="VEO STATUS", error="Unauthorized", attempts=1, mode=DispatchMode.STRICT
    )

    assert entry is None
    assert sink.entries == []


def test_summary_is_truncated() -> None:
    assert truncate_summary("  short  ") == "short"
    assert truncate_summary("x" * 120) == "x" * 100 + "..."
    assert truncate_summary("abcdef", limit=3) == "abc..."


def test_logger_sink_binds_structured_record(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    fake_logger = MagicMock()
    monkeypatch.setattr(outcome_reporter, "logger", fake_logger)

    OutcomeReporter(LoggerFailureSink()).report_failure(
        label="IMAGEN GENERATE", error="boom", attempts=2, mode=DispatchMode.ROBUST
    )

    record = fake_logger.bind.call_args.kwargs["failure_record"]
    assert record["model"] == "IMAGEN GENERATE"
    assert record["status"] == "Error"
    assert record["token_count"] == 0
    fake_logger.bind.return_value.error.assert_called_once()


def test_report_success_returns_payload_and_credential() -> None:
    credential = Credential(token="winner-token", source=CredentialSource.POOL)
    result = DispatchResult(
        data={"ok": True},
        credential=credential,
        server=Server(id="s1", name="S1", url="https://s1.example.com"),
        attempts=2,
    )

    assert OutcomeReporter.report_success(result) == ({"ok": True}, credential)
