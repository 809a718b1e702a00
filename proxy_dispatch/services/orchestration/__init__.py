"""
Orchestration 模块

提供请求编排相关的组件：
- AttemptPlanBuilder: 尝试计划构建器，负责生成有序去重的 (凭据, 服务器) 组合
- RequestDispatcher: 请求分发器，负责串行执行尝试
- ErrorClassifier: 错误分类器，负责错误分类（纯逻辑，无副作用）
- OutcomeReporter: 结果上报，负责最终失败后的失败记录
- ProxiedRequestService: 串联准入控制、计划、分发和上报
"""

from .error_classifier import ErrorAction, ErrorClassifier
from .outcome_reporter import (
    FailureLogEntry,
    FailureLogSink,
    LoggerFailureSink,
    MemoryFailureSink,
    OutcomeReporter,
)
from .plan_builder import AttemptPlanBuilder, PlanLimits
from .proxied_request import (
    ProxiedRequestService,
    build_default_service,
    build_slot_service,
    close_default_service,
    configure_default_service,
    execute_proxied_request,
    get_default_service,
)
from .request_dispatcher import RequestDispatcher

__all__ = [
    "AttemptPlanBuilder",
    "PlanLimits",
    "RequestDispatcher",
    "ErrorClassifier",
    "ErrorAction",
    "OutcomeReporter",
    "FailureLogEntry",
    "FailureLogSink",
    "LoggerFailureSink",
    "MemoryFailureSink",
    "ProxiedRequestService",
    "build_default_service",
    "build_slot_service",
    "close_default_service",
    "configure_default_service",
    "execute_proxied_request",
    "get_default_service",
]
