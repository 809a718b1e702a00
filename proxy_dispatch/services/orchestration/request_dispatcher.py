"""
请求分发器

按计划顺序逐个执行 (凭据, 服务器) 尝试，严格串行：
- 成功（2xx 且有预期结果）-> 立即返回，放弃剩余尝试
- 终止错误 -> 立即抛出 TerminalRequestError，不再尝试
- 可重试错误 -> 进入下一组；最后一组也失败 -> ExhaustedError

每次尝试都记录序号、凭据来源、目标服务器（凭据只记录末尾几位）。
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx

from proxy_dispatch.clients.http_client import HTTPClientPool
from proxy_dispatch.core.enums import ServiceType
from proxy_dispatch.core.error_utils import (
    extract_response_error_message,
    extract_transport_error_message,
    synthesize_non_json_error,
)
from proxy_dispatch.core.exceptions import (
    ExhaustedError,
    TerminalRequestError,
    TransientAttemptError,
)
from proxy_dispatch.core.logger import logger
from proxy_dispatch.core.transport import (
    build_endpoint_url,
    build_request_headers,
    redact_url_for_log,
)
from proxy_dispatch.models.dispatch import AttemptPair, AttemptPlan, DispatchResult
from proxy_dispatch.services.orchestration.error_classifier import (
    Classification,
    ErrorAction,
    ErrorClassifier,
)

ResultExtractor = Callable[[Any], Any]


def parse_response_body(response: httpx.Response) -> tuple[Any, bool]:
    """
    解析响应体为 JSON

    Returns:
        (data, parsed)；解析失败时 data 为携带原始状态码的错误体，不抛异常
    """
    text = response.text
    try:
        return json.loads(text), True
    except ValueError:
        return synthesize_non_json_error(response.status_code, text), False


class RequestDispatcher:
    """
    请求分发器

    Args:
        client: httpx.AsyncClient，缺省使用全局客户端池
        classifier: 错误分类器
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        classifier: ErrorClassifier | None = None,
    ) -> None:
        self._client = client
        self.classifier = classifier or ErrorClassifier()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await HTTPClientPool.get_default_client_async()

    async def dispatch(
        self,
        plan: AttemptPlan,
        service_type: ServiceType | str,
        relative_path: str,
        body: Any,
        *,
        username: str | None = None,
        result_extractor: ResultExtractor | None = None,
        log_context: str = "",
    ) -> DispatchResult:
        """
        执行尝试计划

        Raises:
            TerminalRequestError: 内容被拒绝
            ExhaustedError: 所有尝试都以可重试错误结束
        """
        service = ServiceType(service_type)
        client = await self._get_client()
        total = len(plan)
        last_error: TransientAttemptError | None = None

        for index, pair in enumerate(plan, start=1):
            logger.debug(
                "[{}] Attempt {}/{} using {} token ({}) on {}",
                log_context or service.value,
                index,
                total,
                pair.source.value,
                pair.credential.masked,
                pair.server.name,
            )

            classification, data, result = await self._attempt(
                client, pair, service, relative_path, body, username, result_extractor
            )

            if classification.action == ErrorAction.SUCCESS:
                self._log_success(pair, plan, index, total, log_context)
                return DispatchResult(
                    data=data,
                    credential=pair.credential,
                    server=pair.server,
                    attempts=index,
                    result=result,
                )

            message = classification.message or "Unknown error"
            if classification.action == ErrorAction.ABORT:
                logger.warning(
                    "[{}] 请求内容被拒绝 (HTTP {})，不再重试: {}",
                    log_context or service.value,
                    classification.status_code,
                    message,
                )
                raise TerminalRequestError(
                    message,
                    status_code=classification.status_code,
                    server_url=pair.server.url,
                    upstream_response=data,
                )

            last_error = TransientAttemptError(
                message,
                status_code=classification.status_code,
                server_url=pair.server.url,
            )
            logger.warning(
                "[{}] Attempt {}/{} failed ({}) on {}: {}",
                log_context or service.value,
                index,
                total,
                classification.status_code if classification.status_code is not None else "network",
                pair.server.name,
                message,
            )

        if last_error is None:
            # 空计划应在构建阶段被拦截
            last_error = TransientAttemptError("Attempt plan was empty")

        logger.error("[{}] All {} attempts failed", log_context or service.value, total)
        raise ExhaustedError(last_error, attempts=total)

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        pair: AttemptPair,
        service: ServiceType,
        relative_path: str,
        body: Any,
        username: str | None,
        result_extractor: ResultExtractor | None,
    ) -> tuple[Classification, Any, Any]:
        """执行单次尝试并分类，不抛异常"""
        url = build_endpoint_url(pair.server.url, service.value, relative_path)
        try:
            response = await client.post(
                url,
                json=body,
                headers=build_request_headers(pair.credential.token, username),
            )
        except httpx.RequestError as e:
            # RequestError 也覆盖响应解压失败和重定向次数超限
            logger.debug("网络层失败 {}: {}", redact_url_for_log(url), e)
            return (
                self.classifier.classify_transport_error(extract_transport_error_message(e)),
                None,
                None,
            )

        data, parsed = parse_response_body(response)
        status_code = response.status_code

        if not parsed:
            # 非 JSON 响应：2xx 也视为没有拿到结果
            message = extract_response_error_message(data, status_code)
            if 200 <= status_code < 300:
                return (
                    Classification(ErrorAction.RETRY, message, status_code),
                    data,
                    None,
                )
            return (
                self.classifier.classify_response(status_code, message, has_result=False),
                data,
                None,
            )

        if not 200 <= status_code < 300:
            message = extract_response_error_message(data, status_code)
            return (
                self.classifier.classify_response(status_code, message, has_result=False),
                data,
                None,
            )

        result = self._extract_result(data, result_extractor)
        return (
            self.classifier.classify_response(status_code, None, has_result=result is not None),
            data,
            result,
        )

    @staticmethod
    def _extract_result(data: Any, result_extractor: ResultExtractor | None) -> Any:
        if result_extractor is None:
            return data
        try:
            result = result_extractor(data)
        except Exception as e:
            # 提取器异常视为缺少结果，进入下一组尝试
            logger.debug("结果提取失败: {!r}", e)
            return None
        if result in ("", [], {}):
            return None
        return result

    @staticmethod
    def _log_success(
        pair: AttemptPair, plan: AttemptPlan, index: int, total: int, log_context: str
    ) -> None:
        logger.info(
            "[{}] Success with {} token on {} (attempt {}/{})",
            log_context or "dispatch",
            pair.source.value,
            pair.server.name,
            index,
            total,
        )
        if plan.pairs and pair.server.key != plan.pairs[0].server.key:
            # 备用服务器成功不会改写调用方的首选服务器
            logger.info("[{}] 备用服务器 {} 处理成功", log_context or "dispatch", pair.server.name)
