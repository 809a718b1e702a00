"""
proxy-dispatch

客户端请求分发器：把生成任务发送到一组可互换的代理服务器，
使用轮换的 Bearer 凭据，内置准入控制和故障转移。

使用方式:
    from proxy_dispatch import CredentialStore, ServerDirectory, ProxiedRequestService

    service = ProxiedRequestService(CredentialStore(local, session), ServerDirectory())
    result = await service.execute("/generate", "imagen", body, "IMAGEN GENERATE",
                                   kind=RequestKind.GENERATION)
"""

from proxy_dispatch.core.enums import CredentialSource, DispatchMode, RequestKind, ServiceType
from proxy_dispatch.core.exceptions import (
    ExhaustedError,
    PreconditionError,
    ProxyDispatchError,
    TerminalRequestError,
    TransientAttemptError,
)
from proxy_dispatch.models.dispatch import AttemptPlan, Credential, DispatchResult, Server
from proxy_dispatch.services.credentials import CredentialStore, JsonFileStorage
from proxy_dispatch.services.orchestration import (
    ProxiedRequestService,
    execute_proxied_request,
)
from proxy_dispatch.services.rate_limit import AdmissionController
from proxy_dispatch.services.servers import ServerDirectory

__version__ = "0.1.0"

__all__ = [
    "AdmissionController",
    "AttemptPlan",
    "Credential",
    "CredentialSource",
    "CredentialStore",
    "DispatchMode",
    "DispatchResult",
    "ExhaustedError",
    "JsonFileStorage",
    "PreconditionError",
    "ProxiedRequestService",
    "ProxyDispatchError",
    "RequestKind",
    "Server",
    "ServerDirectory",
    "ServiceType",
    "TerminalRequestError",
    "TransientAttemptError",
    "execute_proxied_request",
]
