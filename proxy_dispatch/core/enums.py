from __future__ import annotations

from enum import Enum


class ServiceType(str, Enum):
    VEO = "veo"
    IMAGEN = "imagen"


class CredentialSource(str, Enum):
    """凭据来源，只影响排序与日志，不影响请求本身"""

    SPECIFIC = "Specific"
    PERSONAL = "Personal"
    POOL = "Pool"


class DispatchMode(str, Enum):
    STRICT = "strict"  # 调用方显式提供了凭据
    ROBUST = "robust"  # 完整的凭据 + 服务器故障转移


class RequestKind(str, Enum):
    """调用方在调用边界显式声明的请求类别"""

    GENERATION = "generation"  # 需要先获取生成槽位
    AUXILIARY = "auxiliary"  # 上传等辅助请求
    HEALTH_CHECK = "health_check"  # 纯校验：严格模式下不追加兜底


class LogStatus(str, Enum):
    SUCCESS = "Success"
    ERROR = "Error"


__all__ = ["ServiceType", "CredentialSource", "DispatchMode", "RequestKind", "LogStatus"]
