from proxy_dispatch.models.dispatch import (
    AttemptPair,
    AttemptPlan,
    Credential,
    DispatchResult,
    Server,
)
from proxy_dispatch.models.records import CurrentUserRecord, PoolTokenRecord

__all__ = [
    "AttemptPair",
    "AttemptPlan",
    "Credential",
    "DispatchResult",
    "Server",
    "CurrentUserRecord",
    "PoolTokenRecord",
]
