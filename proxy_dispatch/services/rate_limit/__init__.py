from proxy_dispatch.services.rate_limit.admission import (
    STATUS_PROCESSING,
    STATUS_QUEUEING,
    AdmissionController,
    AlwaysGrantSlotService,
    RedisSlotService,
    RpcSlotService,
    SlotService,
)

__all__ = [
    "STATUS_PROCESSING",
    "STATUS_QUEUEING",
    "AdmissionController",
    "AlwaysGrantSlotService",
    "RedisSlotService",
    "RpcSlotService",
    "SlotService",
]
