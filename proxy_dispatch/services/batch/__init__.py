from proxy_dispatch.services.batch.runner import BatchRunner, SlotState, SlotStatus

__all__ = ["BatchRunner", "SlotState", "SlotStatus"]
