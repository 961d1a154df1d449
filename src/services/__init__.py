from src.services import (
    follow_up_service,
    pending_task_store,
    task_context_service,
)


__all__ = [
    "follow_up_service",
    "pending_task_store",
    "task_context_service",
]
