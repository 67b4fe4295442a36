from enum import StrEnum

from pydantic import BaseModel, Field


class NotificationKind(StrEnum):
    success = "success"
    error = "error"
    warning = "warning"
    info = "info"


class Notification(BaseModel):
    message: str
    kind: NotificationKind
    duration_seconds: int = Field(gt=0)
    auto_close: bool
    created_at: str
