"""
Wire schemas（pydantic）

Python 端使用 snake_case，JSON 使用 camelCase（配合前端既有格式）
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QueueEntryCreate(CamelModel):
    # 只檢查型別；名稱與推薦碼規則在 services.validation_service
    name: str
    referral_code: str


class QueueEntryResponse(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str
    name: str
    referral_code: str
    ip_address: str
    is_active: bool
    is_completed: bool
    position: int
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class AddResponse(BaseModel):
    message: str
    id: str


class StatusResponse(CamelModel):
    total_in_queue: int


class RotateResponse(BaseModel):
    message: str
    next: Optional[QueueEntryResponse] = None


class ActiveEntryMessage(BaseModel):
    """推送給每個 WebSocket 觀察者的 payload"""
    active: Optional[QueueEntryResponse] = None
