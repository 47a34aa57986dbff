"""
ORM models

只有一張表 `queue_entries`。資料不會被刪除：已完成的 entry 保留作為排隊歷史
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text

from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueueEntry(Base):
    __tablename__ = "queue_entries"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(Text, nullable=False)
    referral_code = Column(Text, nullable=False)
    ip_address = Column(String(45), nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)
    is_completed = Column(Boolean, nullable=False, default=False)
    position = Column(Integer, nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    started_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_queue_entries_active_completed", "is_active", "is_completed"),
    )

    @property
    def is_pending(self) -> bool:
        return not self.is_active and not self.is_completed

    def __repr__(self):
        return (
            f"<QueueEntry id={self.id} position={self.position} "
            f"active={self.is_active} completed={self.is_completed}>"
        )
