"""
Entry Store：queue_entries 的資料存取層

純查詢，不含業務邏輯。Store 不負責 transaction：寫入只 flush，
由呼叫者（QueueManager 透過 @transactional）commit 或 rollback。
所有 SQLAlchemy 錯誤都轉成 StoreError。
"""
from functools import wraps
from typing import Optional
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import QueueEntry
from core.exceptions import NotFoundError, StoreError
from core.locks import with_active_lock, with_entry_lock

logger = logging.getLogger(__name__)

# update_status 只能修改生命週期欄位
STATUS_FIELDS = frozenset({"is_active", "is_completed", "started_at", "expires_at"})


def _store_call(method):
    @wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Store call {method.__name__} failed: {e}", exc_info=True)
            raise StoreError(f"{method.__name__} failed") from e

    return wrapper


class EntryStore:
    """包裝一個 Session 的查詢（Session 由請求的擁有者傳入）"""

    def __init__(self, db: Session):
        self.db = db

    @_store_call
    def insert(self, entry: QueueEntry) -> QueueEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    @_store_call
    def find_active(self, for_update: bool = False) -> Optional[QueueEntry]:
        if for_update:
            return with_active_lock(self.db).first()
        return self.db.query(QueueEntry).filter(
            QueueEntry.is_active.is_(True),
            QueueEntry.is_completed.is_(False)
        ).first()

    @_store_call
    def find_by_id(self, entry_id: str, for_update: bool = False) -> Optional[QueueEntry]:
        if for_update:
            return with_entry_lock(entry_id, self.db).first()
        return self.db.query(QueueEntry).filter(QueueEntry.id == entry_id).first()

    @_store_call
    def find_next_pending(self, after_position: int) -> Optional[QueueEntry]:
        """`after_position` 之後、尚未完成、position 最小的 entry"""
        return (
            self.db.query(QueueEntry)
            .filter(
                QueueEntry.is_completed.is_(False),
                QueueEntry.position > after_position
            )
            .order_by(QueueEntry.position.asc())
            .first()
        )

    @_store_call
    def update_status(self, entry_id: str, **fields) -> QueueEntry:
        unknown = set(fields) - STATUS_FIELDS
        if unknown:
            raise ValueError(f"update_status cannot change {sorted(unknown)}")

        entry = self.db.query(QueueEntry).filter(QueueEntry.id == entry_id).first()
        if not entry:
            raise NotFoundError(entry_id)

        for name, value in fields.items():
            setattr(entry, name, value)
        self.db.flush()
        return entry

    @_store_call
    def count_incomplete(self) -> int:
        return self.db.query(QueueEntry).filter(
            QueueEntry.is_completed.is_(False)
        ).count()

    @_store_call
    def max_position(self) -> int:
        result = self.db.query(func.max(QueueEntry.position)).scalar()
        return result or 0
