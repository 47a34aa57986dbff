"""
Queue Manager：管理排隊的完整生命週期

職責：
1. 加入排隊（驗證 + 分配 position + 自動啟用）
2. 啟用隊首
3. 輪替：結束目前的 active entry，啟用下一位
4. 查詢 active entry 與排隊人數

原則：
- 所有狀態轉換都經過這個 class，底下的 EntryStore 只負責資料存取
- 會改變狀態的呼叫在整個 transaction 期間持有 queue_write_lock，
  position 分配與「同時只有一個 active」不會因多執行緒而競爭
"""
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional
import uuid
import logging

from models import QueueEntry
from core.entry_store import EntryStore
from core.locks import queue_write_lock
from core.exceptions import ActiveEntryConflict, NotFoundError
from services.validation_service import validate_name, validate_referral_code
from database import get_settings, transactional

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueueManager:
    """排隊狀態機：pending -> active -> completed"""

    def __init__(
        self,
        store: EntryStore,
        turn_duration: Optional[timedelta] = None,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.store = store
        if turn_duration is None:
            turn_duration = timedelta(minutes=get_settings().turn_duration_minutes)
        self.turn_duration = turn_duration
        self.clock = clock

    @property
    def db(self):
        # @transactional 會 commit/rollback store 所用的這個 session
        return self.store.db

    def admit(self, name: str, referral_code: str, ip_address: str) -> str:
        """
        加入排隊（排到隊尾）

        流程：
        1. 驗證名稱與推薦碼（在存取 store 之前）
        2. position = max(position) + 1
        3. 以 pending 狀態寫入
        4. 如果目前沒有 active entry，立即啟用這一筆

        返回：
            新 entry 的 id

        異常：
            ValidationError: 名稱或推薦碼格式錯誤
            StoreError: 資料庫存取失敗

        注意：
            可能改變 active entry，呼叫者之後要廣播
        """
        validate_name(name)
        validate_referral_code(referral_code)

        with queue_write_lock:
            return self._admit(name, referral_code, ip_address)

    @transactional
    def _admit(self, name: str, referral_code: str, ip_address: str) -> str:
        position = self.store.max_position() + 1
        entry = QueueEntry(
            id=str(uuid.uuid4()),
            name=name,
            referral_code=referral_code,
            ip_address=ip_address,
            is_active=False,
            is_completed=False,
            position=position,
            created_at=self.clock()
        )
        self.store.insert(entry)
        logger.info(f"Admitted entry {entry.id} at position {position}")

        if self.store.find_active(for_update=True) is None:
            self._activate(entry.id)

        return entry.id

    def get_active(self) -> Optional[QueueEntry]:
        return self.store.find_active()

    def get_status(self) -> Dict[str, int]:
        return {"totalInQueue": self.store.count_incomplete()}

    def get_entry(self, entry_id: str) -> QueueEntry:
        entry = self.store.find_by_id(entry_id)
        if not entry:
            raise NotFoundError(entry_id)
        return entry

    def activate(self, entry_id: str) -> QueueEntry:
        """
        啟用 `entry_id`（獨立的 transaction）

        異常：
            NotFoundError: entry 不存在
            ActiveEntryConflict: 已經有另一筆 active entry
        """
        with queue_write_lock:
            return self._activate_committed(entry_id)

    @transactional
    def _activate_committed(self, entry_id: str) -> QueueEntry:
        return self._activate(entry_id)

    def _activate(self, entry_id: str) -> QueueEntry:
        entry = self.store.find_by_id(entry_id, for_update=True)
        if not entry:
            raise NotFoundError(entry_id)

        active = self.store.find_active()
        if active is not None and active.id != entry_id:
            raise ActiveEntryConflict(entry_id, active.id)

        started_at = self.clock()
        entry = self.store.update_status(
            entry_id,
            is_active=True,
            started_at=started_at,
            expires_at=started_at + self.turn_duration
        )
        logger.info(
            f"Activated entry {entry_id} (position {entry.position}) until {entry.expires_at}"
        )
        return entry

    def rotate(self) -> Optional[QueueEntry]:
        """
        輪替：結束目前的 active entry，啟用下一位

        流程：
        1. 沒有 active entry -> 返回 None，不做任何改變
        2. 將 active entry 標記為 completed
        3. 下一位 = position 在它之後、尚未完成、position 最小的 entry
        4. 啟用並返回它；隊伍已空則返回 None

        異常：
            NotFoundError: 輪替途中 active entry 消失（會 rollback）
            StoreError: 資料庫存取失敗
        """
        with queue_write_lock:
            return self._rotate()

    @transactional
    def _rotate(self) -> Optional[QueueEntry]:
        active = self.store.find_active(for_update=True)
        if active is None:
            logger.info("Rotate requested with no active entry")
            return None

        completed_position = active.position
        self.store.update_status(active.id, is_active=False, is_completed=True)
        logger.info(f"Completed entry {active.id} (position {completed_position})")

        next_entry = self.store.find_next_pending(completed_position)
        if next_entry is None:
            logger.info("Queue drained")
            return None

        return self._activate(next_entry.id)
