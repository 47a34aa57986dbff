"""
並發控制工具

兩層保護，防止 admit / rotate 之間的競態條件（Race Condition）：

1. queue_write_lock：行程內的互斥鎖。FastAPI 在 thread pool 執行同步
   endpoint，所有會改變狀態的 QueueManager 呼叫在整個 transaction 期間
   都持有這把鎖（分配 position + 啟用，或完成 + 啟用）
2. with_active_lock：對 active entry 做 SELECT ... FOR UPDATE（行級鎖），
   適用於 PostgreSQL / MySQL。SQLite 會忽略 FOR UPDATE，由互斥鎖負責
"""
import threading

from sqlalchemy.orm import Session, Query

from models import QueueEntry

# 整個行程只有一個寫入者（單一隊伍）
queue_write_lock = threading.RLock()


def with_active_lock(db: Session) -> Query:
    """
    鎖定目前的 active entry（行級鎖）

    範例：
        active = with_active_lock(db).first()
        if active:
            active.is_completed = True

    返回：
        Query object（需要呼叫 .first()）

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(QueueEntry).filter(
        QueueEntry.is_active.is_(True),
        QueueEntry.is_completed.is_(False)
    ).with_for_update(nowait=False)


def with_entry_lock(entry_id: str, db: Session) -> Query:
    """
    依 id 鎖定一筆 entry（行級鎖）

    使用場景：
    - 啟用時，確保在檢查衝突與更新之間這筆資料不被修改
    """
    return db.query(QueueEntry).filter(
        QueueEntry.id == entry_id
    ).with_for_update(nowait=False)
