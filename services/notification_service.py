"""
通知服務：把目前的 active entry 推送給觀察者

初次推送與每次變動使用相同的格式：
    {"active": QueueEntry | null}
"""
from typing import Any, Dict
import logging

from fastapi import WebSocket
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

import database
from schemas import ActiveEntryMessage, QueueEntryResponse
from core.entry_store import EntryStore
from core.queue_manager import QueueManager
from core.connection_manager import ConnectionManager, connection_manager

logger = logging.getLogger(__name__)


def get_active_payload(db: Session) -> Dict[str, Any]:
    active = QueueManager(EntryStore(db)).get_active()
    message = ActiveEntryMessage(
        active=QueueEntryResponse.model_validate(active) if active else None
    )
    return message.model_dump(mode="json", by_alias=True)


def load_active_payload() -> Dict[str, Any]:
    """用自己的短生命週期 session 讀取 payload"""
    db = database.SessionLocal()
    try:
        return get_active_payload(db)
    finally:
        db.close()


async def send_active_entry(
    websocket: WebSocket,
    manager: ConnectionManager = connection_manager
) -> bool:
    payload = await run_in_threadpool(load_active_payload)
    return await manager.send(websocket, payload)


async def broadcast_active_entry(manager: ConnectionManager = connection_manager) -> None:
    """
    廣播目前的 active entry 給所有觀察者

    在 admit / rotate 回應之後以 background task 執行。HTTP 回應已經送出，
    所以這裡的 store 失敗只記 log。
    """
    try:
        payload = await run_in_threadpool(load_active_payload)
    except Exception as e:
        logger.error(f"Failed to load active entry for broadcast: {e}", exc_info=True)
        return

    delivered = await manager.broadcast(payload)
    logger.info(f"Broadcast active entry to {delivered} observer(s)")
