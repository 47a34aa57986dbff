"""
Queue API Endpoints

職責：
1. 加入排隊
2. 查詢排隊人數
3. 輪替到下一位

所有業務邏輯集中在 QueueManager，這裡只負責轉換請求與對應 status code。
每次狀態改變都排一個 background task，在回應送出後廣播。
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import (
    QueueEntryCreate,
    QueueEntryResponse,
    AddResponse,
    StatusResponse,
    RotateResponse
)
from core.entry_store import EntryStore
from core.queue_manager import QueueManager
from core.exceptions import ValidationError, NotFoundError, StoreError
from services.notification_service import broadcast_active_entry

router = APIRouter(prefix="/api/queue", tags=["queue"])
logger = logging.getLogger(__name__)

SERVER_ERROR = {"message": "Server error"}


def get_queue_manager(db: Session = Depends(get_db)) -> QueueManager:
    return QueueManager(EntryStore(db))


def get_client_ip(request: Request) -> str:
    """
    取得呼叫者 IP（信任 X-Forwarded-For 的第一段）

    服務部署在 reverse proxy 後面，socket 的對端是 proxy 本身
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client:
        return request.client.host
    return "unknown"


@router.post("/add", response_model=AddResponse)
def add_to_queue(
    entry_data: QueueEntryCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    manager: QueueManager = Depends(get_queue_manager)
):
    """
    加入排隊

    流程：
    1. 驗證名稱 / 推薦碼（失敗回傳 400）
    2. 以呼叫者 IP 加入（可能自動啟用）
    3. 回應後廣播 active entry
    """
    try:
        entry_id = manager.admit(
            entry_data.name,
            entry_data.referral_code,
            get_client_ip(request)
        )
    except ValidationError as e:
        logger.info(f"Rejected queue entry: {e}")
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid queue entry", "error": str(e)}
        )
    except StoreError:
        return JSONResponse(status_code=500, content=SERVER_ERROR)
    except Exception as e:
        logger.error(f"Failed to add queue entry: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=SERVER_ERROR)

    background_tasks.add_task(broadcast_active_entry)
    return AddResponse(message="You joined the queue successfully", id=entry_id)


@router.get("/status", response_model=StatusResponse)
def get_queue_status(manager: QueueManager = Depends(get_queue_manager)):
    """
    查詢排隊人數

    返回：
        - totalInQueue: 尚未完成的 entry 數量（包含 active entry）
    """
    try:
        status = manager.get_status()
        return StatusResponse(total_in_queue=status["totalInQueue"])
    except StoreError:
        return JSONResponse(status_code=500, content=SERVER_ERROR)
    except Exception as e:
        logger.error(f"Failed to get queue status: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=SERVER_ERROR)


@router.post("/rotate", response_model=RotateResponse)
def rotate_queue(
    background_tasks: BackgroundTasks,
    manager: QueueManager = Depends(get_queue_manager)
):
    """
    結束目前的回合，啟用下一位

    返回：
        - message: "Turn rotated" 或 "No more turns"
        - next: 新的 active entry，隊伍已空則為 null
    """
    try:
        next_entry = manager.rotate()
    except NotFoundError as e:
        # active entry 在途中消失：視為沒有下一位
        logger.warning(f"Rotation found inconsistent state: {e}")
        next_entry = None
    except StoreError:
        return JSONResponse(status_code=500, content=SERVER_ERROR)
    except Exception as e:
        logger.error(f"Failed to rotate queue: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=SERVER_ERROR)

    background_tasks.add_task(broadcast_active_entry)

    if next_entry is None:
        return RotateResponse(message="No more turns", next=None)

    logger.info(f"Rotated to entry {next_entry.id} (position {next_entry.position})")
    return RotateResponse(
        message="Turn rotated",
        next=QueueEntryResponse.model_validate(next_entry)
    )
