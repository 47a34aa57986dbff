"""
WebSocket Endpoint：即時推送目前的 active entry

流程：
1. 連線時推送一次目前的 active entry
2. 之後由 queue API 在每次變動後廣播
3. 收到的訊息只記 log，不做處理
"""
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
import logging

from core.connection_manager import connection_manager
from services.notification_service import send_active_entry

router = APIRouter(tags=["websocket"])
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def queue_updates(websocket: WebSocket):
    await connection_manager.connect(websocket)

    # 1. 初次推送失敗（例如 StoreError）：關閉連線，讓客戶端重連
    try:
        await send_active_entry(websocket)
    except Exception as e:
        logger.error(f"Initial active-entry push failed: {e}", exc_info=True)
        connection_manager.disconnect(websocket)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    # 2. 接收迴圈：訊息只記錄
    try:
        while True:
            message = await websocket.receive_text()
            logger.info(f"WebSocket message received: {message!r}")
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"WebSocket receive failed: {e}")
    finally:
        connection_manager.disconnect(websocket)
