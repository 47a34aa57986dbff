"""
Connection Manager：管理 WebSocket 觀察者

- 連線時加入、斷線時移除
- 廣播時走訪當下的快照，廣播途中連線可以自由進出
- 已關閉的連線會被跳過並移除
"""
from typing import Any, Dict, List
import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


class ConnectionManager:
    """目前連線中的 WebSocket 集合"""

    def __init__(self):
        self._connections: List[WebSocket] = []

    @property
    def count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.append(websocket)
        logger.info(f"Observer connected ({self.count} total)")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            self._connections.remove(websocket)
            logger.info(f"Observer disconnected ({self.count} total)")

    @staticmethod
    def is_open(websocket: WebSocket) -> bool:
        return (
            websocket.client_state == WebSocketState.CONNECTED
            and websocket.application_state == WebSocketState.CONNECTED
        )

    async def send(self, websocket: WebSocket, payload: Dict[str, Any]) -> bool:
        """送給單一觀察者；送出失敗就把它移除"""
        try:
            await websocket.send_json(payload)
            return True
        except Exception as e:
            logger.warning(f"Dropping observer after failed send: {e}")
            self.disconnect(websocket)
            return False

    async def broadcast(self, payload: Dict[str, Any]) -> int:
        """
        推送 `payload` 給所有開啟中的觀察者

        返回：
            實際收到的觀察者數量
        """
        delivered = 0
        for websocket in list(self._connections):
            if not self.is_open(websocket):
                self.disconnect(websocket)
                continue
            if await self.send(websocket, payload):
                delivered += 1
        return delivered


# 單一隊伍，單一組觀察者
connection_manager = ConnectionManager()
