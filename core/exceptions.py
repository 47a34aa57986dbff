"""
自定義異常類別

集中管理所有排隊相關異常，方便 API 層統一處理
"""


class QueueException(Exception):
    """所有排隊異常的基類"""
    pass


# ============ 輸入相關異常 ============

class ValidationError(QueueException):
    """名稱或推薦碼格式錯誤（使用者可修正，回傳 400）"""
    def __init__(self, field, reason):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


# ============ 資料庫相關異常 ============

class StoreError(QueueException):
    """資料庫存取或連線失敗（不把細節回傳給客戶端）"""
    pass


# ============ Entry 相關異常 ============

class NotFoundError(QueueException):
    """Entry 不存在（或在輪替途中消失）"""
    def __init__(self, entry_id):
        self.entry_id = entry_id
        super().__init__(f"Queue entry {entry_id} not found")


# ============ 狀態轉換異常 ============

class ActiveEntryConflict(QueueException):
    """已經有另一筆 active entry 時又嘗試啟用"""
    def __init__(self, entry_id, active_id):
        self.entry_id = entry_id
        self.active_id = active_id
        super().__init__(
            f"Cannot activate {entry_id}: entry {active_id} is already active"
        )
