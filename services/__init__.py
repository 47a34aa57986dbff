"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- validation_service：名稱與推薦碼規則
- notification_service：組裝並推送 active entry
"""
