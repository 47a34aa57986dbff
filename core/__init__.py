"""
核心業務邏輯層

這個 package 包含所有持有排隊狀態的邏輯，包括：
- QueueManager：加入、啟用、輪替
- EntryStore：queue_entries 的資料存取
- ConnectionManager：WebSocket 觀察者管理
- Locks：並發控制工具
"""
