"""
API 層

FastAPI routers：
- queue：加入排隊 / 查詢人數 / 輪替
- websocket：即時推送 active entry
"""
