from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache, wraps
from typing import List
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./queue.db"
    turn_duration_minutes: int = 20
    cors_origins: List[str] = ["*"]
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env")


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()

# SQLite 需要 check_same_thread=False：FastAPI 的 thread pool 會跨執行緒共用連線
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
    pool_pre_ping=True
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency：提供 Database Session

    使用 yield 確保 session 在請求結束後會被關閉
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _find_session(args, kwargs):
    if args:
        first = args[0]
        if isinstance(first, Session):
            return first
        # QueueManager 之類的物件以 `.db` 提供自己持有的 session
        owned = getattr(first, "db", None)
        if isinstance(owned, Session):
            return owned
    db = kwargs.get('db')
    if isinstance(db, Session):
        return db
    return None


def transactional(func):
    """
    Transaction decorator：確保資料庫操作的原子性

    使用方式：
        @transactional
        def some_business_logic(db: Session, ...):
            db.add(QueueEntry(...))
            # 不需要手動 commit，decorator 會處理

        class QueueManager:
            @transactional
            def rotate(self):
                # commit 的是 self.db 這個 session
                ...

    如果函式內發生異常：
        - 自動 rollback
        - 異常會被重新拋出（讓上層處理）

    注意：
        - 第一個參數必須是 db: Session，或以 `.db` 持有 Session 的物件
        - 不要在函式內手動 commit（decorator 會處理）
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        db = _find_session(args, kwargs)

        if db is None:
            raise ValueError(
                f"@transactional requires a Session (or an owner exposing `.db`), "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
