from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from database import Base, engine, get_settings
from api import queue, websocket

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 在應用啟動時建立 queue_entries 表
    Base.metadata.create_all(bind=engine)
    logger.info("Queue service started")
    yield


app = FastAPI(
    title="Queue API",
    description="Single-lane waiting queue with live active-turn updates",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # 格式錯誤的 body 與其他驗證失敗一樣回傳 400
    errors = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'][1:])}: {err['msg']}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request", "error": errors}
    )


# Include routers
app.include_router(queue.router)
app.include_router(websocket.router)


@app.get("/")
def root():
    return {"message": "Queue API", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
