import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from backend import RedisBackend, redis_backend
from chat_api import chat_api
from dependencies import get_store
from exceptions import GuestHistoryError, RemoteApiError, StoreError
from logging_config import get_logger, setup_logging
from routers.config import config_router
from routers.history import history_router
from routers.installations import installations_router
from routers.webhooks import webhooks_router

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await redis_backend.ping()
        logger.info("Redis client connected successfully")
    except StoreError as e:
        # Keep serving; every store call will surface its own error
        logger.error(f"Failed to connect to Redis: {e}")
    yield
    await chat_api.close()
    await redis_backend.close()
    logger.info("Connections closed")


app = FastAPI(title="Guest History", lifespan=lifespan)

app.include_router(config_router)
app.include_router(webhooks_router)
app.include_router(history_router)
app.include_router(installations_router)

logger.info("FastAPI application initialized")


@app.exception_handler(GuestHistoryError)
async def guest_history_error_handler(request: Request, exc: GuestHistoryError):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    content = {"error": str(exc)}
    if isinstance(exc, RemoteApiError) and exc.body is not None:
        content["detail"] = exc.body
    return JSONResponse(status_code=500, content=content)


@app.get("/healthcheck")
async def healthcheck(store: RedisBackend = Depends(get_store)):
    try:
        await store.ping()
    except StoreError as e:
        return JSONResponse(status_code=503, content={"status": "error", "error": str(e)})
    return {"status": "ok"}
