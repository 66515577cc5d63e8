import logging
from contextlib import asynccontextmanager

import redis
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from sharelink.config import settings
from sharelink.database import engine, Base
from sharelink.exceptions import InternalError, RateLimitedError, ShareLinkError
from sharelink.monitoring import setup_monitoring
from sharelink.routers import share

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger("sharelink")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управляет жизненным циклом приложения"""
    logger.info("Запуск приложения %s", settings.APP_NAME)
    Base.metadata.create_all(bind=engine)
    yield
    logger.info("Завершение работы приложения")


app = FastAPI(
    title=settings.APP_NAME,
    description="API публичных ссылок на файлы с паролем и сроком действия",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(share.router)

setup_monitoring(app)


def error_response(exc: ShareLinkError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers
    )


@app.exception_handler(ShareLinkError)
async def share_link_error_handler(request: Request, exc: ShareLinkError):
    if isinstance(exc, InternalError):
        logger.error("%s %s -> %s", request.method, request.url.path, type(exc).__name__)
    return error_response(exc)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Ошибка базы данных: %s %s", request.method, request.url.path)
    return error_response(InternalError())


@app.exception_handler(redis.RedisError)
async def redis_error_handler(request: Request, exc: redis.RedisError):
    logger.exception("Ошибка Redis: %s %s", request.method, request.url.path)
    return error_response(InternalError())


@app.get("/", tags=["root"])
async def root():
    return {
        "message": settings.APP_NAME,
        "docs_url": "/docs",
        "version": "1.0.0"
    }


@app.get("/health", tags=["root"])
async def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("sharelink.main:app", host="0.0.0.0", port=8000, reload=True)
