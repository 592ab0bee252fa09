from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
import uvicorn

from barbershop.api.exceptions import (
    business_exception_handler,
    database_exception_handler,
    general_exception_handler,
    validation_exception_handler,
)
from barbershop.api.health import router as health_router
from barbershop.core.config import settings
from barbershop.core.database import close_database, init_database
from barbershop.core.exceptions import BusinessException
from barbershop.core.redis import get_redis_client, redis_manager
from barbershop.services.common_cache import discount_cache

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """启动时连接数据库和Redis；Redis失败只关闭缓存，不阻止启动"""
    logger.info(f"正在启动 {settings.app_name} ({settings.environment.value})")

    await init_database()

    try:
        await redis_manager.init_redis()
        discount_cache.redis_client = get_redis_client()
    except Exception as e:
        logger.warning(f"Redis不可用，折扣缓存已关闭: {e}")

    logger.info("应用启动完成")
    yield

    logger.info("正在关闭应用")
    discount_cache.redis_client = None
    await redis_manager.close_redis()
    await close_database()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="理发店预约 - 折扣评估、预约状态流转与排班可用性",
    debug=settings.debug,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, database_exception_handler)
app.add_exception_handler(BusinessException, business_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)


@app.get("/")
async def root():
    return {
        "message": f"欢迎使用 {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    uvicorn.run(
        "barbershop.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
