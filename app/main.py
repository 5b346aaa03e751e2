# app/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Конфигурация и ядро
from app.core.config import settings as config
from app.core.exceptions import ServiceError
from app.core.logging_config import setup_logging
from app.core.redis import redis_client

# Роутеры FastAPI
from app.routers import cart, catalog, dashboard, order

# --- Инициализация ---
logger = logging.getLogger(__name__)


# --- Обработчики ошибок ---
async def service_exception_handler(request: Request, exc: ServiceError):
    """Ошибки бизнес-логики: код ответа задаёт сам класс исключения."""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "errors": exc.errors},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Глобальный обработчик для всех необработанных исключений.
    Логирует ошибку с трейсбеком и отдаёт 500.
    """
    logger.critical(f"Unhandled exception for request: {request.method} {request.url}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error."},
    )

# --- Lifespan Manager (запуск и остановка приложения) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Application lifespan startup...")
    yield
    await redis_client.aclose()
    logger.info("Application shut down.")

# --- Создание FastAPI приложения ---
app = FastAPI(
    title="Jewelry B2B Pricing Service",
    description="Configurable product pricing, catalog search and cart-to-quotation flow",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Регистрация обработчиков исключений ---
app.add_exception_handler(ServiceError, service_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Подключение роутеров FastAPI ---
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(catalog.router, tags=["Catalog"])
api_router.include_router(cart.router, tags=["Cart & Wishlist"])
api_router.include_router(order.router, tags=["Quotations & Orders"])
api_router.include_router(dashboard.router, tags=["Dashboard"])

app.include_router(api_router)
