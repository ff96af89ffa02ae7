"""
FastAPI сервер для API сертификатов
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import get_settings
from certdesk.api import CertificateAPI
from certdesk.database import get_db_manager
from certdesk.service import get_certificate_service


def setup_logging(settings) -> None:
    """Настройка логирования"""
    os.makedirs(settings.log_file.parent, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(settings.log_file, encoding='utf-8'),
            logging.StreamHandler()
        ]
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    logging.info("Запуск API сервера...")

    # Создаем таблицы, если их еще нет
    get_db_manager().create_tables()
    logging.info("Подключение к БД установлено")

    yield

    logging.info("Остановка API сервера...")
    get_db_manager().engine.dispose()


def create_app() -> FastAPI:
    """Создание FastAPI приложения"""
    settings = get_settings()
    setup_logging(settings)

    certificate_api = CertificateAPI(get_certificate_service(), lifespan=lifespan)
    app = certificate_api.app
    app.state.certificate_api = certificate_api

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


# Создание приложения
app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api_server:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().debug
    )
