"""
API для работы с сертификатами
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from config.settings import get_settings
from .auth import IdentityProvider, TokenIdentityProvider
from .exceptions import (
    BulkCreateError, CertificateNotFoundError, UnauthorizedError, ValidationError
)
from .exporter import CertificateExporter
from .importer import SpreadsheetImporter
from .models import Actor, BulkCreateItem, BulkCreateRequest, CertificateRequest, CreateResult, ExportRequest
from .service import CertificateService
from .viewer import CertificateViewer

TEMPLATES_DIR = Path(__file__).parent / "templates"

bearer_scheme = HTTPBearer(auto_error=False)


class CertificateAPI:
    """API для работы с сертификатами"""

    def __init__(
            self,
            service: CertificateService,
            identity_provider: Optional[IdentityProvider] = None,
            exporter: Optional[CertificateExporter] = None,
            lifespan=None
    ):
        self.service = service
        self.identity_provider = identity_provider or TokenIdentityProvider()
        self.importer = SpreadsheetImporter(service)
        self.exporter = exporter or CertificateExporter()
        self.viewer = CertificateViewer(service)
        self.templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
        self.settings = get_settings()
        self.logger = logging.getLogger(__name__)

        # Создание FastAPI приложения
        self.app = FastAPI(
            title="Certificate Desk API",
            description="API для выдачи и проверки сертификатов о стажировке",
            version="1.0.0",
            lifespan=lifespan
        )

        self._setup_routes()

    def _current_actor(
            self,
            credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
    ) -> Optional[Actor]:
        """Пользователь из заголовка Authorization (None для анонимного запроса)"""
        token = credentials.credentials if credentials else None
        return self.identity_provider.get_current_actor(token)

    def _raise_http_error(self, error: Exception, action: str):
        """Преобразование ошибок сервиса в HTTP ответы"""
        if isinstance(error, UnauthorizedError):
            raise HTTPException(status_code=401, detail="Unauthorized")
        if isinstance(error, ValidationError):
            self.logger.warning(f"Ошибка валидации ({action}): {error}")
            raise HTTPException(status_code=400, detail=str(error))
        if isinstance(error, CertificateNotFoundError):
            raise HTTPException(status_code=404, detail=str(error))
        if isinstance(error, BulkCreateError):
            raise HTTPException(
                status_code=500,
                detail={"message": f"Ошибка: {action}", "created": len(error.created)}
            )

        self.logger.error(f"Ошибка ({action}): {error}")
        raise HTTPException(status_code=500, detail=f"Ошибка: {action}")

    def _setup_routes(self):
        """Настройка маршрутов API"""

        @self.app.post("/api/certificates", response_model=CreateResult, status_code=201)
        def create_certificate(
                request: CertificateRequest,
                actor: Optional[Actor] = Depends(self._current_actor)
        ):
            """Создание нового сертификата"""
            try:
                return self.service.create_certificate(actor, request)
            except Exception as e:
                self._raise_http_error(e, "создание сертификата")

        @self.app.post("/api/certificates/bulk", response_model=List[BulkCreateItem], status_code=201)
        def bulk_create_certificates(
                request: BulkCreateRequest,
                actor: Optional[Actor] = Depends(self._current_actor)
        ):
            """Массовое создание сертификатов"""
            try:
                return self.service.bulk_create_certificates(actor, request.certificates)
            except Exception as e:
                self._raise_http_error(e, "массовое создание сертификатов")

        @self.app.get("/api/certificates")
        def list_certificates(actor: Optional[Actor] = Depends(self._current_actor)):
            """Список сертификатов, новые первыми"""
            try:
                return [certificate.to_dict() for certificate in self.service.list_certificates(actor)]
            except Exception as e:
                self._raise_http_error(e, "получение списка сертификатов")

        @self.app.put("/api/certificates/{certificate_id}")
        def update_certificate(
                certificate_id: str,
                request: CertificateRequest,
                actor: Optional[Actor] = Depends(self._current_actor)
        ):
            """Изменение имени, должности и периода"""
            try:
                return self.service.update_certificate(actor, certificate_id, request).to_dict()
            except Exception as e:
                self._raise_http_error(e, "изменение сертификата")

        @self.app.delete("/api/certificates/{certificate_id}")
        def delete_certificate(
                certificate_id: str,
                actor: Optional[Actor] = Depends(self._current_actor)
        ):
            """Удаление сертификата"""
            try:
                return {"deleted": self.service.delete_certificate(actor, certificate_id)}
            except Exception as e:
                self._raise_http_error(e, "удаление сертификата")

        @self.app.post("/api/certificates/import", status_code=201)
        async def import_certificates(
                file: UploadFile = File(...),
                actor: Optional[Actor] = Depends(self._current_actor)
        ):
            """Импорт сертификатов из таблицы Excel"""
            try:
                content = await file.read()
                created = await run_in_threadpool(
                    self.importer.import_file, actor, content, file.filename
                )
                return {
                    "imported": len(created),
                    "certificates": [item.model_dump() for item in created]
                }
            except Exception as e:
                self._raise_http_error(e, "импорт сертификатов")

        @self.app.post("/api/certificates/export")
        async def export_certificates(
                request: ExportRequest,
                actor: Optional[Actor] = Depends(self._current_actor)
        ):
            """Экспорт выбранных сертификатов: таблица и QR-коды в ZIP архиве"""
            try:
                certificates = await run_in_threadpool(
                    self.service.get_certificates_by_ids, actor, request.ids
                )
                result = await self.exporter.export(certificates)
            except Exception as e:
                self._raise_http_error(e, "экспорт сертификатов")

            return Response(
                content=result.to_zip(),
                media_type="application/zip",
                headers={
                    "Content-Disposition": 'attachment; filename="certificates_export.zip"',
                    "X-QR-Failed-Count": str(len(result.failed))
                }
            )

        @self.app.get("/api/public/certificates/{access_code}")
        async def get_certificate_by_access_code(access_code: str):
            """Публичная проверка сертификата по коду доступа"""
            try:
                view = await self.viewer.load(access_code)
            except Exception as e:
                self._raise_http_error(e, "проверка сертификата")

            return JSONResponse(content=view.to_dict(), status_code=200 if view.is_found else 404)

        @self.app.get("/c/{access_code}", response_class=HTMLResponse)
        async def certificate_page(request: Request, access_code: str):
            """Публичная страница сертификата"""
            try:
                view = await self.viewer.load(access_code)
            except Exception as e:
                self._raise_http_error(e, "проверка сертификата")

            return self.templates.TemplateResponse(
                request,
                "viewer.html",
                {
                    "view": view,
                    "home_url": self.settings.home_url,
                    "share_url": f"{self.settings.public_origin}/c/{access_code}"
                },
                status_code=200 if view.is_found else 404
            )

        @self.app.get("/health", tags=["monitoring"])
        def health_check():
            """Проверка здоровья API и БД"""
            repo = self.service.certificate_repo
            database_ok = repo.db_manager.health_check()
            health_status = {
                "status": "healthy" if database_ok else "unhealthy",
                "timestamp": datetime.now().isoformat(),
                "components": {
                    "api": {"status": "healthy"},
                    "database": {"status": "healthy" if database_ok else "unhealthy"}
                }
            }
            if database_ok:
                health_status["components"]["database"]["certificates"] = repo.count_certificates()
            return JSONResponse(content=health_status, status_code=200 if database_ok else 503)
