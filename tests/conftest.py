"""
Общие фикстуры для тестов
"""
from datetime import datetime
from io import BytesIO

import openpyxl
import pytest

from certdesk.database import CertificateRepository, DatabaseManager
from certdesk.exceptions import QRFetchError
from certdesk.models import Actor, Certificate
from certdesk.service import CertificateService


class FakeQRClient:
    """Подмена сервиса QR-кодов: запоминает запросы, падает для выбранных кодов"""

    def __init__(self, fail_codes=()):
        self.fail_codes = set(fail_codes)
        self.payloads = []

    async def fetch(self, payload: str) -> bytes:
        self.payloads.append(payload)
        if payload.rsplit("/", 1)[-1] in self.fail_codes:
            raise QRFetchError("Сервис QR-кодов вернул статус 500")
        return b"\x89PNG\r\n" + payload.encode("utf-8")


@pytest.fixture
def db_manager(tmp_path):
    """Временная БД SQLite"""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'test.db'}")
    manager.create_tables()
    yield manager
    manager.engine.dispose()


@pytest.fixture
def certificate_repo(db_manager):
    """Репозиторий на временной БД"""
    return CertificateRepository(db_manager)


@pytest.fixture
def service(certificate_repo):
    """Сервис на временной БД"""
    return CertificateService(certificate_repo, access_code_attempts=3)


@pytest.fixture
def actor():
    """Авторизованный пользователь"""
    return Actor(id="admin-1")


@pytest.fixture
def sample_certificate():
    """Образец сертификата для тестов"""
    return Certificate(
        id="6f1c1f0e-8f7a-4b2e-9f33-2b0c9f1b6a10",
        candidate_name="Asha Rao",
        role="Backend Intern",
        duration="Jun–Aug 2024",
        access_code="k3j9x0q1w2e4rt5y6u7i8o9p0a",
        issue_date=datetime(2024, 9, 1, 10, 0),
        created_by="admin-1"
    )


@pytest.fixture
def make_xlsx():
    """Фабрика файлов .xlsx из списка строк (первая строка это заголовок)"""

    def _make(rows, extra_sheets=None):
        workbook = openpyxl.Workbook()
        sheet = workbook.active
        sheet.title = "Interns"
        for row in rows:
            sheet.append(row)

        for title, sheet_rows in (extra_sheets or {}).items():
            extra = workbook.create_sheet(title)
            for row in sheet_rows:
                extra.append(row)

        buffer = BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return _make


@pytest.fixture
def fake_qr_client():
    """Сервис QR-кодов без сети"""
    return FakeQRClient()


@pytest.fixture
def qr_client_factory():
    """Фабрика подмен сервиса QR-кодов"""
    return FakeQRClient
