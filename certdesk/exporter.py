"""
Экспорт выбранных сертификатов: таблица Excel и QR-коды ссылок.
"""

import json
import logging
import re
import zipfile
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

import httpx
import openpyxl
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from config.settings import get_settings
from .exceptions import ExportError, QRFetchError, ValidationError
from .models import Certificate

logger = logging.getLogger(__name__)

SHEET_NAME = "Certificates"
EXPORT_COLUMNS = [
    ("NAME", 30),
    ("ROLE", 30),
    ("DURATION (TIME PERIOD)", 26),
    ("LINK", 60),
]


def build_viewer_link(origin: str, access_code: str) -> str:
    """Ссылка на публичную страницу сертификата: <origin>/c/<code>."""
    return f"{origin.rstrip('/')}/c/{access_code}"


def qr_filename(candidate_name: str) -> str:
    """
    Имя файла QR-кода по имени стажера.

    Пробелы, разделители путей и символы, недопустимые в именах файлов,
    заменяются на подчеркивания; точки в начале имени отбрасываются.
    """
    stem = re.sub(r"[\s/\\:*?\"<>|\x00-\x1f]+", "_", candidate_name).lstrip("._")
    return (stem or "certificate") + "_QR.png"


class ImageFetcher(Protocol):
    """Источник изображений QR-кодов для произвольной строки."""

    async def fetch(self, payload: str) -> bytes:
        ...


class QRCodeClient:
    """Клиент внешнего сервиса генерации QR-кодов."""

    def __init__(self, api_url: str = None, size: int = None, timeout: float = None,
                 http_client: Optional[httpx.AsyncClient] = None):
        settings = get_settings()
        self.api_url = api_url or settings.qr_api_url
        self.size = size or settings.qr_size
        self.timeout = timeout or settings.qr_timeout
        self.http_client = http_client

    def build_params(self, payload: str) -> Dict[str, str]:
        """Параметры запроса к сервису QR-кодов."""
        return {"size": f"{self.size}x{self.size}", "data": payload}

    async def fetch(self, payload: str) -> bytes:
        """
        Получает PNG с QR-кодом для строки.

        Args:
            payload: Кодируемая строка (ссылка на сертификат)

        Returns:
            bytes: Изображение PNG

        Raises:
            QRFetchError: Сервис недоступен или вернул ошибку
        """
        try:
            if self.http_client is not None:
                response = await self.http_client.get(self.api_url, params=self.build_params(payload))
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.api_url, params=self.build_params(payload))
        except httpx.HTTPError as e:
            raise QRFetchError(f"Сервис QR-кодов недоступен: {e}")

        if response.status_code != 200:
            raise QRFetchError(f"Сервис QR-кодов вернул статус {response.status_code}")

        return response.content


@dataclass
class ExportResult:
    """Результат экспорта: таблица, QR-коды и список неудачных QR."""
    workbook: bytes
    workbook_filename: str
    qr_images: Dict[str, bytes] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    def to_zip(self) -> bytes:
        """Упаковывает таблицу и QR-коды в ZIP архив."""
        buffer = BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(self.workbook_filename, self.workbook)
            for filename, image in self.qr_images.items():
                archive.writestr(filename, image)
            archive.writestr("manifest.json", json.dumps({
                "workbook": self.workbook_filename,
                "qr_images": list(self.qr_images),
                "failed": self.failed
            }, ensure_ascii=False, indent=2))
        return buffer.getvalue()

    def save(self, directory: Path) -> List[Path]:
        """
        Сохраняет таблицу и QR-коды в директорию.

        Returns:
            List[Path]: Пути сохраненных файлов
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        paths = [directory / self.workbook_filename]
        paths[0].write_bytes(self.workbook)

        for filename, image in self.qr_images.items():
            path = directory / filename
            path.write_bytes(image)
            paths.append(path)

        return paths


class CertificateExporter:
    """Экспорт выбранных сертификатов."""

    def __init__(self, qr_client: ImageFetcher = None, origin: str = None,
                 workbook_filename: str = None):
        settings = get_settings()
        self.qr_client = qr_client or QRCodeClient()
        self.origin = origin or settings.public_origin
        self.workbook_filename = workbook_filename or settings.export_filename

    def build_workbook(self, certificates: Sequence[Certificate]) -> bytes:
        """
        Формирует таблицу Excel с листом "Certificates".

        Raises:
            ExportError: Если таблицу не удалось сформировать
        """
        try:
            workbook = openpyxl.Workbook()
            sheet = workbook.active
            sheet.title = SHEET_NAME

            for column, (header, width) in enumerate(EXPORT_COLUMNS, 1):
                cell = sheet.cell(row=1, column=column, value=header)
                cell.font = Font(bold=True)
                sheet.column_dimensions[get_column_letter(column)].width = width

            for certificate in certificates:
                sheet.append([
                    certificate.candidate_name,
                    certificate.role,
                    certificate.duration,
                    build_viewer_link(self.origin, certificate.access_code),
                ])

            buffer = BytesIO()
            workbook.save(buffer)
            return buffer.getvalue()
        except Exception as e:
            logger.error(f"Ошибка формирования таблицы экспорта: {e}")
            raise ExportError(f"Не удалось сформировать таблицу: {e}")

    async def export(self, certificates: Sequence[Certificate]) -> ExportResult:
        """
        Экспортирует сертификаты в таблицу и скачивает QR-коды.

        Ошибка отдельного QR-кода не прерывает экспорт: имя попадает
        в список failed.

        Args:
            certificates: Выбранные сертификаты

        Returns:
            ExportResult: Таблица, QR-коды и неудачные имена

        Raises:
            ValidationError: Если ничего не выбрано
            ExportError: Если не удалось сформировать таблицу
        """
        if not certificates:
            raise ValidationError("Выберите хотя бы один сертификат для экспорта")

        logger.info(f"Экспорт {len(certificates)} сертификатов")

        result = ExportResult(
            workbook=self.build_workbook(certificates),
            workbook_filename=self.workbook_filename
        )

        for certificate in certificates:
            link = build_viewer_link(self.origin, certificate.access_code)
            try:
                image = await self.qr_client.fetch(link)
            except Exception as e:
                logger.warning(f"Не удалось получить QR-код для {certificate.candidate_name}: {e}")
                result.failed.append(certificate.candidate_name)
                continue

            result.qr_images[self._unique_filename(result.qr_images, certificate.candidate_name)] = image

        if result.has_failures:
            logger.warning(f"Таблица сформирована, но QR-коды не получены для: {', '.join(result.failed)}")
        else:
            logger.info("Таблица и QR-коды сформированы")

        return result

    @staticmethod
    def _unique_filename(existing: Dict[str, bytes], candidate_name: str) -> str:
        filename = qr_filename(candidate_name)
        if filename not in existing:
            return filename

        stem = filename[:-len(".png")]
        counter = 2
        while f"{stem}_{counter}.png" in existing:
            counter += 1
        return f"{stem}_{counter}.png"
