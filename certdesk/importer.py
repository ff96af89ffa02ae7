"""
Импорт сертификатов из таблиц Excel (.xlsx, .xls).
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import openpyxl
import xlrd
from pydantic import ValidationError as PydanticValidationError

from .auth import require_actor
from .exceptions import EmptyImportError, SpreadsheetError
from .models import Actor, BulkCreateItem, CertificateRequest
from .service import CertificateService, get_certificate_service
from .validators import normalize_text

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".xlsx", ".xls")

# Варианты заголовков колонок в порядке приоритета
HEADER_ALIASES = {
    "candidate_name": ("Name", "name", "Full Name"),
    "role": ("Role", "role", "Position"),
    "duration": ("Duration", "duration"),
}


def resolve_field(row: Dict[str, Any], aliases: Sequence[str]) -> str:
    """
    Возвращает первое непустое значение среди вариантов заголовка.

    Args:
        row: Строка таблицы (заголовок -> значение)
        aliases: Варианты заголовка в порядке приоритета

    Returns:
        str: Значение поля или пустая строка
    """
    for alias in aliases:
        value = normalize_text(row.get(alias))
        if value:
            return value
    return ""


def map_rows(rows: Iterable[Dict[str, Any]]) -> List[CertificateRequest]:
    """
    Преобразует строки таблицы в запросы на создание сертификатов.

    Строки без имени или должности пропускаются.
    """
    requests = []
    skipped = 0

    for row in rows:
        fields = {field: resolve_field(row, aliases) for field, aliases in HEADER_ALIASES.items()}

        if not fields["candidate_name"] or not fields["role"]:
            skipped += 1
            continue

        try:
            requests.append(CertificateRequest(**fields))
        except PydanticValidationError as e:
            raise SpreadsheetError(
                f"Некорректные данные в строке для {fields['candidate_name']}: {e.errors()[0]['msg']}"
            )

    if skipped:
        logger.info(f"Пропущено строк без имени или должности: {skipped}")

    return requests


class SpreadsheetImporter:
    """Импорт сертификатов из первой страницы таблицы."""

    def __init__(self, service: CertificateService = None):
        self.service = service or get_certificate_service()

    def parse(self, content: bytes, filename: str) -> List[CertificateRequest]:
        """
        Читает таблицу и возвращает корректные строки.

        Args:
            content: Содержимое файла
            filename: Имя файла (по расширению выбирается формат)

        Returns:
            List[CertificateRequest]: Строки с именем и должностью

        Raises:
            SpreadsheetError: Формат не поддерживается или файл не читается
        """
        rows = self.read_rows(content, filename)
        return map_rows(rows)

    def import_file(self, actor: Optional[Actor], content: bytes, filename: str) -> List[BulkCreateItem]:
        """
        Импортирует сертификаты из таблицы одним вызовом массового создания.

        Args:
            actor: Авторизованный пользователь
            content: Содержимое файла
            filename: Имя файла

        Returns:
            List[BulkCreateItem]: Созданные сертификаты

        Raises:
            SpreadsheetError: Файл не читается
            UnauthorizedError: Если пользователь не авторизован
            EmptyImportError: В файле нет ни одной корректной строки
        """
        require_actor(actor)
        logger.info(f"Импорт сертификатов из файла {filename}")

        requests = self.parse(content, filename)
        if not requests:
            logger.warning(f"В файле {filename} не найдено корректных строк")
            raise EmptyImportError("В файле не найдено корректных данных")

        created = self.service.bulk_create_certificates(actor, requests)
        logger.info(f"Импортировано сертификатов из {filename}: {len(created)}")
        return created

    def read_rows(self, content: bytes, filename: str) -> List[Dict[str, Any]]:
        """
        Читает строки первой страницы как словари заголовок -> значение.

        Первая непустая строка считается заголовком, пустые строки пропускаются.
        """
        extension = Path(filename or "").suffix.lower()
        if extension not in SUPPORTED_EXTENSIONS:
            raise SpreadsheetError(
                f"Неподдерживаемый формат файла: {filename}. Допустимы {', '.join(SUPPORTED_EXTENSIONS)}"
            )

        try:
            if extension == ".xlsx":
                raw_rows = self._read_xlsx(content)
            else:
                raw_rows = self._read_xls(content)
        except Exception as e:
            logger.error(f"Ошибка чтения файла {filename}: {e}")
            raise SpreadsheetError(f"Не удалось прочитать файл {filename}")

        return self._rows_to_dicts(raw_rows)

    @staticmethod
    def _read_xlsx(content: bytes) -> List[tuple]:
        workbook = openpyxl.load_workbook(BytesIO(content), read_only=True, data_only=True)
        try:
            sheet = workbook.worksheets[0]
            return list(sheet.iter_rows(values_only=True))
        finally:
            workbook.close()

    @staticmethod
    def _read_xls(content: bytes) -> List[list]:
        workbook = xlrd.open_workbook(file_contents=content)
        sheet = workbook.sheet_by_index(0)
        rows = []
        for index in range(sheet.nrows):
            row = []
            for cell in sheet.row(index):
                if cell.ctype == xlrd.XL_CELL_DATE:
                    row.append(xlrd.xldate.xldate_as_datetime(cell.value, workbook.datemode))
                else:
                    row.append(cell.value)
            rows.append(row)
        return rows

    @staticmethod
    def _rows_to_dicts(raw_rows: Iterable[Sequence[Any]]) -> List[Dict[str, Any]]:
        headers = None
        result = []

        for raw_row in raw_rows:
            values = list(raw_row or [])
            if not any(normalize_text(value) for value in values):
                continue

            if headers is None:
                headers = [normalize_text(value) for value in values]
                continue

            row = {}
            for header, value in zip(headers, values):
                if header and header not in row:
                    row[header] = value
            result.append(row)

        return result
