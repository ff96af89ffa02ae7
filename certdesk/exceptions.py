"""
Кастомные исключения для системы сертификатов.
"""


class CertificateError(Exception):
    """Базовое исключение для всех ошибок сертификатов."""
    pass


class UnauthorizedError(CertificateError):
    """Операция требует авторизованного пользователя."""
    pass


class ValidationError(CertificateError):
    """Ошибка валидации входных данных."""
    pass


class EmptyImportError(ValidationError):
    """В импортируемой таблице нет ни одной корректной строки."""
    pass


class SpreadsheetError(ValidationError):
    """Файл таблицы не поддерживается или не читается."""
    pass


class CertificateNotFoundError(CertificateError):
    """Сертификат не найден."""
    pass


class CertificateExistsError(CertificateError):
    """Сертификат с таким кодом доступа уже существует."""
    pass


class DatabaseError(CertificateError):
    """Ошибка работы с базой данных."""
    pass


class BulkCreateError(DatabaseError):
    """Массовое создание прервано на одной из записей."""

    def __init__(self, message: str, created=None):
        super().__init__(message)
        # Записи, сохраненные до сбоя, остаются в БД
        self.created = list(created or [])


class GenerationError(CertificateError):
    """Ошибка генерации кода доступа."""
    pass


class ExportError(CertificateError):
    """Ошибка формирования файла экспорта."""
    pass


class QRFetchError(CertificateError):
    """Не удалось получить изображение QR-кода."""
    pass
