"""
Публичный просмотр сертификата по коду доступа.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .models import Certificate
from .service import CertificateService, get_certificate_service

logger = logging.getLogger(__name__)


class ViewerState(str, Enum):
    """Состояние страницы сертификата."""
    LOADING = "loading"
    NOT_FOUND = "not_found"
    FOUND = "found"


@dataclass(frozen=True)
class CertificateView:
    """Что показывает страница сертификата."""
    access_code: str
    state: ViewerState
    certificate: Optional[Certificate] = None

    @classmethod
    def loading(cls, access_code: str) -> "CertificateView":
        return cls(access_code=access_code, state=ViewerState.LOADING)

    @classmethod
    def not_found(cls, access_code: str) -> "CertificateView":
        return cls(access_code=access_code, state=ViewerState.NOT_FOUND)

    @classmethod
    def found(cls, certificate: Certificate) -> "CertificateView":
        return cls(access_code=certificate.access_code, state=ViewerState.FOUND, certificate=certificate)

    @property
    def is_loading(self) -> bool:
        return self.state is ViewerState.LOADING

    @property
    def is_not_found(self) -> bool:
        return self.state is ViewerState.NOT_FOUND

    @property
    def is_found(self) -> bool:
        return self.state is ViewerState.FOUND

    def details(self) -> Optional[dict]:
        """
        Поля сертификата для отображения.

        Returns:
            Optional[dict]: Детали или None, если сертификат не найден или еще загружается
        """
        if not self.is_found:
            return None

        return {
            "candidate_name": self.certificate.candidate_name,
            "role": self.certificate.role,
            "duration": self.certificate.duration,
            "access_code": self.certificate.access_code,
            "issue_date": self.certificate.formatted_issue_date,
        }

    def to_dict(self) -> dict:
        """Конвертирует состояние страницы в словарь для JSON."""
        data = {"state": self.state.value, "access_code": self.access_code}
        if self.is_found:
            data["certificate"] = self.details()
        return data


class CertificateViewer:
    """Загрузка сертификата для публичной страницы."""

    def __init__(self, service: CertificateService = None):
        self.service = service or get_certificate_service()

    def begin(self, access_code: str) -> CertificateView:
        """Начальное состояние страницы, пока запрос не выполнен."""
        return CertificateView.loading(access_code)

    async def load(self, access_code: str) -> CertificateView:
        """
        Загружает сертификат по коду доступа.

        Args:
            access_code: Код доступа из URL

        Returns:
            CertificateView: Состояние FOUND или NOT_FOUND
        """
        if not self.service.code_generator.validate_format(access_code):
            logger.info("Страница сертификата: код доступа имеет неверный формат")
            return CertificateView.not_found(access_code)

        certificate = await asyncio.to_thread(self.service.get_by_access_code, access_code)

        if certificate is None:
            logger.info("Страница сертификата: код доступа не найден")
            return CertificateView.not_found(access_code)

        return CertificateView.found(certificate)
