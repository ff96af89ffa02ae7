"""
Основная бизнес-логика для работы с сертификатами.
"""

import logging
import uuid
from datetime import datetime
from typing import Iterable, List, Optional
from config.settings import get_settings
from .auth import require_actor
from .models import Actor, BulkCreateItem, Certificate, CertificateRequest, CreateResult
from .database import get_certificate_repo, CertificateRepository, Certificate as DBCertificate
from .generator import AccessCodeGenerator
from .validators import DataValidator
from .exceptions import *

# Настройка логирования
logger = logging.getLogger(__name__)


class CertificateService:
    """Сервис для работы с сертификатами."""

    def __init__(self, certificate_repo: CertificateRepository = None,
                 code_generator: AccessCodeGenerator = None,
                 access_code_attempts: int = None):
        """
        Инициализация сервиса.

        Args:
            certificate_repo: Репозиторий сертификатов (по умолчанию глобальный)
            code_generator: Генератор кодов доступа
            access_code_attempts: Попытки вставки при конфликте кода доступа
        """
        self.certificate_repo = certificate_repo or get_certificate_repo()
        self.code_generator = code_generator or AccessCodeGenerator()
        self.validator = DataValidator()
        if access_code_attempts is None:
            access_code_attempts = get_settings().access_code_attempts
        self.access_code_attempts = access_code_attempts

    def create_certificate(self, actor: Optional[Actor], request: CertificateRequest) -> CreateResult:
        """
        Создает новый сертификат.

        Args:
            actor: Авторизованный пользователь
            request: Данные сертификата

        Returns:
            CreateResult: ID и код доступа нового сертификата

        Raises:
            UnauthorizedError: Если пользователь не авторизован
            GenerationError: Если не удалось подобрать свободный код доступа
            DatabaseError: При ошибке БД
        """
        actor = self._authorize(actor, "создание сертификата")
        logger.info(f"Создание сертификата для {request.candidate_name} пользователем {actor.id}")

        try:
            db_certificate = self._insert_certificate(actor, request)
        except Exception as e:
            logger.error(f"Ошибка создания сертификата: {e}")
            if isinstance(e, (GenerationError, DatabaseError)):
                raise
            raise DatabaseError(f"Неожиданная ошибка при создании сертификата: {e}")

        logger.info(f"Сертификат {db_certificate.id} успешно создан")
        return CreateResult(id=str(db_certificate.id), access_code=db_certificate.access_code)

    def bulk_create_certificates(self, actor: Optional[Actor],
                                 requests: List[CertificateRequest]) -> List[BulkCreateItem]:
        """
        Создает сертификаты последовательно, каждый со своим кодом доступа.

        Записи сохраняются по одной. Сбой на любой записи прерывает
        оставшиеся; уже сохраненные записи не откатываются и доступны
        через BulkCreateError.created.

        Args:
            actor: Авторизованный пользователь
            requests: Данные сертификатов

        Returns:
            List[BulkCreateItem]: Созданные сертификаты в порядке запроса

        Raises:
            UnauthorizedError: Если пользователь не авторизован
            BulkCreateError: Если одна из записей не сохранилась
        """
        actor = self._authorize(actor, "массовое создание сертификатов")
        logger.info(f"Массовое создание {len(requests)} сертификатов пользователем {actor.id}")

        results = []
        for position, request in enumerate(requests, 1):
            try:
                db_certificate = self._insert_certificate(actor, request)
            except Exception as e:
                logger.error(
                    f"Массовое создание прервано на записи {position} из {len(requests)}: {e}. "
                    f"Сохранено записей: {len(results)}"
                )
                raise BulkCreateError(
                    f"Ошибка при создании записи {position} ({request.candidate_name}): {e}",
                    created=results
                )

            results.append(BulkCreateItem(
                id=str(db_certificate.id),
                access_code=db_certificate.access_code,
                candidate_name=db_certificate.candidate_name,
                role=db_certificate.role,
                duration=db_certificate.duration
            ))

        logger.info(f"Создано сертификатов: {len(results)}")
        return results

    def update_certificate(self, actor: Optional[Actor], certificate_id: str,
                           request: CertificateRequest) -> Certificate:
        """
        Перезаписывает имя, должность и период сертификата.

        Код доступа, дата выдачи и создатель не меняются.

        Args:
            actor: Авторизованный пользователь
            certificate_id: ID сертификата
            request: Новые значения полей

        Returns:
            Certificate: Обновленный сертификат

        Raises:
            UnauthorizedError: Если пользователь не авторизован
            CertificateNotFoundError: Если сертификат не найден
        """
        actor = self._authorize(actor, "изменение сертификата")
        logger.info(f"Изменение сертификата {certificate_id} пользователем {actor.id}")

        certificate_uuid = self._parse_id(certificate_id)
        if certificate_uuid is None:
            raise CertificateNotFoundError(f"Сертификат {certificate_id} не найден")

        try:
            db_certificate = self.certificate_repo.update_certificate(certificate_uuid, {
                "candidate_name": request.candidate_name,
                "role": request.role,
                "duration": request.duration
            })
        except Exception as e:
            logger.error(f"Ошибка изменения сертификата {certificate_id}: {e}")
            raise DatabaseError(f"Ошибка при изменении сертификата: {e}")

        if db_certificate is None:
            logger.warning(f"Сертификат {certificate_id} не найден для изменения")
            raise CertificateNotFoundError(f"Сертификат {certificate_id} не найден")

        logger.info(f"Сертификат {certificate_id} успешно изменен")
        return self._convert_db_to_pydantic(db_certificate)

    def list_certificates(self, actor: Optional[Actor]) -> List[Certificate]:
        """
        Получает все сертификаты, новые первыми.

        Args:
            actor: Авторизованный пользователь

        Returns:
            List[Certificate]: Список сертификатов (пустой для анонимного запроса)
        """
        if actor is None:
            logger.debug("Список сертификатов запрошен без авторизации")
            return []

        try:
            db_certificates = self.certificate_repo.list_certificates()
        except Exception as e:
            logger.error(f"Ошибка получения списка сертификатов: {e}")
            raise DatabaseError(f"Ошибка при получении списка сертификатов: {e}")

        return [self._convert_db_to_pydantic(db_cert) for db_cert in db_certificates]

    def get_by_access_code(self, access_code: str) -> Optional[Certificate]:
        """
        Публичный поиск сертификата по коду доступа.

        Args:
            access_code: Код доступа (точное совпадение с учетом регистра)

        Returns:
            Optional[Certificate]: Сертификат или None если не найден
        """
        if not access_code or not access_code.strip():
            return None

        try:
            db_certificate = self.certificate_repo.get_certificate_by_access_code(access_code)
        except Exception as e:
            logger.error(f"Ошибка поиска сертификата по коду доступа: {e}")
            raise DatabaseError(f"Ошибка при поиске сертификата: {e}")

        if not db_certificate:
            logger.info("Сертификат по коду доступа не найден")
            return None

        return self._convert_db_to_pydantic(db_certificate)

    def delete_certificate(self, actor: Optional[Actor], certificate_id: str) -> bool:
        """
        Удаляет сертификат без возможности восстановления.

        Args:
            actor: Авторизованный пользователь
            certificate_id: ID сертификата

        Returns:
            bool: True если сертификат удален, False если его не было
        """
        actor = self._authorize(actor, "удаление сертификата")
        logger.info(f"Удаление сертификата {certificate_id} пользователем {actor.id}")

        certificate_uuid = self._parse_id(certificate_id)
        if certificate_uuid is None:
            logger.warning(f"Некорректный ID сертификата для удаления: {certificate_id}")
            return False

        try:
            result = self.certificate_repo.delete_certificate(certificate_uuid)
        except Exception as e:
            logger.error(f"Ошибка удаления сертификата {certificate_id}: {e}")
            raise DatabaseError(f"Ошибка при удалении сертификата: {e}")

        if result:
            logger.info(f"Сертификат {certificate_id} удален")
        else:
            logger.warning(f"Сертификат {certificate_id} не найден для удаления")

        return result

    def get_certificates_by_ids(self, actor: Optional[Actor],
                                certificate_ids: Iterable[str]) -> List[Certificate]:
        """
        Получает выбранные сертификаты (для экспорта).

        Args:
            actor: Авторизованный пользователь
            certificate_ids: ID сертификатов; неизвестные ID пропускаются

        Returns:
            List[Certificate]: Найденные сертификаты, новые первыми
        """
        self._authorize(actor, "выборка сертификатов")

        parsed_ids = [self._parse_id(certificate_id) for certificate_id in certificate_ids]

        try:
            db_certificates = self.certificate_repo.get_certificates_by_ids(
                [certificate_uuid for certificate_uuid in parsed_ids if certificate_uuid is not None]
            )
        except Exception as e:
            logger.error(f"Ошибка выборки сертификатов: {e}")
            raise DatabaseError(f"Ошибка при выборке сертификатов: {e}")

        return [self._convert_db_to_pydantic(db_cert) for db_cert in db_certificates]

    def validate_certificate_data(self, candidate_name: str, role: str, duration: str) -> List[str]:
        """
        Валидирует данные сертификата без создания.

        Returns:
            List[str]: Список ошибок валидации
        """
        return self.validator.validate_all(candidate_name, role, duration)

    def format_certificate_info(self, certificate: Certificate, detailed: bool = False) -> str:
        """
        Форматирует информацию о сертификате для отображения.

        Args:
            certificate: Сертификат
            detailed: Подробная информация

        Returns:
            str: Отформатированная информация
        """
        info = [
            f"Имя: {certificate.candidate_name}",
            f"Должность: {certificate.role}",
            f"Период: {certificate.duration or '—'}",
            f"Код доступа: {certificate.access_code}",
            f"Выдан: {certificate.formatted_issue_date}",
        ]

        if detailed:
            info.extend([
                f"ID: {certificate.id}",
                f"Создатель: {certificate.created_by}"
            ])

        return "\n".join(info)

    def _insert_certificate(self, actor: Actor, request: CertificateRequest) -> DBCertificate:
        """
        Сохраняет сертификат со свежим кодом доступа.

        При конфликте кода доступа в БД код генерируется заново.

        Raises:
            GenerationError: Если все попытки завершились конфликтом
        """
        for attempt in range(1, self.access_code_attempts + 1):
            access_code = self.code_generator.generate()
            try:
                return self.certificate_repo.create_certificate({
                    "candidate_name": request.candidate_name,
                    "role": request.role,
                    "duration": request.duration,
                    "access_code": access_code,
                    "issue_date": datetime.now(),
                    "created_by": actor.id
                })
            except CertificateExistsError:
                logger.warning(f"Конфликт кода доступа, попытка {attempt} из {self.access_code_attempts}")

        raise GenerationError(
            f"Не удалось подобрать свободный код доступа за {self.access_code_attempts} попыток"
        )

    def _authorize(self, actor: Optional[Actor], action: str) -> Actor:
        try:
            return require_actor(actor)
        except UnauthorizedError:
            logger.warning(f"Отказано в доступе: {action} без авторизации")
            raise

    @staticmethod
    def _parse_id(certificate_id: str) -> Optional[uuid.UUID]:
        try:
            return uuid.UUID(str(certificate_id))
        except (ValueError, TypeError):
            return None

    def _convert_db_to_pydantic(self, db_certificate: DBCertificate) -> Certificate:
        """
        Конвертирует объект БД в Pydantic модель.

        Args:
            db_certificate: Объект сертификата из БД

        Returns:
            Certificate: Pydantic модель сертификата
        """
        return Certificate(
            id=str(db_certificate.id),
            candidate_name=db_certificate.candidate_name,
            role=db_certificate.role,
            duration=db_certificate.duration or "",
            access_code=db_certificate.access_code,
            issue_date=db_certificate.issue_date,
            created_by=db_certificate.created_by
        )


# Глобальный экземпляр сервиса
certificate_service = CertificateService()


def get_certificate_service() -> CertificateService:
    """Возвращает экземпляр сервиса сертификатов."""
    return certificate_service
