"""
Модели SQLAlchemy для работы с базой данных.
"""

import logging
import uuid
from datetime import datetime
from typing import Iterable, List, Optional
from sqlalchemy import (
    create_engine, Column, Integer, String, DateTime, Index, Uuid, text
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from config.settings import get_settings
from .exceptions import CertificateExistsError

logger = logging.getLogger(__name__)

# Базовый класс для моделей
Base = declarative_base()


class Certificate(Base):
    """Модель сертификата."""

    __tablename__ = "certificates"

    # Порядковый номер вставки, упорядочивает записи с одинаковой датой выдачи
    seq = Column(Integer, primary_key=True, autoincrement=True)

    # Основные поля
    id = Column(Uuid(as_uuid=True), unique=True, nullable=False, index=True, default=uuid.uuid4)
    access_code = Column(String(64), unique=True, nullable=False, index=True)
    candidate_name = Column(String(255), nullable=False)
    role = Column(String(255), nullable=False)
    duration = Column(String(255), nullable=False, default="")

    # Метаданные
    issue_date = Column(DateTime, default=datetime.now, nullable=False, index=True)
    created_by = Column(String(64), nullable=False)

    __table_args__ = (
        Index('idx_certificate_created_by', 'created_by'),
    )

    def __repr__(self):
        return f"<Certificate(id={self.id}, access_code={self.access_code})>"


class DatabaseManager:
    """Менеджер для работы с базой данных."""

    def __init__(self, database_url: str = None):
        """
        Инициализация менеджера БД.

        Args:
            database_url: URL подключения к БД
        """
        if database_url is None:
            settings = get_settings()
            database_url = settings.database_url

        engine_options = {"pool_pre_ping": True, "echo": False}
        if database_url.startswith("sqlite"):
            # API обслуживает запросы из пула потоков
            engine_options["connect_args"] = {"check_same_thread": False}
        else:
            engine_options["pool_recycle"] = 3600

        self.engine = create_engine(database_url, **engine_options)

        # Объекты остаются читаемыми после закрытия сессии
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )


    def create_tables(self):
        """Создает все таблицы в базе данных."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Таблицы базы данных созданы успешно")

    def drop_tables(self):
        """Удаляет все таблицы из базы данных."""
        Base.metadata.drop_all(bind=self.engine)
        logger.info("Таблицы базы данных удалены")

    def get_session(self) -> Session:
        """Возвращает новую сессию для работы с БД."""
        return self.SessionLocal()

    def health_check(self) -> bool:
        """Проверяет подключение к базе данных."""
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
                return True
        except Exception as e:
            logger.error(f"Ошибка подключения к БД: {e}")
            return False


class CertificateRepository:
    """Репозиторий для работы с сертификатами."""

    def __init__(self, db_manager: DatabaseManager):
        """
        Инициализация репозитория.

        Args:
            db_manager: Менеджер базы данных
        """
        self.db_manager = db_manager

    def create_certificate(self, certificate_data: dict) -> Certificate:
        """
        Создает новый сертификат.

        Args:
            certificate_data: Данные сертификата

        Returns:
            Certificate: Созданный сертификат

        Raises:
            CertificateExistsError: Если код доступа уже занят
        """
        with self.db_manager.get_session() as session:
            certificate = Certificate(**certificate_data)
            session.add(certificate)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise CertificateExistsError(
                    f"Код доступа {certificate_data.get('access_code')} уже используется"
                ) from e

            return certificate

    def get_certificate_by_access_code(self, access_code: str) -> Optional[Certificate]:
        """
        Получает сертификат по коду доступа (точное совпадение).

        Args:
            access_code: Код доступа

        Returns:
            Optional[Certificate]: Сертификат или None
        """
        with self.db_manager.get_session() as session:
            return session.query(Certificate).filter(
                Certificate.access_code == access_code
            ).one_or_none()

    def list_certificates(self) -> List[Certificate]:
        """
        Получает все сертификаты, новые первыми.

        Returns:
            List[Certificate]: Список сертификатов
        """
        with self.db_manager.get_session() as session:
            return session.query(Certificate).order_by(
                Certificate.issue_date.desc(), Certificate.seq.desc()
            ).all()

    def get_certificates_by_ids(self, certificate_ids: Iterable[uuid.UUID]) -> List[Certificate]:
        """
        Получает сертификаты по списку ID, новые первыми.

        Args:
            certificate_ids: ID сертификатов

        Returns:
            List[Certificate]: Найденные сертификаты
        """
        certificate_ids = list(certificate_ids)
        if not certificate_ids:
            return []

        with self.db_manager.get_session() as session:
            return session.query(Certificate).filter(
                Certificate.id.in_(certificate_ids)
            ).order_by(Certificate.issue_date.desc(), Certificate.seq.desc()).all()

    def update_certificate(self, certificate_id: uuid.UUID, fields: dict) -> Optional[Certificate]:
        """
        Обновляет изменяемые поля сертификата.

        Args:
            certificate_id: ID сертификата
            fields: Новые значения candidate_name, role, duration

        Returns:
            Optional[Certificate]: Обновленный сертификат или None если не найден
        """
        with self.db_manager.get_session() as session:
            certificate = session.query(Certificate).filter(
                Certificate.id == certificate_id
            ).one_or_none()

            if certificate is None:
                return None

            certificate.candidate_name = fields["candidate_name"]
            certificate.role = fields["role"]
            certificate.duration = fields["duration"]

            session.commit()
            return certificate

    def delete_certificate(self, certificate_id: uuid.UUID) -> bool:
        """
        Удаляет сертификат без возможности восстановления.

        Args:
            certificate_id: ID сертификата

        Returns:
            bool: True если сертификат удален, False если не найден
        """
        with self.db_manager.get_session() as session:
            deleted = session.query(Certificate).filter(
                Certificate.id == certificate_id
            ).delete(synchronize_session=False)
            session.commit()
            return deleted > 0

    def count_certificates(self) -> int:
        """Возвращает количество сертификатов."""
        with self.db_manager.get_session() as session:
            return session.query(Certificate).count()


# Глобальный менеджер БД
db_manager = DatabaseManager()
certificate_repo = CertificateRepository(db_manager)


def get_db_manager() -> DatabaseManager:
    """Возвращает менеджер БД."""
    return db_manager


def get_certificate_repo() -> CertificateRepository:
    """Возвращает репозиторий сертификатов."""
    return certificate_repo


if __name__ == "__main__":
    # Тестирование подключения к БД
    if db_manager.health_check():
        print("✓ Подключение к базе данных успешно")
        db_manager.create_tables()
    else:
        print("✗ Не удалось подключиться к базе данных")
