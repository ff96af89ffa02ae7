"""
Pydantic модели для валидации и сериализации данных сертификатов.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
from .validators import MAX_FIELD_LENGTH, normalize_text


class CertificateRequest(BaseModel):
    """Модель запроса на создание или изменение сертификата."""
    candidate_name: str = Field(..., description="Имя стажера")
    role: str = Field(..., description="Должность")
    duration: str = Field(..., description="Период стажировки")

    @field_validator('candidate_name', 'role', 'duration', mode='before')
    @classmethod
    def normalize(cls, v):
        """Приводим значения к строке без пробелов по краям."""
        return normalize_text(v)

    @field_validator('candidate_name', 'role')
    @classmethod
    def validate_required(cls, v):
        """Имя и должность обязательны."""
        if not v:
            raise ValueError("Поле не может быть пустым")
        if len(v) > MAX_FIELD_LENGTH:
            raise ValueError(f"Длина поля не может превышать {MAX_FIELD_LENGTH} символов")
        return v

    @field_validator('duration')
    @classmethod
    def validate_duration(cls, v):
        """Период может быть пустым (строки импорта без колонки Duration)."""
        if len(v) > MAX_FIELD_LENGTH:
            raise ValueError(f"Длина поля не может превышать {MAX_FIELD_LENGTH} символов")
        return v

    class Config:
        """Конфигурация модели."""
        json_schema_extra = {
            "example": {
                "candidate_name": "Asha Rao",
                "role": "Backend Intern",
                "duration": "Jun–Aug 2024"
            }
        }


class BulkCreateRequest(BaseModel):
    """Модель запроса на массовое создание сертификатов."""
    certificates: List[CertificateRequest] = Field(..., description="Сертификаты в порядке создания")


class CreateResult(BaseModel):
    """Результат создания сертификата."""
    id: str
    access_code: str


class BulkCreateItem(BaseModel):
    """Одна запись результата массового создания."""
    id: str
    access_code: str
    candidate_name: str
    role: str
    duration: str


class Certificate(BaseModel):
    """Модель сертификата."""
    id: str = Field(..., description="Внутренний идентификатор")
    candidate_name: str = Field(..., description="Имя стажера")
    role: str = Field(..., description="Должность")
    duration: str = Field(..., description="Период стажировки")
    access_code: str = Field(..., description="Публичный код доступа")
    issue_date: datetime = Field(default_factory=datetime.now, description="Дата выдачи")
    created_by: str = Field(..., description="ID создателя")

    @property
    def viewer_path(self) -> str:
        """Путь страницы просмотра сертификата."""
        return f"/c/{self.access_code}"

    def viewer_link(self, origin: str) -> str:
        """Полная ссылка на страницу сертификата."""
        return f"{origin.rstrip('/')}{self.viewer_path}"

    @property
    def formatted_issue_date(self) -> str:
        """Возвращает дату выдачи в формате DD.MM.YYYY."""
        return self.issue_date.strftime('%d.%m.%Y')

    def to_dict(self) -> dict:
        """Конвертирует объект в словарь для JSON сериализации."""
        return {
            "id": self.id,
            "candidate_name": self.candidate_name,
            "role": self.role,
            "duration": self.duration,
            "access_code": self.access_code,
            "issue_date": self.issue_date.isoformat(),
            "formatted_issue_date": self.formatted_issue_date,
            "created_by": self.created_by,
            "viewer_path": self.viewer_path
        }

    class Config:
        """Конфигурация модели."""
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": "6f1c1f0e-8f7a-4b2e-9f33-2b0c9f1b6a10",
                "candidate_name": "Asha Rao",
                "role": "Backend Intern",
                "duration": "Jun–Aug 2024",
                "access_code": "k3j9x0q1w2e4rt5y6u7i8o9p0a",
                "issue_date": "2024-09-01T10:00:00",
                "created_by": "admin"
            }
        }


class ExportRequest(BaseModel):
    """Модель запроса экспорта выбранных сертификатов."""
    ids: List[str] = Field(..., min_length=1, description="ID выбранных сертификатов")


class Actor(BaseModel):
    """Авторизованный пользователь, выполняющий операцию."""
    id: str = Field(..., min_length=1, description="ID пользователя")
    display_name: Optional[str] = Field(None, description="Отображаемое имя")
