"""
Модуль валидации входных данных для сертификатов.
"""

from datetime import date, datetime
from typing import Any, List

MAX_FIELD_LENGTH = 255


def normalize_text(value: Any) -> str:
    """
    Приводит значение ячейки или поля формы к строке.

    Args:
        value: Исходное значение (строка, число, дата или None)

    Returns:
        str: Строка без пробелов по краям
    """
    if value is None:
        return ""

    # Excel хранит целые числа как float: 2024.0 -> "2024"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))

    if isinstance(value, datetime):
        return value.strftime("%d.%m.%Y")

    if isinstance(value, date):
        return value.strftime("%d.%m.%Y")

    return str(value).strip()


class TextFieldValidator:
    """Валидатор текстовых полей сертификата."""

    def __init__(self, max_length: int = MAX_FIELD_LENGTH):
        self.max_length = max_length

    def validate(self, value: str, required: bool = True) -> bool:
        """
        Валидация текстового поля.

        Args:
            value: Значение поля
            required: Поле не может быть пустым

        Returns:
            bool: True если значение валидно, False иначе
        """
        if not isinstance(value, str):
            return False

        if required and not value.strip():
            return False

        return len(value.strip()) <= self.max_length


class DataValidator:
    """Общий валидатор данных сертификата."""

    def __init__(self):
        self.text_validator = TextFieldValidator()

    def validate_all(self, candidate_name: str, role: str, duration: str) -> List[str]:
        """
        Валидация всех полей сертификата.

        Args:
            candidate_name: Имя стажера
            role: Должность
            duration: Период стажировки

        Returns:
            List[str]: Список ошибок валидации (пустой если все в порядке)
        """
        errors = []

        if not self.text_validator.validate(candidate_name):
            errors.append(f"Некорректное имя: {candidate_name!r}")

        if not self.text_validator.validate(role):
            errors.append(f"Некорректная должность: {role!r}")

        if not self.text_validator.validate(duration, required=False):
            errors.append(f"Некорректный период: {duration!r}")

        return errors
