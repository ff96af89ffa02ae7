"""
Генератор публичных кодов доступа к сертификатам.
"""

import secrets
import string


class AccessCodeGenerator:
    """Генератор кодов доступа."""

    def __init__(self, fragment_length: int = 13):
        # Символы base-36 в нижнем регистре, безопасные для URL
        self.characters = string.digits + string.ascii_lowercase
        self.fragment_length = fragment_length

    @property
    def code_length(self) -> int:
        """Длина кода доступа."""
        return self.fragment_length * 2

    def generate(self) -> str:
        """
        Генерирует код доступа.

        Формат: два случайных фрагмента base-36, склеенных без разделителя.
        Уникальность обеспечивает уникальный индекс в БД: при конфликте
        сервис запрашивает новый код.

        Returns:
            str: Код доступа
        """
        return self._generate_fragment() + self._generate_fragment()

    def _generate_fragment(self) -> str:
        """
        Генерирует один случайный фрагмент кода.

        Returns:
            str: Фрагмент из fragment_length символов
        """
        return ''.join(secrets.choice(self.characters) for _ in range(self.fragment_length))

    def validate_format(self, code: str) -> bool:
        """
        Проверяет корректность формата кода доступа.

        Args:
            code: Код для проверки

        Returns:
            bool: True если формат корректен, False иначе
        """
        if not code or len(code) != self.code_length:
            return False

        return all(c in self.characters for c in code)
