"""
Проверка доступа: определение текущего пользователя по токену.
"""

import logging
import secrets
from typing import Dict, Optional, Protocol

from config.settings import get_settings
from .exceptions import UnauthorizedError
from .models import Actor

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    """Внешний поставщик личности текущего пользователя."""

    def get_current_actor(self, token: Optional[str]) -> Optional[Actor]:
        ...


class TokenIdentityProvider:
    """Поставщик личности на основе статических bearer-токенов."""

    def __init__(self, tokens: Dict[str, str] = None):
        """
        Args:
            tokens: Словарь токен -> ID пользователя (по умолчанию ADMIN_TOKENS)
        """
        if tokens is None:
            tokens = get_settings().admin_tokens_map
        self.tokens = dict(tokens)

    def get_current_actor(self, token: Optional[str]) -> Optional[Actor]:
        """
        Возвращает пользователя для токена.

        Args:
            token: Bearer-токен из запроса

        Returns:
            Optional[Actor]: Пользователь или None если токен не распознан
        """
        if not token:
            return None

        for known_token, actor_id in self.tokens.items():
            if secrets.compare_digest(known_token.encode("utf-8"), token.encode("utf-8")):
                return Actor(id=actor_id)

        logger.warning("Отклонен неизвестный токен доступа")
        return None


def require_actor(actor: Optional[Actor]) -> Actor:
    """
    Проверяет наличие авторизованного пользователя.

    Raises:
        UnauthorizedError: Если пользователь не передан
    """
    if actor is None or not actor.id:
        raise UnauthorizedError("Unauthorized")
    return actor
