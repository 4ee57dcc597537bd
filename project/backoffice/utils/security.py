# backoffice/utils/security.py

"""
Модуль для работы с хэшированием паролей, временными паролями
и подписью cookie сессии.
Используется passlib с sha256_crypt, чтобы избежать проблем с bcrypt на Windows.
"""

import secrets
import string
from datetime import datetime, timedelta, timezone

from jwt import encode, decode, InvalidTokenError
from passlib.context import CryptContext

# Создаём контекст для хэширования паролей
pwd_context = CryptContext(schemes=["sha256_crypt"], deprecated="auto")

ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    """
    Хэширует пароль.

    :param password: строка пароля пользователя
    :return: хэшированный пароль в виде строки
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Проверяет совпадение пароля с его хэшем.

    :param plain_password: строка пароля пользователя
    :param hashed_password: хэшированный пароль из базы
    :return: True если пароль совпадает с хэшем, иначе False
    """
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def generate_password(length: int = 10) -> str:
    """Временный пароль из букв и цифр."""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def sign_session(session_id: str, secret_key: str, ttl_minutes: int) -> str:
    """
    Подписывает идентификатор серверной сессии для cookie.
    Сама сессия живёт в таблице user_sessions, cookie только ссылается на неё.
    """
    expire = datetime.now(timezone.utc) + timedelta(minutes=ttl_minutes)
    return encode({"sid": session_id, "exp": expire}, secret_key, algorithm=ALGORITHM)


def read_session(token: str, secret_key: str) -> str | None:
    """Возвращает sid из cookie или None, если подпись неверна или срок истёк."""
    try:
        payload = decode(token, secret_key, algorithms=[ALGORITHM])
    except InvalidTokenError:
        return None
    return payload.get("sid")
