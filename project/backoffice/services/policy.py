# backoffice/services/policy.py

"""
Права ролей. Маршруты спрашивают возможность (Capability),
а не сравнивают строки ролей.
"""

from enum import Enum


class Capability(str, Enum):
    READ = "read"          # свои тикеты, услуги, уведомления
    WRITE = "write"        # создавать тикеты и писать сообщения
    TRIAGE = "triage"      # лиды, требования к проектам
    ASSIGN = "assign"      # брать тикеты, видеть справочники персонала и клиентов
    CLOSE = "close"        # закрывать тикеты
    DELETE = "delete"      # удалять тикеты
    MANAGE = "manage"      # пользователи, контент, услуги, хранилище, почта


ROLE_CAPABILITIES: dict[str, frozenset[Capability]] = {
    "client": frozenset({Capability.READ, Capability.WRITE}),
    "support": frozenset({
        Capability.READ, Capability.WRITE, Capability.TRIAGE,
        Capability.ASSIGN, Capability.CLOSE,
    }),
    "admin": frozenset(Capability),
}


def capabilities(role: str | None) -> frozenset[Capability]:
    if not role:
        return frozenset()
    return ROLE_CAPABILITIES.get(role, frozenset())


def can(role: str | None, *required: Capability) -> bool:
    granted = capabilities(role)
    return all(c in granted for c in required)


def is_staff(role: str | None) -> bool:
    return can(role, Capability.ASSIGN)
