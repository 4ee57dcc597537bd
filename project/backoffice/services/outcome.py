# backoffice/services/outcome.py

"""
Необязательные побочные эффекты (письма, уведомления, realtime).

Основной сценарий не должен падать из-за них, поэтому каждый такой вызов
идёт через best_effort: результат приводится к Outcome, ошибка пишется
в журнал и дальше не пробрасывается.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable


@dataclass
class Outcome:
    ok: bool
    reason: str | None = None
    data: dict = field(default_factory=dict)

    @classmethod
    def success(cls, **data) -> "Outcome":
        return cls(True, None, data)

    @classmethod
    def failure(cls, reason: str, **data) -> "Outcome":
        return cls(False, reason, data)


async def best_effort(log, target: str, action: str, awaitable: Awaitable[Any]) -> Outcome:
    try:
        result = await awaitable
    except Exception as e:
        await log.log_error(target, f"{action}: {e}")
        return Outcome.failure(str(e))

    if isinstance(result, Outcome):
        if not result.ok:
            await log.log_warning(target, f"{action} не выполнено", {"reason": result.reason})
        return result
    return Outcome.success()
