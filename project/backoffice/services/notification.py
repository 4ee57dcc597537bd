# backoffice/services/notification.py

from fastapi import HTTPException, Request
from sqlalchemy import delete, func, or_, update
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.notification import AdminNotification
from backoffice.models.user import User
from backoffice.services.policy import is_staff
from backoffice.utils.database import Database


async def notify(
    database: Database,
    type: str,
    user_id: int | None,
    ref_id: int | None,
    title: str,
    body: str | None = None,
) -> AdminNotification:
    """
    Одна строка уведомления; user_id=None значит для всех сотрудников.
    Пишется в собственной сессии: ошибка здесь не затрагивает сессию запроса.
    """
    row = AdminNotification(type=type, user_id=user_id, ref_id=ref_id, title=title[:255], body=body)
    async with database.session() as session:
        session.add(row)
        await session.commit()
    return row


def visible_filter(user: User):
    """Свои уведомления; широковещательные видны только персоналу."""
    if is_staff(user.role):
        return or_(AdminNotification.user_id == user.id, AdminNotification.user_id.is_(None))
    return AdminNotification.user_id == user.id


async def list_notifications_service(user: User, request: Request, limit: int) -> tuple[list[AdminNotification], int]:
    db = request.state.db

    result = await db.execute(
        select(AdminNotification)
        .where(visible_filter(user))
        .order_by(AdminNotification.created_at.desc(), AdminNotification.id.desc())
        .limit(limit)
    )
    rows = result.scalars().all()

    unread = await db.scalar(
        select(func.count(AdminNotification.id))
        .where(visible_filter(user), AdminNotification.is_read.is_(False))
    )
    return rows, int(unread or 0)


async def mark_all_read_service(user: User, request: Request) -> int:
    db = request.state.db
    result = await db.execute(
        update(AdminNotification)
        .where(visible_filter(user), AdminNotification.is_read.is_(False))
        .values(is_read=True)
    )
    await db.commit()
    await request.app.state.log.log_info("notification", "Уведомления прочитаны", {"user": user.id, "count": result.rowcount})
    return result.rowcount


async def get_visible_notification(id: int, user: User, db: AsyncSession) -> AdminNotification:
    result = await db.execute(
        select(AdminNotification).where(AdminNotification.id == id, visible_filter(user))
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise HTTPException(status_code=404, detail="not_found")
    return row


async def mark_read_service(id: int, user: User, request: Request) -> None:
    db = request.state.db
    row = await get_visible_notification(id, user, db)
    row.is_read = True
    await db.commit()


async def delete_notification_service(id: int, user: User, request: Request) -> None:
    db = request.state.db
    row = await get_visible_notification(id, user, db)
    await db.delete(row)
    await db.commit()
    await request.app.state.log.log_info("notification", "Уведомление удалено", {"id": id, "user": user.id})


async def clear_notifications_service(user: User, request: Request) -> int:
    db = request.state.db
    result = await db.execute(delete(AdminNotification).where(visible_filter(user)))
    await db.commit()
    return result.rowcount
