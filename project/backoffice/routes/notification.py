# backoffice/routes/notification.py

from fastapi import APIRouter, Depends, Request
from backoffice.models.user import User
from backoffice.routes.auth import get_current_user
from backoffice.schemas.notification import Notification
from backoffice.services.notification import (
    clear_notifications_service,
    delete_notification_service,
    list_notifications_service,
    mark_all_read_service,
    mark_read_service,
)

router = APIRouter()


@router.get(
    "",
    summary="Уведомления текущего пользователя",
    responses={
        200: {"description": "Последние уведомления и число непрочитанных"},
        401: {"description": "Нет действующей сессии"},
    },
)
async def list_notifications(request: Request, user: User = Depends(get_current_user)):
    rows, unread = await list_notifications_service(user, request, request.app.state.settings.NOTIFICATIONS_LIMIT)
    return {"ok": True, "notifications": [Notification.model_validate(r) for r in rows], "unread": unread}


@router.post(
    "/read-all",
    summary="Отметить все прочитанными",
    responses={200: {"description": "Число отмеченных"}},
)
async def read_all(request: Request, user: User = Depends(get_current_user)):
    return {"ok": True, "updated": await mark_all_read_service(user, request)}


@router.post(
    "/{id}/read",
    summary="Отметить уведомление прочитанным",
    responses={
        200: {"description": "Отмечено"},
        404: {"description": "Уведомление не найдено или недоступно"},
    },
)
async def read_one(id: int, request: Request, user: User = Depends(get_current_user)):
    await mark_read_service(id, user, request)
    return {"ok": True}


@router.delete(
    "/{id}",
    summary="Удалить уведомление",
    responses={
        200: {"description": "Удалено"},
        404: {"description": "Уведомление не найдено или недоступно"},
    },
)
async def delete_one(id: int, request: Request, user: User = Depends(get_current_user)):
    try:
        await delete_notification_service(id, user, request)
        return {"ok": True}
    except Exception as e:
        await request.app.state.log.log_error("notification", f"Ошибка при удалении уведомления: {str(e)}", {"id": id})
        raise


@router.delete(
    "",
    summary="Очистить все видимые уведомления",
    responses={200: {"description": "Число удалённых"}},
)
async def clear_all(request: Request, user: User = Depends(get_current_user)):
    return {"ok": True, "deleted": await clear_notifications_service(user, request)}
