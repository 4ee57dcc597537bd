# backoffice/routes/users.py

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from backoffice.models.user import User
from backoffice.routes.auth import require
from backoffice.schemas.user import UserCreate, UserResponse, UserUpdate
from backoffice.services.policy import Capability
from backoffice.services.users import (
    create_user_service,
    delete_user_service,
    issue_temporary_password,
    read_user_service,
    read_users_service,
    update_user_service,
)

router = APIRouter()

manage = require(Capability.MANAGE)


# ────────────── READ ALL ──────────────
@router.get(
    "",
    summary="Список пользователей (только администратор)",
    responses={
        200: {"description": "Список пользователей"},
        401: {"description": "Нет действующей сессии"},
        403: {"description": "Недостаточно прав"},
    },
)
async def get_users(request: Request, role: Optional[str] = None, _: User = Depends(manage)):
    users = await read_users_service(request, role)
    return {"ok": True, "users": [UserResponse.model_validate(u) for u in users]}


# ────────────── CREATE ──────────────
@router.post(
    "",
    status_code=status.HTTP_200_OK,
    summary="Создание пользователя",
    responses={
        200: {"description": "Пользователь создан; временный пароль в ответе"},
        400: {"description": "Некорректные данные"},
        409: {"description": "Логин уже занят"},
    },
)
async def create_user(data: UserCreate, request: Request, _: User = Depends(manage)):
    """
    ## Создание пользователя

    - Без пароля генерируется временный.
    - Новый пользователь обязан сменить пароль при первом входе.
    - Письмо user-created отправляется best-effort.
    """
    try:
        user, password = await create_user_service(data, request)
        return {"ok": True, "user": UserResponse.model_validate(user), "temp_password": password}
    except Exception as e:
        await request.app.state.log.log_error("users", f"Ошибка при создании пользователя: {e}")
        raise


# ────────────── READ ONE ──────────────
@router.get(
    "/{id}",
    summary="Пользователь по ID",
    responses={200: {"description": "Пользователь найден"}, 404: {"description": "Пользователь не найден"}},
)
async def get_user(id: int, request: Request, _: User = Depends(manage)):
    user = await read_user_service(id, request)
    return {"ok": True, "user": UserResponse.model_validate(user)}


# ────────────── UPDATE ──────────────
@router.put(
    "/{id}",
    summary="Обновление пользователя",
    responses={
        200: {"description": "Пользователь обновлён"},
        404: {"description": "Пользователь не найден"},
        409: {"description": "Логин уже занят"},
    },
)
async def update_user(id: int, data: UserUpdate, request: Request, _: User = Depends(manage)):
    try:
        user = await update_user_service(id, data, request)
        return {"ok": True, "user": UserResponse.model_validate(user)}
    except Exception as e:
        await request.app.state.log.log_error("users", f"Ошибка при обновлении пользователя: {e}", {"id": id})
        raise


# ────────────── DELETE ──────────────
@router.delete(
    "/{id}",
    summary="Удаление пользователя",
    responses={
        200: {"description": "Пользователь удалён"},
        400: {"description": "Нельзя удалить самого себя"},
        404: {"description": "Пользователь не найден"},
    },
)
async def delete_user(id: int, request: Request, current_user: User = Depends(manage)):
    await delete_user_service(id, current_user, request)
    return {"ok": True}


# ────────────── RESET PASSWORD ──────────────
@router.post(
    "/{id}/reset-password",
    summary="Новый временный пароль",
    responses={
        200: {"description": "Пароль сброшен, письмо password-recovery отправлено"},
        404: {"description": "Пользователь не найден"},
    },
)
async def reset_password(id: int, request: Request, _: User = Depends(manage)):
    user = await read_user_service(id, request)
    password = await issue_temporary_password(user, request, "password-recovery")
    await request.app.state.log.log_info("users", "Пароль сброшен администратором", {"id": id})
    return {"ok": True, "temp_password": password}
