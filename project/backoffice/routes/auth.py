# backoffice/routes/auth.py

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from backoffice.config import settings
from backoffice.models.user import User
from backoffice.schemas.user import ChangePasswordRequest, LoginRequest, RecoverRequest, UserResponse
from backoffice.services.policy import Capability, can, capabilities, is_staff
from backoffice.services.users import (
    change_password_service,
    close_session_service,
    open_session_service,
    recover_password_service,
    resolve_session,
)
from backoffice.utils.security import read_session, sign_session

router = APIRouter()

limiter = Limiter(key_func=get_remote_address)


# ────────────── Сессия из cookie ──────────────
def session_id_from_cookie(cookies) -> str | None:
    token = cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    return read_session(token, settings.AUTH_SECRET_KEY)


async def get_current_user(request: Request) -> User:
    """
    Пользователь по cookie сессии.

    **Статусы:**
    - 401 Unauthorized – нет cookie, подпись неверна, сессия истекла или пользователь отключён
    """
    session_id = session_id_from_cookie(request.cookies)
    user = await resolve_session(request.state.db, session_id) if session_id else None
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="not_authenticated")

    request.state.session_id = session_id
    return user


def require(*required: Capability):
    """Зависимость маршрута: пользователь с нужными возможностями, иначе 403."""

    async def dependency(request: Request, user: User = Depends(get_current_user)) -> User:
        if not can(user.role, *required):
            await request.app.state.log.log_warning(
                "auth", "Недостаточно прав",
                {"user": user.id, "role": user.role, "required": [c.value for c in required]},
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden")
        return user

    return dependency


# ────────────── Страницы ──────────────
class LoginRedirect(Exception):
    """Страница без сессии: перенаправление на форму входа портала."""

    def __init__(self, location: str):
        self.location = location


def page_user(client_portal: bool):
    async def dependency(request: Request) -> User:
        session_id = session_id_from_cookie(request.cookies)
        user = await resolve_session(request.state.db, session_id) if session_id else None
        if user is None:
            raise LoginRedirect("/portal-cliente" if client_portal else "/portal-admin")
        return user

    return dependency


def session_payload(user: User) -> dict:
    return {
        "user": UserResponse.model_validate(user),
        "capabilities": sorted(c.value for c in capabilities(user.role)),
        "is_staff": is_staff(user.role),
    }


# ────────────── LOGIN ──────────────
@router.post(
    "/login",
    summary="Вход по логину и паролю",
    responses={
        200: {"description": "Сессия создана, cookie установлена"},
        401: {"description": "Неверный логин или пароль"},
        403: {"description": "Пользователь отключён"},
        429: {"description": "Слишком много попыток входа"},
    },
)
@limiter.limit(lambda: settings.LOGIN_RATE_LIMIT)
async def login(request: Request, response: Response, data: LoginRequest):
    """
    Проверяет логин и пароль, создаёт серверную сессию и ставит
    подписанную cookie. Ответ содержит флаг must_change_password.
    """
    try:
        user, session = await open_session_service(data.username.strip(), data.password, request)
    except Exception as e:
        await request.app.state.log.log_error("auth", f"Ошибка входа: {e}", {"username": data.username})
        raise

    token = sign_session(session.id, settings.AUTH_SECRET_KEY, settings.SESSION_TTL_MINUTES)
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.SESSION_TTL_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )
    return {"ok": True, "must_change_password": user.must_change_password, **session_payload(user)}


# ────────────── LOGOUT ──────────────
@router.post(
    "/logout",
    summary="Выход",
    responses={200: {"description": "Сессия удалена, cookie очищена"}},
)
async def logout(request: Request, response: Response):
    session_id = session_id_from_cookie(request.cookies)
    if session_id:
        await close_session_service(session_id, request)
        await request.app.state.log.log_info("auth", "Пользователь вышел")
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"ok": True}


# ────────────── SESSION ──────────────
@router.get(
    "/session",
    summary="Текущий пользователь",
    responses={
        200: {"description": "Данные пользователя и его возможности"},
        401: {"description": "Нет действующей сессии"},
    },
)
async def current_session(user: User = Depends(get_current_user)):
    return {"ok": True, **session_payload(user)}


# ────────────── CHANGE PASSWORD ──────────────
@router.post(
    "/change-password",
    summary="Смена пароля",
    responses={
        200: {"description": "Пароль изменён"},
        400: {"description": "Неверный текущий пароль или слишком короткий новый"},
        401: {"description": "Нет действующей сессии"},
    },
)
async def change_password(data: ChangePasswordRequest, request: Request, user: User = Depends(get_current_user)):
    try:
        await change_password_service(user, data.current_password, data.new_password, request)
        return {"ok": True}
    except Exception as e:
        await request.app.state.log.log_error("auth", f"Ошибка смены пароля: {e}", {"user": user.id})
        raise


# ────────────── RECOVER ──────────────
@router.post(
    "/recover",
    summary="Восстановление пароля по email",
    responses={
        200: {"description": "Ответ одинаковый независимо от существования аккаунта"},
        400: {"description": "Email не передан"},
    },
)
@limiter.limit(lambda: settings.LOGIN_RATE_LIMIT)
async def recover(request: Request, data: RecoverRequest):
    await recover_password_service(data.email, request)
    return {"ok": True}
