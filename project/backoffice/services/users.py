# backoffice/services/users.py

from datetime import timedelta

from fastapi import HTTPException, Request
from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.user import User, UserSession
from backoffice.schemas.user import UserCreate, UserUpdate
from backoffice.services.outcome import best_effort
from backoffice.utils.database import utcnow
from backoffice.utils.security import generate_password, hash_password, new_session_id, verify_password


# ────────────── Сессии ──────────────
async def open_session_service(username: str, password: str, request: Request) -> tuple[User, UserSession]:
    """
    Проверяет логин и пароль, создаёт серверную сессию.
    Неактивный пользователь не входит.
    """
    db = request.state.db
    log = request.app.state.log
    settings = request.app.state.settings

    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(password, user.password_hash):
        await log.log_warning("auth", "Неудачная попытка входа", {"username": username})
        raise HTTPException(status_code=401, detail="invalid_credentials")
    if not user.is_active:
        await log.log_warning("auth", "Вход отключённого пользователя", {"username": username})
        raise HTTPException(status_code=403, detail="user_inactive")

    now = utcnow()
    session = UserSession(
        id=new_session_id(),
        user_id=user.id,
        created_at=now,
        expires_at=now + timedelta(minutes=settings.SESSION_TTL_MINUTES),
    )
    user.last_login_at = now
    db.add(session)
    await db.commit()

    await log.log_info("auth", "Пользователь вошёл", {"user": user.id, "role": user.role})
    return user, session


async def resolve_session(db: AsyncSession, session_id: str) -> User | None:
    """Пользователь по живой сессии; истёкшая сессия удаляется."""
    session = await db.get(UserSession, session_id)
    if session is None:
        return None
    if session.expires_at <= utcnow():
        await db.delete(session)
        await db.commit()
        return None
    user = await db.get(User, session.user_id)
    if user is None or not user.is_active:
        return None
    return user


async def close_session_service(session_id: str, request: Request) -> None:
    db = request.state.db
    await db.execute(delete(UserSession).where(UserSession.id == session_id))
    await db.commit()


async def change_password_service(user: User, current_password: str, new_password: str, request: Request) -> None:
    db = request.state.db
    if not verify_password(current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="wrong_current_password")
    if not new_password or len(new_password) < 8:
        raise HTTPException(status_code=400, detail="password_too_short")

    user.password_hash = hash_password(new_password)
    user.must_change_password = False
    await db.commit()
    await request.app.state.log.log_info("auth", "Пароль изменён", {"user": user.id})


async def issue_temporary_password(user: User, request: Request, template: str) -> str:
    """Новый временный пароль + письмо по шаблону (best-effort)."""
    db = request.state.db
    settings = request.app.state.settings
    password = generate_password()

    user.password_hash = hash_password(password)
    user.must_change_password = True
    await db.commit()

    await best_effort(request.app.state.log, "auth", f"Письмо {template}", request.app.state.mailer.send(
        template,
        user.email,
        {
            "name": user.display_name,
            "username": user.username,
            "password": password,
            "loginUrl": login_url(settings, user.role),
        },
    ))
    return password


async def recover_password_service(email: str, request: Request) -> None:
    """
    Самостоятельное восстановление по email. Ответ всегда одинаковый,
    чтобы не раскрывать существование аккаунта.
    """
    db = request.state.db
    email = (email or "").strip().lower()
    if not email:
        raise HTTPException(status_code=400, detail="missing_fields")

    result = await db.execute(
        select(User).where(func.lower(User.email) == email, User.is_active.is_(True))
    )
    user = result.scalars().first()
    if user is None:
        await request.app.state.log.log_warning("auth", "Восстановление для неизвестного email", {"email": email})
        return

    await issue_temporary_password(user, request, "password-recovery")
    await request.app.state.log.log_info("auth", "Пароль восстановлен", {"user": user.id})


def login_url(settings, role: str) -> str:
    if role == "client":
        return f"{settings.SITE_URL}/portal-cliente"
    return f"{settings.SITE_URL}/portal-admin"


# ────────────── CRUD пользователей ──────────────
async def read_users_service(request: Request, role: str | None = None) -> list[User]:
    db = request.state.db
    query = select(User).order_by(User.created_at.desc(), User.id.desc())
    if role:
        query = query.where(User.role == role)
    result = await db.execute(query)
    return result.scalars().all()


async def read_user_service(id: int, request: Request) -> User:
    db = request.state.db
    user = await db.get(User, id)
    if user is None:
        await request.app.state.log.log_error("users", "Пользователь не найден", {"id": id})
        raise HTTPException(status_code=404, detail="not_found")
    return user


async def create_user_service(data: UserCreate, request: Request) -> tuple[User, str]:
    """
    Создание пользователя. Пароль без явного значения считается временным,
    с обязательной сменой при первом входе. Письмо user-created best-effort.
    """
    db = request.state.db
    log = request.app.state.log
    settings = request.app.state.settings

    username = data.username.strip()
    if not username:
        raise HTTPException(status_code=400, detail="missing_fields")

    password = data.password or generate_password()
    user = User(
        username=username,
        email=(data.email or "").strip() or None,
        name=data.name,
        full_name=data.full_name,
        company=data.company,
        phone=data.phone,
        role=data.role,
        password_hash=hash_password(password),
        must_change_password=True,
        pm2_access=bool(data.pm2_access),
        is_active=data.is_active if data.is_active is not None else True,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="username_taken")

    await log.log_info("users", "Пользователь создан", {"id": user.id, "role": user.role})

    await best_effort(log, "users", "Письмо user-created", request.app.state.mailer.send(
        "user-created",
        user.email,
        {
            "name": user.display_name,
            "username": user.username,
            "password": password,
            "loginUrl": login_url(settings, user.role),
        },
    ))
    return user, password


async def update_user_service(id: int, data: UserUpdate, request: Request) -> User:
    db = request.state.db
    user = await read_user_service(id, request)

    changes = data.model_dump(exclude_unset=True)
    password = changes.pop("password", None)
    for key, value in changes.items():
        if key in ("pm2_access", "is_active", "must_change_password") and value is None:
            continue
        setattr(user, key, value)
    if password:
        user.password_hash = hash_password(password)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="username_taken")

    if user.is_active is False:
        await db.execute(delete(UserSession).where(UserSession.user_id == user.id))
        await db.commit()

    await request.app.state.log.log_info("users", "Пользователь обновлён", {"id": id})
    return user


async def delete_user_service(id: int, current_user: User, request: Request) -> None:
    """Удаление пользователя администратором; удалить самого себя нельзя."""
    db = request.state.db
    if id == current_user.id:
        raise HTTPException(status_code=400, detail="cannot_delete_self")

    user = await read_user_service(id, request)
    await db.execute(delete(UserSession).where(UserSession.user_id == user.id))
    await db.delete(user)
    await db.commit()
    await request.app.state.log.log_info("users", "Пользователь удалён", {"id": id})


async def directory_service(roles: tuple[str, ...], request: Request) -> list[User]:
    """Активные пользователи с ролями roles, по отображаемому имени."""
    db = request.state.db
    result = await db.execute(select(User).where(User.role.in_(roles), User.is_active.is_(True)))
    users = result.scalars().all()
    return sorted(users, key=lambda u: u.display_name.lower())
