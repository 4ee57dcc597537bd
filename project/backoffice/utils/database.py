# backoffice/utils/database.py

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.future import select

from backoffice.utils.security import hash_password

# ────────────── Base для моделей ──────────────
Base = declarative_base()  # базовый класс для всех моделей SQLAlchemy


def utcnow() -> datetime:
    """Текущее время UTC без tzinfo (так колонки DateTime хранят его во всех СУБД)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Database:
    """
    Движок и фабрика сессий.

    Создаётся один раз в lifespan приложения и закрывается при остановке,
    модульного синглтона нет.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        # ────────────── Асинхронный движок ──────────────
        self.engine = create_async_engine(url, echo=echo)
        # ────────────── Асинхронная сессия ──────────────
        self.session_factory = sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def init(self, admin_username: str, admin_password: str, admin_email: str = "") -> bool:
        """
        Создаёт все таблицы (если ещё не созданы) и проверяет наличие администратора.
        Если администратора нет, создаётся первый с флагом смены пароля.

        Возвращает True, если администратор был создан.
        """
        # импорт регистрирует все модели в Base.metadata
        from backoffice.models import blog, content, email, lead, notification, project, requirement, service, ticket  # noqa: F401
        from backoffice.models.user import User

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        async with self.session() as session:
            result = await session.execute(select(User.id).where(User.role == "admin").limit(1))
            if result.scalar_one_or_none() is not None:
                return False

            admin_user = User(
                username=admin_username,
                name="Administrator",
                email=admin_email or None,
                password_hash=hash_password(admin_password),
                role="admin",
                must_change_password=True,
            )
            session.add(admin_user)
            await session.commit()
            return True

    async def dispose(self):
        await self.engine.dispose()


@asynccontextmanager
async def unit_of_work(db: AsyncSession):
    """
    Граница транзакции для нескольких операций записи:
    один commit при успехе, rollback при любой ошибке.
    """
    try:
        yield db
        await db.commit()
    except BaseException:
        await db.rollback()
        raise
