# backoffice/models/user.py

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from backoffice.utils.database import Base, utcnow

ROLES = ("admin", "support", "client")
STAFF_ROLES = ("admin", "support")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(255), nullable=True, index=True)
    name = Column(String(150), nullable=True)
    full_name = Column(String(200), nullable=True)
    company = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="client")          # admin | support | client
    must_change_password = Column(Boolean, nullable=False, default=False)
    pm2_access = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    @property
    def display_name(self) -> str:
        return self.full_name or self.name or self.username

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


class UserSession(Base):
    """Серверная сессия; cookie хранит только подписанную ссылку на id."""
    __tablename__ = "user_sessions"

    id = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False)
