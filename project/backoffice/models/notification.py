# backoffice/models/notification.py

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey
from backoffice.utils.database import Base, utcnow


class AdminNotification(Base):
    __tablename__ = "admin_notifications"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(50), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)   # None = всем сотрудникам
    ref_id = Column(Integer, nullable=True)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
