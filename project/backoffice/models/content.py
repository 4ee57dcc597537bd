# backoffice/models/content.py

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey
from backoffice.utils.database import Base, utcnow


class MaintenanceNotice(Base):
    __tablename__ = "maintenance_notices"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    title_en = Column(String(255), nullable=True)
    message = Column(Text, nullable=False)
    message_en = Column(Text, nullable=True)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class FaqItem(Base):
    __tablename__ = "faq_items"

    id = Column(Integer, primary_key=True, index=True)
    question = Column(String(500), nullable=False)
    question_en = Column(String(500), nullable=True)
    answer = Column(Text, nullable=False)                 # markdown
    answer_en = Column(Text, nullable=True)
    category = Column(String(50), nullable=False, default="general")
    sort_order = Column(Integer, nullable=False, default=0)
    is_published = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
