# backoffice/models/email.py

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean
from backoffice.utils.database import Base, utcnow


class EmailTemplate(Base):
    """Сохранённая правка встроенного шаблона письма."""
    __tablename__ = "email_templates"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    subject = Column(String(255), nullable=False)
    html_content = Column(Text, nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class EmailLog(Base):
    __tablename__ = "email_logs"

    id = Column(Integer, primary_key=True, index=True)
    template_code = Column(String(50), nullable=False)
    to_email = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    status = Column(String(10), nullable=False)          # sent | failed
    error_msg = Column(Text, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
