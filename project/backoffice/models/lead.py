# backoffice/models/lead.py

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean
from backoffice.utils.database import Base, utcnow

LEAD_STATUSES = ("new", "replied", "closed")


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    project_type = Column(String(100), nullable=True)
    message = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="new")      # new | replied | closed
    is_important = Column(Boolean, nullable=False, default=False)
    internal_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
