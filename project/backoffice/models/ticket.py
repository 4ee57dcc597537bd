# backoffice/models/ticket.py

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey
from backoffice.utils.database import Base, utcnow

TICKET_STATUSES = ("new", "in_progress", "waiting_client", "waiting_support", "closed")
TICKET_PRIORITIES = ("urgent", "high", "medium", "low")      # порядок сортировки
TICKET_CATEGORIES = ("support", "improvement", "storage_request")
IMPROVEMENT_STATUSES = ("pending", "in_progress", "completed")


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    subject = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="new")
    priority = Column(String(10), nullable=False, default="medium")
    category = Column(String(20), nullable=False, default="support")
    improvement_status = Column(String(20), nullable=True)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    service_id = Column(Integer, ForeignKey("client_services.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    closed_at = Column(DateTime, nullable=True)


class TicketMessage(Base):
    __tablename__ = "ticket_messages"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    message = Column(Text, nullable=False)
    is_internal = Column(Boolean, nullable=False, default=False)    # видно только персоналу
    created_at = Column(DateTime, nullable=False, default=utcnow)


class TicketAttachment(Base):
    __tablename__ = "ticket_attachments"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id"), nullable=False, index=True)
    message_id = Column(Integer, ForeignKey("ticket_messages.id"), nullable=True)
    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)      # относительный URL /uploads/...
    file_size = Column(Integer, nullable=False, default=0)
    mime_type = Column(String(100), nullable=True)
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
