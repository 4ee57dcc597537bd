# backoffice/schemas/lead.py

from pydantic import BaseModel
from typing import Optional
from datetime import datetime


# ────────────── Форма контакта ──────────────
class LeadCreate(BaseModel):
    # обязательность проверяется после strip() в сервисе
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    project_type: Optional[str] = None
    message: Optional[str] = None


class LeadStatusUpdate(BaseModel):
    status: Optional[str] = None


class LeadNotesUpdate(BaseModel):
    notes: Optional[str] = None


# ────────────── Схема для RESPONSE ──────────────
class Lead(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    project_type: Optional[str] = None
    message: str
    status: str
    is_important: bool
    internal_notes: Optional[str] = None
    created_at: datetime

    model_config = {
        "from_attributes": True
    }


class LeadSummary(BaseModel):
    new: int = 0
    replied: int = 0
    closed: int = 0
