# backoffice/schemas/content.py

from pydantic import BaseModel
from typing import Optional
from datetime import datetime


# ────────────── Обслуживание ──────────────
class NoticeBase(BaseModel):
    title: str
    title_en: Optional[str] = None
    message: str
    message_en: Optional[str] = None
    start_at: datetime
    end_at: Optional[datetime] = None
    is_active: bool = True


class NoticeCreate(NoticeBase):
    send_email: bool = False


class Notice(NoticeBase):
    id: int
    created_by: Optional[int] = None
    creator_name: Optional[str] = None
    created_at: datetime

    model_config = {
        "from_attributes": True
    }


# ────────────── FAQ ──────────────
class FaqBase(BaseModel):
    question: str
    question_en: Optional[str] = None
    answer: str
    answer_en: Optional[str] = None
    category: str = "general"
    sort_order: int = 0
    is_published: bool = True


class Faq(FaqBase):
    id: int
    created_at: datetime
    answer_html: Optional[str] = None
    answer_en_html: Optional[str] = None

    model_config = {
        "from_attributes": True
    }
