# backoffice/schemas/email.py

from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class TemplateUpdate(BaseModel):
    name: Optional[str] = None
    subject: Optional[str] = None
    html_content: Optional[str] = None
    is_active: bool = True


class TestEmailRequest(BaseModel):
    to_email: Optional[str] = None


class EmailLog(BaseModel):
    id: int
    template_code: str
    to_email: str
    subject: str
    status: str
    error_msg: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: datetime

    model_config = {
        "from_attributes": True
    }
