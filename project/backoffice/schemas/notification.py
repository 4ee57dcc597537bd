# backoffice/schemas/notification.py

from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class Notification(BaseModel):
    id: int
    type: str
    user_id: Optional[int] = None
    ref_id: Optional[int] = None
    title: str
    body: Optional[str] = None
    is_read: bool
    created_at: datetime

    model_config = {
        "from_attributes": True
    }
