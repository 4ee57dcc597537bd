# backoffice/schemas/ticket.py

from pydantic import BaseModel
from typing import Literal, Optional
from datetime import datetime

Priority = Literal["urgent", "high", "medium", "low"]
Category = Literal["support", "improvement", "storage_request"]
Status = Literal["new", "in_progress", "waiting_client", "waiting_support", "closed"]
ImprovementStatus = Literal["pending", "in_progress", "completed"]


class TicketCreate(BaseModel):
    subject: Optional[str] = None
    message: Optional[str] = None
    priority: Priority = "medium"
    category: Category = "support"
    service_id: Optional[int] = None
    client_id: Optional[int] = None       # учитывается только для персонала


class MessageCreate(BaseModel):
    message: Optional[str] = None
    is_internal: bool = False


class TicketUpdate(BaseModel):
    status: Optional[Status] = None
    priority: Optional[Priority] = None
    assigned_to: Optional[int] = None
    improvement_status: Optional[ImprovementStatus] = None


class TicketRow(BaseModel):
    id: int
    client_id: int
    subject: str
    status: str
    priority: str
    category: str
    improvement_status: Optional[str] = None
    assigned_to: Optional[int] = None
    service_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    closed_at: Optional[datetime] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    client_company: Optional[str] = None
    assigned_name: Optional[str] = None
    service_name: Optional[str] = None
    domain: Optional[str] = None
    message_count: int = 0

    model_config = {
        "from_attributes": True
    }


class MessageRow(BaseModel):
    id: int
    ticket_id: int
    user_id: int
    message: str
    is_internal: bool
    created_at: datetime
    username: Optional[str] = None
    display_name: Optional[str] = None
    role: Optional[str] = None


class AttachmentRow(BaseModel):
    id: int
    ticket_id: int
    message_id: Optional[int] = None
    filename: str
    original_name: str
    file_path: str
    file_size: int
    mime_type: Optional[str] = None
    uploaded_by: int
    display_name: Optional[str] = None
    created_at: datetime


class TicketStats(BaseModel):
    total: int = 0
    new: int = 0
    in_progress: int = 0
    waiting_client: int = 0
    waiting_support: int = 0
    closed: int = 0
