# backoffice/schemas/service.py

from pydantic import BaseModel
from typing import Any, Optional
from datetime import date, datetime


class ServiceBase(BaseModel):
    service_name: Optional[str] = None
    domain: Optional[str] = None
    description: Optional[str] = None
    service_type: Optional[str] = None
    status: Optional[str] = None
    storage_limit_mb: Optional[float] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ServiceCreate(ServiceBase):
    client_id: int
    service_name: str


class ServiceUpdate(ServiceBase):
    pass


class StorageConfig(BaseModel):
    folder_path: Optional[str] = None
    storage_limit_mb: Optional[float] = None
    alert_threshold: Optional[float] = None


class Service(BaseModel):
    id: int
    client_id: int
    service_name: str
    domain: Optional[str] = None
    description: Optional[str] = None
    service_type: str
    status: str
    folder_path: Optional[str] = None
    storage_used_mb: float
    storage_limit_mb: Optional[float] = None
    alert_threshold: float
    alert_sent_at: Optional[datetime] = None
    last_scan_at: Optional[datetime] = None
    last_scan_result: Optional[dict[str, Any]] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_at: datetime
    client_name: Optional[str] = None
    company: Optional[str] = None

    model_config = {
        "from_attributes": True
    }
