# backoffice/models/service.py

from sqlalchemy import Column, Integer, String, Text, DateTime, Date, Float, JSON, ForeignKey
from backoffice.utils.database import Base, utcnow


class ClientService(Base):
    __tablename__ = "client_services"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    service_name = Column(String(200), nullable=False)
    domain = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    service_type = Column(String(50), nullable=False, default="web")
    status = Column(String(20), nullable=False, default="active")
    folder_path = Column(String(500), nullable=True)
    storage_used_mb = Column(Float, nullable=False, default=0)
    storage_limit_mb = Column(Float, nullable=True)
    alert_threshold = Column(Float, nullable=False, default=80)     # % от лимита
    alert_sent_at = Column(DateTime, nullable=True)
    last_scan_at = Column(DateTime, nullable=True)
    last_scan_result = Column(JSON, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
