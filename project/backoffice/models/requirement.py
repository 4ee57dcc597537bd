# backoffice/models/requirement.py

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, ForeignKey
from backoffice.utils.database import Base, utcnow


class ProjectRequirement(Base):
    __tablename__ = "project_requirements"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    contact_name = Column(String(200), nullable=False)
    contact_email = Column(String(255), nullable=False)
    contact_phone = Column(String(50), nullable=True)
    company_name = Column(String(200), nullable=True)
    business_type = Column(String(100), nullable=True)
    business_desc = Column(Text, nullable=True)
    project_type = Column(String(100), nullable=True)
    project_objective = Column(Text, nullable=True)
    sections = Column(JSON, nullable=True)
    branding = Column(Text, nullable=True)
    technologies = Column(JSON, nullable=True)
    budget_range = Column(String(100), nullable=True)
    timeline = Column(String(100), nullable=True)
    comments = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="draft")    # draft | ... | converted
    converted_to_client_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
