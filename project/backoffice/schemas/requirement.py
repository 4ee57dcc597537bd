# backoffice/schemas/requirement.py

from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class RequirementBase(BaseModel):
    contact_name: str
    contact_email: str
    contact_phone: Optional[str] = None
    company_name: Optional[str] = None
    business_type: Optional[str] = None
    business_desc: Optional[str] = None
    project_type: Optional[str] = None
    project_objective: Optional[str] = None
    sections: Optional[list[str]] = None
    branding: Optional[str] = None
    technologies: Optional[list[str]] = None
    budget_range: Optional[str] = None
    timeline: Optional[str] = None
    comments: Optional[str] = None
    internal_notes: Optional[str] = None


class RequirementCreate(RequirementBase):
    client_id: Optional[int] = None


class RequirementUpdate(RequirementBase):
    status: Optional[str] = None


class Requirement(RequirementBase):
    id: int
    client_id: Optional[int] = None
    status: str
    converted_to_client_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: datetime
    client_name: Optional[str] = None
    creator_name: Optional[str] = None

    model_config = {
        "from_attributes": True
    }
