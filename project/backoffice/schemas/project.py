# backoffice/schemas/project.py

from pydantic import BaseModel
from typing import Optional
import datetime as dt


class TechnologyRef(BaseModel):
    tech_name: str
    tech_icon: Optional[str] = None

    model_config = {
        "from_attributes": True
    }


class ProjectBase(BaseModel):
    slug: Optional[str] = None
    title: Optional[str] = None
    title_en: Optional[str] = None
    summary: Optional[str] = None
    summary_en: Optional[str] = None
    description: Optional[str] = None
    description_en: Optional[str] = None
    client_name: Optional[str] = None
    url: Optional[str] = None
    cover_image: Optional[str] = None
    date: Optional[dt.date] = None
    is_published: Optional[bool] = None
    technologies: Optional[list[TechnologyRef]] = None


class ProjectCreate(ProjectBase):
    title: str


class ProjectImage(BaseModel):
    id: int
    project_id: int
    file_path: str
    caption: Optional[str] = None
    sort_order: int

    model_config = {
        "from_attributes": True
    }


class Project(BaseModel):
    id: int
    slug: str
    title: str
    title_en: Optional[str] = None
    summary: Optional[str] = None
    summary_en: Optional[str] = None
    description: Optional[str] = None
    description_en: Optional[str] = None
    client_name: Optional[str] = None
    url: Optional[str] = None
    cover_image: Optional[str] = None
    date: Optional[dt.date] = None
    is_published: bool
    created_at: dt.datetime
    technologies: list[TechnologyRef] = []
    images: list[ProjectImage] = []

    model_config = {
        "from_attributes": True
    }


class TechnologyBase(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    description_en: Optional[str] = None
    icon_url: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class TechnologyCreate(TechnologyBase):
    name: str


class Technology(BaseModel):
    id: int
    name: str
    category: str
    description: Optional[str] = None
    description_en: Optional[str] = None
    icon_url: Optional[str] = None
    sort_order: int
    is_active: bool
    created_at: dt.datetime

    model_config = {
        "from_attributes": True
    }
