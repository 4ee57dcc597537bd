# backoffice/models/project.py

from sqlalchemy import Column, Integer, String, Text, DateTime, Date, Boolean, ForeignKey
from backoffice.utils.database import Base, utcnow


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String(200), unique=True, nullable=False)
    title = Column(String(255), nullable=False)
    title_en = Column(String(255), nullable=True)
    summary = Column(Text, nullable=True)
    summary_en = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    description_en = Column(Text, nullable=True)
    client_name = Column(String(200), nullable=True)
    url = Column(String(500), nullable=True)
    cover_image = Column(String(500), nullable=True)
    date = Column(Date, nullable=True)
    is_published = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class ProjectTechnology(Base):
    __tablename__ = "project_technologies"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    tech_name = Column(String(100), nullable=False)
    tech_icon = Column(String(255), nullable=True)


class ProjectImage(Base):
    __tablename__ = "project_images"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    file_path = Column(String(500), nullable=False)
    caption = Column(String(255), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Technology(Base):
    __tablename__ = "technologies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    category = Column(String(50), nullable=False, default="other")
    description = Column(Text, nullable=True)
    description_en = Column(Text, nullable=True)
    icon_url = Column(String(500), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
