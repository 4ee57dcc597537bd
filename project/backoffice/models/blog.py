# backoffice/models/blog.py

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey
from backoffice.utils.database import Base, utcnow


class BlogCategory(Base):
    __tablename__ = "blog_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    name_en = Column(String(100), nullable=True)
    slug = Column(String(120), unique=True, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class BlogPost(Base):
    __tablename__ = "blog_posts"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("blog_categories.id"), nullable=True)
    slug = Column(String(200), unique=True, nullable=False)
    title = Column(String(255), nullable=False)
    title_en = Column(String(255), nullable=True)
    excerpt = Column(Text, nullable=True)
    excerpt_en = Column(Text, nullable=True)
    content = Column(Text, nullable=False, default="")
    content_en = Column(Text, nullable=True)
    cover_image = Column(String(500), nullable=True)
    is_published = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class BlogComment(Base):
    __tablename__ = "blog_comments"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("blog_posts.id"), nullable=False, index=True)
    author_name = Column(String(100), nullable=False)
    comment = Column(Text, nullable=False)
    is_approved = Column(Boolean, nullable=False, default=False)   # модерация
    created_at = Column(DateTime, nullable=False, default=utcnow)
