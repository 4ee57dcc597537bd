# backoffice/schemas/blog.py

from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class CategoryBase(BaseModel):
    name: Optional[str] = None
    name_en: Optional[str] = None
    slug: Optional[str] = None


class CategoryCreate(CategoryBase):
    name: str


class Category(BaseModel):
    id: int
    name: str
    name_en: Optional[str] = None
    slug: str
    post_count: int = 0

    model_config = {
        "from_attributes": True
    }


class PostBase(BaseModel):
    category_id: Optional[int] = None
    slug: Optional[str] = None
    title: Optional[str] = None
    title_en: Optional[str] = None
    excerpt: Optional[str] = None
    excerpt_en: Optional[str] = None
    content: Optional[str] = None
    content_en: Optional[str] = None
    cover_image: Optional[str] = None
    is_published: Optional[bool] = None


class PostCreate(PostBase):
    title: str


class Post(BaseModel):
    id: int
    category_id: Optional[int] = None
    slug: str
    title: str
    title_en: Optional[str] = None
    excerpt: Optional[str] = None
    excerpt_en: Optional[str] = None
    content: str
    content_en: Optional[str] = None
    cover_image: Optional[str] = None
    is_published: bool
    created_at: datetime
    updated_at: datetime
    category_name: Optional[str] = None
    category_slug: Optional[str] = None

    model_config = {
        "from_attributes": True
    }


class CommentCreate(BaseModel):
    author_name: Optional[str] = None
    comment: Optional[str] = None


class Comment(BaseModel):
    id: int
    post_id: int
    author_name: str
    comment: str
    is_approved: bool
    created_at: datetime

    model_config = {
        "from_attributes": True
    }
