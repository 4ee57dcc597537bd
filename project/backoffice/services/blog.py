# backoffice/services/blog.py

from fastapi import HTTPException, Request
from slugify import slugify
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.future import select

from backoffice.models.blog import BlogCategory, BlogComment, BlogPost
from backoffice.schemas.blog import Category, CategoryBase, CategoryCreate, CommentCreate, Post, PostBase, PostCreate
from backoffice.services.notification import notify
from backoffice.services.outcome import best_effort

COMMENT_NAME_MAX = 100
COMMENT_TEXT_MAX = 2000


def make_slug(slug: str | None, title: str) -> str:
    """Явный slug или сгенерированный из заголовка."""
    value = slugify(slug or title or "", max_length=180)
    if not value:
        raise HTTPException(status_code=400, detail="missing_fields")
    return value


def to_post(post: BlogPost, category: BlogCategory | None) -> Post:
    row = Post.model_validate(post)
    if category is not None:
        row.category_name = category.name
        row.category_slug = category.slug
    return row


def posts_query():
    return (
        select(BlogPost, BlogCategory)
        .outerjoin(BlogCategory, BlogCategory.id == BlogPost.category_id)
        .order_by(BlogPost.created_at.desc(), BlogPost.id.desc())
    )


# ────────────── Публичная часть ──────────────
async def published_posts_service(request: Request, category: str | None = None, limit: int = 20) -> list[Post]:
    db = request.state.db
    query = posts_query().where(BlogPost.is_published.is_(True))
    if category:
        query = query.where(BlogCategory.slug == category)
    result = await db.execute(query.limit(max(1, min(limit, 100))))
    return [to_post(post, cat) for post, cat in result.all()]


async def published_post_service(slug: str, request: Request) -> Post:
    db = request.state.db
    result = await db.execute(posts_query().where(BlogPost.slug == slug, BlogPost.is_published.is_(True)))
    row = result.first()
    if row is None:
        raise HTTPException(status_code=404, detail="post_not_found")
    return to_post(*row)


async def categories_service(request: Request) -> list[Category]:
    """Категории с числом опубликованных постов."""
    db = request.state.db
    post_count = (
        select(func.count(BlogPost.id))
        .where(BlogPost.category_id == BlogCategory.id, BlogPost.is_published.is_(True))
        .correlate(BlogCategory)
        .scalar_subquery()
    )
    result = await db.execute(select(BlogCategory, post_count).order_by(BlogCategory.name))
    categories = []
    for category, count in result.all():
        row = Category.model_validate(category)
        row.post_count = count or 0
        categories.append(row)
    return categories


async def approved_comments_service(slug: str, request: Request) -> list[BlogComment]:
    db = request.state.db
    post = await published_post_service(slug, request)
    result = await db.execute(
        select(BlogComment)
        .where(BlogComment.post_id == post.id, BlogComment.is_approved.is_(True))
        .order_by(BlogComment.created_at, BlogComment.id)
    )
    return result.scalars().all()


async def add_comment_service(slug: str, data: CommentCreate, request: Request) -> BlogComment:
    """Комментарий ждёт модерации; персонал получает уведомление."""
    db = request.state.db
    log = request.app.state.log

    name = (data.author_name or "").strip()
    text = (data.comment or "").strip()
    if not name or not text:
        raise HTTPException(status_code=400, detail="name_and_comment_required")

    post = await published_post_service(slug, request)
    comment = BlogComment(
        post_id=post.id,
        author_name=name[:COMMENT_NAME_MAX],
        comment=text[:COMMENT_TEXT_MAX],
        is_approved=False,
    )
    db.add(comment)
    await db.commit()
    await log.log_info("blog", "Новый комментарий", {"post": post.id, "comment": comment.id})

    await best_effort(log, "blog", "Уведомление о комментарии", notify(
        request.app.state.db, "comment", None, comment.id, f"Nuevo comentario en: {post.title}", f"{comment.author_name}: {comment.comment[:200]}",
    ))
    return comment


# ────────────── Управление постами ──────────────
async def all_posts_service(request: Request) -> list[Post]:
    db = request.state.db
    result = await db.execute(posts_query())
    return [to_post(post, cat) for post, cat in result.all()]


async def read_post_service(id: int, request: Request) -> BlogPost:
    db = request.state.db
    post = await db.get(BlogPost, id)
    if post is None:
        raise HTTPException(status_code=404, detail="not_found")
    return post


async def create_post_service(data: PostCreate, request: Request) -> BlogPost:
    db = request.state.db
    title = data.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="missing_fields")

    values = data.model_dump(exclude_unset=True)
    values["title"] = title
    values["slug"] = make_slug(data.slug, title)
    values["content"] = values.get("content") or ""
    values["is_published"] = bool(values.get("is_published"))

    post = BlogPost(**values)
    db.add(post)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="slug_taken")
    await request.app.state.log.log_info("blog", "Пост создан", {"id": post.id, "slug": post.slug})
    return post


async def update_post_service(id: int, data: PostBase, request: Request) -> BlogPost:
    db = request.state.db
    post = await read_post_service(id, request)
    changes = data.model_dump(exclude_unset=True)

    if "slug" in changes or "title" in changes:
        if changes.get("title") is not None and not changes["title"].strip():
            raise HTTPException(status_code=400, detail="missing_fields")
        title = (changes.get("title") or post.title).strip()
        changes["title"] = title
        changes["slug"] = make_slug(changes.get("slug") or post.slug, title)

    for key, value in changes.items():
        if key in ("content", "is_published") and value is None:
            continue
        setattr(post, key, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="slug_taken")
    await request.app.state.log.log_info("blog", "Пост обновлён", {"id": id})
    return post


async def delete_post_service(id: int, request: Request) -> None:
    db = request.state.db
    post = await read_post_service(id, request)
    result = await db.execute(select(BlogComment).where(BlogComment.post_id == id))
    for comment in result.scalars().all():
        await db.delete(comment)
    await db.delete(post)
    await db.commit()
    await request.app.state.log.log_info("blog", "Пост удалён", {"id": id})


# ────────────── Категории ──────────────
async def create_category_service(data: CategoryCreate, request: Request) -> BlogCategory:
    db = request.state.db
    name = data.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="missing_fields")
    category = BlogCategory(name=name, name_en=data.name_en, slug=make_slug(data.slug, name))
    db.add(category)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="slug_taken")
    return category


async def update_category_service(id: int, data: CategoryBase, request: Request) -> BlogCategory:
    db = request.state.db
    category = await db.get(BlogCategory, id)
    if category is None:
        raise HTTPException(status_code=404, detail="not_found")

    changes = data.model_dump(exclude_unset=True)
    if changes.get("name"):
        category.name = changes["name"].strip()
    if "name_en" in changes:
        category.name_en = changes["name_en"]
    if changes.get("slug"):
        category.slug = make_slug(changes["slug"], category.name)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="slug_taken")
    return category


async def delete_category_service(id: int, request: Request) -> None:
    """Посты категории остаются без категории."""
    db = request.state.db
    category = await db.get(BlogCategory, id)
    if category is None:
        raise HTTPException(status_code=404, detail="not_found")
    result = await db.execute(select(BlogPost).where(BlogPost.category_id == id))
    for post in result.scalars().all():
        post.category_id = None
    await db.delete(category)
    await db.commit()


# ────────────── Модерация комментариев ──────────────
async def all_comments_service(request: Request, pending_only: bool = False) -> list[BlogComment]:
    db = request.state.db
    query = select(BlogComment).order_by(BlogComment.created_at.desc(), BlogComment.id.desc())
    if pending_only:
        query = query.where(BlogComment.is_approved.is_(False))
    result = await db.execute(query)
    return result.scalars().all()


async def approve_comment_service(id: int, request: Request) -> BlogComment:
    db = request.state.db
    comment = await db.get(BlogComment, id)
    if comment is None:
        raise HTTPException(status_code=404, detail="not_found")
    comment.is_approved = True
    await db.commit()
    await request.app.state.log.log_info("blog", "Комментарий одобрен", {"id": id})
    return comment


async def delete_comment_service(id: int, request: Request) -> None:
    db = request.state.db
    comment = await db.get(BlogComment, id)
    if comment is None:
        raise HTTPException(status_code=404, detail="not_found")
    await db.delete(comment)
    await db.commit()
