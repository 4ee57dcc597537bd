# backoffice/routes/blog.py

from typing import Optional

from fastapi import APIRouter, Depends, Request
from backoffice.models.user import User
from backoffice.routes.auth import require
from backoffice.schemas.blog import Category, CategoryBase, CategoryCreate, Comment, CommentCreate, Post, PostBase, PostCreate
from backoffice.services.blog import (
    add_comment_service,
    all_comments_service,
    all_posts_service,
    approve_comment_service,
    approved_comments_service,
    categories_service,
    create_category_service,
    create_post_service,
    delete_category_service,
    delete_comment_service,
    delete_post_service,
    published_post_service,
    published_posts_service,
    read_post_service,
    update_category_service,
    update_post_service,
)
from backoffice.services.policy import Capability

router = APIRouter()

manage = require(Capability.MANAGE)


# ────────────── Публичная часть ──────────────
@router.get("/posts", summary="Опубликованные посты", responses={200: {"description": "Новые первыми"}})
async def public_posts(request: Request, category: Optional[str] = None, limit: int = 20):
    return {"ok": True, "posts": await published_posts_service(request, category, limit)}


@router.get(
    "/posts/{slug}",
    summary="Пост по slug",
    responses={200: {"description": "Пост найден"}, 404: {"description": "Пост не найден"}},
)
async def public_post(slug: str, request: Request):
    return {"ok": True, "post": await published_post_service(slug, request)}


@router.get("/categories", summary="Категории с числом постов", responses={200: {"description": "Категории"}})
async def public_categories(request: Request):
    return {"ok": True, "categories": await categories_service(request)}


@router.get(
    "/posts/{slug}/comments",
    summary="Одобренные комментарии поста",
    responses={200: {"description": "Комментарии"}, 404: {"description": "Пост не найден"}},
)
async def public_comments(slug: str, request: Request):
    comments = await approved_comments_service(slug, request)
    return {"ok": True, "comments": [Comment.model_validate(c) for c in comments]}


@router.post(
    "/posts/{slug}/comments",
    summary="Оставить комментарий",
    responses={
        200: {"description": "Комментарий принят на модерацию"},
        400: {"description": "Нет имени или текста"},
        404: {"description": "Пост не найден"},
    },
)
async def public_add_comment(slug: str, data: CommentCreate, request: Request):
    try:
        comment = await add_comment_service(slug, data, request)
        return {"ok": True, "id": comment.id, "pending": True}
    except Exception as e:
        await request.app.state.log.log_error("blog", f"Ошибка при добавлении комментария: {e}", {"slug": slug})
        raise


# ────────────── Управление ──────────────
@router.get("/manage/posts", summary="Все посты", responses={200: {"description": "Включая черновики"}})
async def manage_posts(request: Request, _: User = Depends(manage)):
    return {"ok": True, "posts": await all_posts_service(request)}


@router.get("/manage/posts/{id}", summary="Пост по ID", responses={404: {"description": "Пост не найден"}})
async def manage_post(id: int, request: Request, _: User = Depends(manage)):
    post = await read_post_service(id, request)
    return {"ok": True, "post": Post.model_validate(post)}


@router.post(
    "/manage/posts",
    summary="Создать пост",
    responses={200: {"description": "Пост создан"}, 409: {"description": "slug занят"}},
)
async def manage_create_post(data: PostCreate, request: Request, _: User = Depends(manage)):
    post = await create_post_service(data, request)
    return {"ok": True, "id": post.id, "slug": post.slug}


@router.put(
    "/manage/posts/{id}",
    summary="Обновить пост",
    responses={200: {"description": "Пост обновлён"}, 404: {"description": "Пост не найден"}, 409: {"description": "slug занят"}},
)
async def manage_update_post(id: int, data: PostBase, request: Request, _: User = Depends(manage)):
    post = await update_post_service(id, data, request)
    return {"ok": True, "post": Post.model_validate(post)}


@router.delete("/manage/posts/{id}", summary="Удалить пост", responses={404: {"description": "Пост не найден"}})
async def manage_delete_post(id: int, request: Request, _: User = Depends(manage)):
    await delete_post_service(id, request)
    return {"ok": True}


@router.post("/manage/categories", summary="Создать категорию", responses={409: {"description": "slug занят"}})
async def manage_create_category(data: CategoryCreate, request: Request, _: User = Depends(manage)):
    category = await create_category_service(data, request)
    return {"ok": True, "category": Category.model_validate(category)}


@router.put("/manage/categories/{id}", summary="Обновить категорию", responses={404: {"description": "Категория не найдена"}})
async def manage_update_category(id: int, data: CategoryBase, request: Request, _: User = Depends(manage)):
    category = await update_category_service(id, data, request)
    return {"ok": True, "category": Category.model_validate(category)}


@router.delete("/manage/categories/{id}", summary="Удалить категорию", responses={404: {"description": "Категория не найдена"}})
async def manage_delete_category(id: int, request: Request, _: User = Depends(manage)):
    await delete_category_service(id, request)
    return {"ok": True}


@router.get("/manage/comments", summary="Все комментарии", responses={200: {"description": "Новые первыми"}})
async def manage_comments(request: Request, pending: bool = False, _: User = Depends(manage)):
    comments = await all_comments_service(request, pending)
    return {"ok": True, "comments": [Comment.model_validate(c) for c in comments]}


@router.post("/manage/comments/{id}/approve", summary="Одобрить комментарий", responses={404: {"description": "Не найден"}})
async def manage_approve_comment(id: int, request: Request, _: User = Depends(manage)):
    await approve_comment_service(id, request)
    return {"ok": True}


@router.delete("/manage/comments/{id}", summary="Удалить комментарий", responses={404: {"description": "Не найден"}})
async def manage_delete_comment(id: int, request: Request, _: User = Depends(manage)):
    await delete_comment_service(id, request)
    return {"ok": True}
