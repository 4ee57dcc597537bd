# backoffice/routes/content.py

from typing import Optional

from fastapi import APIRouter, Depends, Request
from backoffice.models.user import User
from backoffice.routes.auth import get_current_user, require
from backoffice.schemas.content import FaqBase, NoticeBase, NoticeCreate
from backoffice.services.content import (
    active_notices_service,
    all_faq_service,
    all_notices_service,
    create_faq_service,
    create_notice_service,
    delete_faq_service,
    delete_notice_service,
    faq_categories_service,
    published_faq_service,
    to_faq,
    update_faq_service,
    update_notice_service,
)
from backoffice.services.policy import Capability

maintenance_router = APIRouter()
faq_router = APIRouter()

manage = require(Capability.MANAGE)


# ────────────── Обслуживание ──────────────
@maintenance_router.get(
    "/active",
    summary="Текущие уведомления об обслуживании",
    responses={200: {"description": "Активные и попадающие в окно"}, 401: {"description": "Нет сессии"}},
)
async def active_notices(request: Request, _: User = Depends(get_current_user)):
    return {"ok": True, "notices": await active_notices_service(request)}


@maintenance_router.get("", summary="Все уведомления", responses={200: {"description": "Новые первыми"}})
async def list_notices(request: Request, _: User = Depends(manage)):
    return {"ok": True, "notices": await all_notices_service(request)}


@maintenance_router.post(
    "",
    summary="Создать уведомление",
    responses={
        200: {"description": "Создано; при send_email результат рассылки по адресатам"},
        400: {"description": "Конец окна раньше начала"},
    },
)
async def create_notice(data: NoticeCreate, request: Request, user: User = Depends(manage)):
    try:
        notice, deliveries = await create_notice_service(data, user, request)
        return {"ok": True, "id": notice.id, "emails": deliveries}
    except Exception as e:
        await request.app.state.log.log_error("maintenance", f"Ошибка при создании уведомления: {e}")
        raise


@maintenance_router.put("/{id}", summary="Обновить уведомление", responses={404: {"description": "Не найдено"}})
async def update_notice(id: int, data: NoticeBase, request: Request, _: User = Depends(manage)):
    await update_notice_service(id, data, request)
    return {"ok": True}


@maintenance_router.delete("/{id}", summary="Удалить уведомление", responses={404: {"description": "Не найдено"}})
async def delete_notice(id: int, request: Request, _: User = Depends(manage)):
    await delete_notice_service(id, request)
    return {"ok": True}


# ────────────── FAQ ──────────────
@faq_router.get("", summary="Опубликованные вопросы", responses={200: {"description": "answer_html из Markdown"}})
async def public_faq(request: Request, category: Optional[str] = None):
    return {"ok": True, "faq": await published_faq_service(request, category)}


@faq_router.get("/categories", summary="Категории FAQ", responses={200: {"description": "Список категорий"}})
async def faq_categories(request: Request):
    return {"ok": True, "categories": await faq_categories_service(request)}


@faq_router.get("/manage", summary="Все вопросы", responses={200: {"description": "Включая скрытые"}})
async def manage_faq(request: Request, _: User = Depends(manage)):
    return {"ok": True, "faq": await all_faq_service(request)}


@faq_router.post("", summary="Создать вопрос", responses={400: {"description": "Пустой вопрос или ответ"}})
async def create_faq(data: FaqBase, request: Request, _: User = Depends(manage)):
    item = await create_faq_service(data, request)
    return {"ok": True, "faq": to_faq(item)}


@faq_router.put("/{id}", summary="Обновить вопрос", responses={404: {"description": "Не найден"}})
async def update_faq(id: int, data: FaqBase, request: Request, _: User = Depends(manage)):
    item = await update_faq_service(id, data, request)
    return {"ok": True, "faq": to_faq(item)}


@faq_router.delete("/{id}", summary="Удалить вопрос", responses={404: {"description": "Не найден"}})
async def delete_faq(id: int, request: Request, _: User = Depends(manage)):
    await delete_faq_service(id, request)
    return {"ok": True}
