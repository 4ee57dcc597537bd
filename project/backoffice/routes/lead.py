# backoffice/routes/lead.py

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from backoffice.models.user import User
from backoffice.routes.auth import require
from backoffice.schemas.lead import Lead, LeadCreate, LeadNotesUpdate, LeadStatusUpdate
from backoffice.services.lead import (
    create_lead_service,
    delete_lead_service,
    lead_summary_service,
    read_lead_service,
    read_leads_service,
    save_lead_notes_service,
    set_lead_status_service,
    toggle_important_service,
)
from backoffice.services.policy import Capability

router = APIRouter()

triage = require(Capability.TRIAGE)


# ────────────── Форма контакта ──────────────
@router.post(
    "/contact",
    status_code=status.HTTP_200_OK,
    summary="Заявка с формы контакта",
    response_description="ok=true означает, что лид сохранён",
    responses={
        200: {"description": "Лид сохранён (письма отправляются best-effort)"},
        400: {"description": "Не заполнены name, email или message"},
        500: {"description": "Внутренняя ошибка сервера"},
    },
)
async def contact(request: Request, lead: LeadCreate):
    try:
        db_lead = await create_lead_service(lead, request)
        return {"ok": True, "id": db_lead.id}
    except Exception as e:
        await request.app.state.log.log_error("lead", f"Ошибка при создании лида: {str(e)}")
        raise


# ────────────── READ ALL ──────────────
@router.get(
    "/leads",
    summary="Список лидов",
    response_description="Важные первыми, затем новые",
    responses={
        200: {"description": "Список лидов успешно получен"},
        401: {"description": "Нет действующей сессии"},
        403: {"description": "Недостаточно прав"},
    },
)
async def read_leads(
    request: Request,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    _: User = Depends(triage),
):
    try:
        leads = await read_leads_service(request, status, skip, limit)
        await request.app.state.log.log_info("lead", "Список лидов загружен", {"count": len(leads)})
        return {"ok": True, "leads": [Lead.model_validate(lead) for lead in leads]}
    except Exception as e:
        await request.app.state.log.log_error("lead", f"Ошибка при получении списка лидов: {str(e)}")
        raise


# ────────────── SUMMARY ──────────────
@router.get(
    "/leads/summary",
    summary="Количество лидов по статусам",
    responses={200: {"description": "Счётчики new / replied / closed"}},
)
async def leads_summary(request: Request, _: User = Depends(triage)):
    return {"ok": True, "summary": await lead_summary_service(request)}


# ────────────── READ ONE ──────────────
@router.get(
    "/leads/{id}",
    summary="Получить лид по ID",
    responses={
        200: {"description": "Лид найден и возвращён"},
        404: {"description": "Лид не найден"},
    },
)
async def read_lead(id: int, request: Request, _: User = Depends(triage)):
    lead = await read_lead_service(id, request)
    return {"ok": True, "lead": Lead.model_validate(lead)}


# ────────────── IMPORTANT ──────────────
@router.post(
    "/leads/{id}/important",
    summary="Переключить отметку «важный»",
    responses={
        200: {"description": "Новое значение is_important"},
        404: {"description": "Лид не найден"},
    },
)
async def toggle_important(id: int, request: Request, _: User = Depends(triage)):
    lead = await toggle_important_service(id, request)
    return {"ok": True, "is_important": lead.is_important}


# ────────────── STATUS ──────────────
@router.post(
    "/leads/{id}/status",
    summary="Изменить статус лида",
    responses={
        200: {"description": "Статус изменён"},
        400: {"description": "Статус не из new / replied / closed"},
        404: {"description": "Лид не найден"},
    },
)
async def set_status(id: int, data: LeadStatusUpdate, request: Request, _: User = Depends(triage)):
    try:
        lead = await set_lead_status_service(id, data.status, request)
        return {"ok": True, "status": lead.status}
    except Exception as e:
        await request.app.state.log.log_error("lead", f"Ошибка при смене статуса: {str(e)}", {"id": id})
        raise


# ────────────── NOTES ──────────────
@router.post(
    "/leads/{id}/notes",
    summary="Сохранить внутренние заметки",
    responses={
        200: {"description": "Заметки сохранены"},
        404: {"description": "Лид не найден"},
    },
)
async def save_notes(id: int, data: LeadNotesUpdate, request: Request, _: User = Depends(triage)):
    await save_lead_notes_service(id, data.notes, request)
    return {"ok": True}


# ────────────── DELETE ──────────────
@router.delete(
    "/leads/{id}",
    summary="Удалить лид",
    responses={
        200: {"description": "Лид успешно удалён"},
        404: {"description": "Лид не найден"},
    },
)
async def delete_lead(id: int, request: Request, _: User = Depends(triage)):
    try:
        await delete_lead_service(id, request)
        return {"ok": True}
    except Exception as e:
        await request.app.state.log.log_error("lead", f"Ошибка при удалении лида: {str(e)}", {"id": id})
        raise
