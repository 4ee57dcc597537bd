# backoffice/routes/ticket.py

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from backoffice.models.user import User
from backoffice.routes.auth import get_current_user, require
from backoffice.schemas.ticket import MessageCreate, TicketCreate, TicketUpdate
from backoffice.schemas.user import DirectoryEntry
from backoffice.services.policy import Capability
from backoffice.services.ticket import (
    add_message_service,
    assign_me_service,
    close_ticket_service,
    create_ticket_service,
    delete_ticket_service,
    get_ticket_service,
    list_tickets_service,
    ticket_stats_service,
    update_ticket_service,
    upload_attachment_service,
)
from backoffice.services.users import directory_service

router = APIRouter()


# ────────────── CREATE ──────────────
@router.post(
    "/tickets",
    summary="Создать тикет",
    responses={
        200: {"description": "Тикет и первое сообщение созданы"},
        400: {"description": "Нет темы или сообщения, неверный клиент или услуга"},
        401: {"description": "Нет действующей сессии"},
    },
)
async def create_ticket(data: TicketCreate, request: Request, user: User = Depends(require(Capability.WRITE))):
    try:
        ticket = await create_ticket_service(data, user, request)
        return {"ok": True, "ticket_id": ticket.id}
    except Exception as e:
        await request.app.state.log.log_error("ticket", f"Ошибка при создании тикета: {str(e)}", {"user": user.id})
        raise


# ────────────── READ ALL ──────────────
@router.get(
    "/tickets",
    summary="Список тикетов по роли",
    response_description="urgent, high, medium, low; внутри приоритета новые первыми",
    responses={
        200: {"description": "Список тикетов"},
        401: {"description": "Нет действующей сессии"},
    },
)
async def list_tickets(
    request: Request,
    status: Optional[str] = None,
    client_id: Optional[int] = None,
    user: User = Depends(require(Capability.READ)),
):
    tickets = await list_tickets_service(user, request, status, client_id)
    return {"ok": True, "tickets": tickets}


# ────────────── STATS ──────────────
@router.get(
    "/tickets/stats",
    summary="Количество тикетов по статусам",
    responses={200: {"description": "Счётчики по видимым пользователю тикетам"}},
)
async def ticket_stats(request: Request, user: User = Depends(require(Capability.READ))):
    return {"ok": True, "stats": await ticket_stats_service(user, request)}


# ────────────── READ ONE ──────────────
@router.get(
    "/tickets/{id}",
    summary="Тикет с сообщениями и вложениями",
    responses={
        200: {"description": "Тикет найден"},
        403: {"description": "Чужой тикет"},
        404: {"description": "Тикет не найден"},
    },
)
async def get_ticket(id: int, request: Request, user: User = Depends(require(Capability.READ))):
    return {"ok": True, **await get_ticket_service(id, user, request)}


# ────────────── MESSAGES ──────────────
@router.post(
    "/tickets/{id}/messages",
    summary="Добавить сообщение",
    responses={
        200: {"description": "Сообщение добавлено, статус пересчитан"},
        400: {"description": "Пустое сообщение"},
        403: {"description": "Чужой тикет"},
        404: {"description": "Тикет не найден"},
    },
)
async def add_message(id: int, data: MessageCreate, request: Request, user: User = Depends(require(Capability.WRITE))):
    try:
        message, ticket = await add_message_service(id, data, user, request)
        return {"ok": True, "message": message, "status": ticket.status}
    except Exception as e:
        await request.app.state.log.log_error("ticket", f"Ошибка при добавлении сообщения: {str(e)}", {"ticket": id})
        raise


# ────────────── ASSIGN ME ──────────────
@router.post(
    "/tickets/{id}/assign-me",
    summary="Взять тикет себе",
    responses={
        200: {"description": "Тикет назначен текущему сотруднику"},
        409: {"description": "Тикет уже назначен другому сотруднику"},
    },
)
async def assign_me(id: int, request: Request, user: User = Depends(require(Capability.ASSIGN))):
    ticket = await assign_me_service(id, user, request)
    return {"ok": True, "assigned_to": ticket.assigned_to, "status": ticket.status}


# ────────────── UPDATE ──────────────
@router.put(
    "/tickets/{id}",
    summary="Изменить статус, приоритет, назначение",
    responses={
        200: {"description": "Тикет обновлён"},
        400: {"description": "Недопустимое значение"},
        404: {"description": "Тикет не найден"},
    },
)
async def update_ticket(id: int, data: TicketUpdate, request: Request, user: User = Depends(require(Capability.MANAGE))):
    try:
        ticket = await update_ticket_service(id, data, user, request)
        return {"ok": True, "status": ticket.status, "closed_at": ticket.closed_at}
    except Exception as e:
        await request.app.state.log.log_error("ticket", f"Ошибка при обновлении тикета: {str(e)}", {"ticket": id})
        raise


# ────────────── CLOSE ──────────────
@router.post(
    "/tickets/{id}/close",
    summary="Закрыть тикет",
    responses={
        200: {"description": "Тикет закрыт, клиенту отправлено письмо"},
        404: {"description": "Тикет не найден"},
    },
)
async def close_ticket(id: int, request: Request, user: User = Depends(require(Capability.CLOSE))):
    ticket = await close_ticket_service(id, user, request)
    return {"ok": True, "status": ticket.status, "closed_at": ticket.closed_at}


# ────────────── DELETE ──────────────
@router.delete(
    "/tickets/{id}",
    summary="Удалить тикет со всеми сообщениями, вложениями и уведомлениями",
    responses={
        200: {"description": "Тикет удалён"},
        404: {"description": "Тикет не найден"},
    },
)
async def delete_ticket(id: int, request: Request, user: User = Depends(require(Capability.DELETE))):
    try:
        await delete_ticket_service(id, user, request)
        return {"ok": True}
    except Exception as e:
        await request.app.state.log.log_error("ticket", f"Ошибка при удалении тикета: {str(e)}", {"ticket": id})
        raise


# ────────────── ATTACHMENTS ──────────────
@router.post(
    "/tickets/{id}/attachments",
    summary="Загрузить вложение",
    responses={
        200: {"description": "Файл сохранён"},
        400: {"description": "Недопустимый тип файла"},
        413: {"description": "Файл слишком большой"},
    },
)
async def upload_attachment(
    id: int,
    request: Request,
    file: UploadFile = File(...),
    message_id: Optional[int] = Form(None),
    user: User = Depends(require(Capability.WRITE)),
):
    attachment = await upload_attachment_service(id, file, user, request, message_id)
    return {"ok": True, "attachment": attachment}


# ────────────── Справочники ──────────────
@router.get(
    "/support-staff",
    summary="Активные сотрудники",
    responses={200: {"description": "admin и support, по имени"}},
)
async def support_staff(request: Request, _: User = Depends(require(Capability.ASSIGN))):
    users = await directory_service(("admin", "support"), request)
    return {"ok": True, "staff": [DirectoryEntry.model_validate(u) for u in users]}


@router.get(
    "/clients",
    summary="Активные клиенты",
    responses={200: {"description": "Клиенты, по имени"}},
)
async def clients(request: Request, _: User = Depends(require(Capability.ASSIGN))):
    users = await directory_service(("client",), request)
    return {"ok": True, "clients": [DirectoryEntry.model_validate(u) for u in users]}
