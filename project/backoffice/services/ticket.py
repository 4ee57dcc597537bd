# backoffice/services/ticket.py

"""
Жизненный цикл тикета: создание, сообщения, назначение, закрытие, удаление.

Побочные эффекты (уведомления, письма, рассылка в комнату WebSocket)
выполняются после commit через best_effort и на ответ не влияют.
"""

from datetime import timedelta

from fastapi import HTTPException, Request, UploadFile
from sqlalchemy import case, delete, func, update, and_, or_, not_
from sqlalchemy.future import select
from sqlalchemy.orm import aliased

from backoffice.models.notification import AdminNotification
from backoffice.models.service import ClientService
from backoffice.models.ticket import TICKET_PRIORITIES, TICKET_STATUSES, Ticket, TicketAttachment, TicketMessage
from backoffice.models.user import User
from backoffice.schemas.ticket import AttachmentRow, MessageCreate, MessageRow, TicketCreate, TicketRow, TicketUpdate
from backoffice.services.lead import clean
from backoffice.services.notification import notify
from backoffice.services.outcome import best_effort
from backoffice.services.policy import is_staff
from backoffice.services.uploads import ATTACHMENT_EXTENSIONS, remove_upload, save_upload
from backoffice.utils.database import unit_of_work, utcnow


# ────────────── Правило статуса ──────────────
def next_status(current_status: str, author_role: str, is_internal: bool) -> str:
    """
    Статус тикета после нового сообщения.
    Закрытый тикет сообщением не открывается.
    """
    if current_status == "closed":
        return current_status
    if not is_staff(author_role):
        return "waiting_support"
    if is_internal:
        return current_status
    return "waiting_client"


PRIORITY_RANK = case(
    {priority: rank for rank, priority in enumerate(TICKET_PRIORITIES)},
    value=Ticket.priority,
    else_=len(TICKET_PRIORITIES),
)


def ticket_url(settings, ticket_id: int, for_client: bool) -> str:
    if for_client:
        return f"{settings.SITE_URL}/cliente/ticket?id={ticket_id}"
    return f"{settings.SITE_URL}{settings.ADMIN_PATH}/ticket?id={ticket_id}"


# ────────────── Выборки ──────────────
def visible_conditions(user: User, closed_visible_days: int) -> list:
    """Какие тикеты видит пользователь."""
    if user.role == "admin":
        return []
    if user.role == "support":
        return [or_(Ticket.assigned_to.is_(None), Ticket.assigned_to == user.id)]

    cutoff = utcnow() - timedelta(days=closed_visible_days)
    return [
        Ticket.client_id == user.id,
        not_(and_(Ticket.status == "closed", Ticket.closed_at.is_not(None), Ticket.closed_at < cutoff)),
    ]


def ticket_rows_query(include_internal: bool):
    client = aliased(User)
    assignee = aliased(User)

    count_query = select(func.count(TicketMessage.id)).where(TicketMessage.ticket_id == Ticket.id)
    if not include_internal:
        count_query = count_query.where(TicketMessage.is_internal.is_(False))
    message_count = count_query.correlate(Ticket).scalar_subquery()

    return (
        select(Ticket, client, assignee, ClientService.service_name, ClientService.domain, message_count.label("message_count"))
        .join(client, client.id == Ticket.client_id)
        .outerjoin(assignee, assignee.id == Ticket.assigned_to)
        .outerjoin(ClientService, ClientService.id == Ticket.service_id)
    )


def to_ticket_row(ticket: Ticket, client: User | None, assignee: User | None, service_name, domain, message_count) -> TicketRow:
    return TicketRow(
        id=ticket.id,
        client_id=ticket.client_id,
        subject=ticket.subject,
        status=ticket.status,
        priority=ticket.priority,
        category=ticket.category,
        improvement_status=ticket.improvement_status,
        assigned_to=ticket.assigned_to,
        service_id=ticket.service_id,
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
        closed_at=ticket.closed_at,
        client_name=client.display_name if client else None,
        client_email=client.email if client else None,
        client_company=client.company if client else None,
        assigned_name=assignee.display_name if assignee else None,
        service_name=service_name,
        domain=domain,
        message_count=message_count or 0,
    )


def to_message_row(message: TicketMessage, author: User | None) -> MessageRow:
    return MessageRow(
        id=message.id,
        ticket_id=message.ticket_id,
        user_id=message.user_id,
        message=message.message,
        is_internal=message.is_internal,
        created_at=message.created_at,
        username=author.username if author else None,
        display_name=author.display_name if author else None,
        role=author.role if author else None,
    )


async def list_tickets_service(
    user: User,
    request: Request,
    status: str | None = None,
    client_id: int | None = None,
) -> list[TicketRow]:
    """
    Тикеты по роли. Порядок: urgent, high, medium, low,
    затем новые первыми (при равенстве больший id первым).
    """
    db = request.state.db
    settings = request.app.state.settings

    query = ticket_rows_query(include_internal=is_staff(user.role))
    for condition in visible_conditions(user, settings.CLOSED_TICKET_VISIBLE_DAYS):
        query = query.where(condition)
    if status:
        query = query.where(Ticket.status == status)
    if client_id is not None and user.role == "admin":
        query = query.where(Ticket.client_id == client_id)

    query = query.order_by(PRIORITY_RANK, Ticket.created_at.desc(), Ticket.id.desc())
    result = await db.execute(query)
    return [to_ticket_row(*row) for row in result.all()]


async def ticket_stats_service(user: User, request: Request) -> dict:
    db = request.state.db
    settings = request.app.state.settings

    query = select(Ticket.status, func.count(Ticket.id)).group_by(Ticket.status)
    for condition in visible_conditions(user, settings.CLOSED_TICKET_VISIBLE_DAYS):
        query = query.where(condition)
    result = await db.execute(query)

    stats = {status: 0 for status in TICKET_STATUSES}
    for status, count in result.all():
        stats[status] = count
    stats["total"] = sum(stats.values())
    return stats


async def load_ticket(id: int, user: User, request: Request) -> Ticket:
    """Тикет с проверкой доступа: клиент видит только свои."""
    db = request.state.db
    ticket = await db.get(Ticket, id)
    if ticket is None:
        raise HTTPException(status_code=404, detail="not_found")
    if not is_staff(user.role) and ticket.client_id != user.id:
        await request.app.state.log.log_warning("ticket", "Доступ к чужому тикету", {"ticket": id, "user": user.id})
        raise HTTPException(status_code=403, detail="forbidden")
    return ticket


async def get_ticket_service(id: int, user: User, request: Request) -> dict:
    db = request.state.db
    staff = is_staff(user.role)
    await load_ticket(id, user, request)

    result = await db.execute(ticket_rows_query(include_internal=staff).where(Ticket.id == id))
    ticket = to_ticket_row(*result.one())

    query = (
        select(TicketMessage, User)
        .outerjoin(User, User.id == TicketMessage.user_id)
        .where(TicketMessage.ticket_id == id)
        .order_by(TicketMessage.created_at, TicketMessage.id)
    )
    if not staff:
        query = query.where(TicketMessage.is_internal.is_(False))
    messages = [to_message_row(m, author) for m, author in (await db.execute(query)).all()]

    result = await db.execute(
        select(TicketAttachment, User)
        .outerjoin(User, User.id == TicketAttachment.uploaded_by)
        .where(TicketAttachment.ticket_id == id)
        .order_by(TicketAttachment.created_at, TicketAttachment.id)
    )
    attachments = [to_attachment_row(a, uploader) for a, uploader in result.all()]

    return {"ticket": ticket, "messages": messages, "attachments": attachments}


# ────────────── Создание ──────────────
async def create_ticket_service(data: TicketCreate, user: User, request: Request) -> Ticket:
    """
    Клиент создаёт тикет для себя, персонал может указать client_id.
    Тикет и первое сообщение пишутся одной транзакцией.
    """
    db = request.state.db
    log = request.app.state.log
    settings = request.app.state.settings
    mailer = request.app.state.mailer

    subject = clean(data.subject)
    message = clean(data.message)
    if not subject or not message:
        raise HTTPException(status_code=400, detail="missing_fields")

    client = user
    if is_staff(user.role) and data.client_id is not None:
        client = await db.get(User, data.client_id)
        if client is None or client.role != "client":
            raise HTTPException(status_code=400, detail="bad_client")

    if data.service_id is not None:
        service = await db.get(ClientService, data.service_id)
        if service is None or service.client_id != client.id:
            raise HTTPException(status_code=400, detail="bad_service")

    now = utcnow()
    ticket = Ticket(
        client_id=client.id,
        subject=subject[:255],
        status="new",
        priority=data.priority,
        category=data.category,
        improvement_status="pending" if data.category == "improvement" else None,
        service_id=data.service_id,
        created_at=now,
        updated_at=now,
    )
    async with unit_of_work(db):
        db.add(ticket)
        await db.flush()
        db.add(TicketMessage(ticket_id=ticket.id, user_id=user.id, message=message, created_at=now))

    await log.log_info("ticket", "Тикет создан", {"id": ticket.id, "client": client.id, "priority": ticket.priority})

    email_data = {
        "ticketId": ticket.id,
        "subject": ticket.subject,
        "category": ticket.category,
        "priority": ticket.priority,
        "message": message,
        "clientName": client.display_name,
    }
    await best_effort(log, "ticket", "Уведомление о тикете", notify(
        request.app.state.db, "ticket_new", None, ticket.id, f"Nuevo ticket #{ticket.id}: {ticket.subject}", client.display_name,
    ))
    await best_effort(log, "ticket", "Письмо ticket-created", mailer.send(
        "ticket-created", settings.ADMIN_EMAIL,
        {**email_data, "ticketUrl": ticket_url(settings, ticket.id, for_client=False)},
    ))
    await best_effort(log, "ticket", "Письмо ticket-client-confirmation", mailer.send(
        "ticket-client-confirmation", client.email,
        {**email_data, "ticketUrl": ticket_url(settings, ticket.id, for_client=True)},
    ))
    return ticket


# ────────────── Сообщения ──────────────
async def add_message_service(id: int, data: MessageCreate, user: User, request: Request) -> tuple[MessageRow, Ticket]:
    """
    Добавляет сообщение и пересчитывает статус по роли автора.

    Только персонал может писать внутренние заметки; заметки не уходят
    клиенту ни в сокет, ни уведомлением, ни письмом.
    """
    db = request.state.db
    log = request.app.state.log
    settings = request.app.state.settings
    mailer = request.app.state.mailer
    rooms = request.app.state.rooms

    ticket = await load_ticket(id, user, request)
    text = clean(data.message)
    if not text:
        raise HTTPException(status_code=400, detail="missing_fields")

    staff = is_staff(user.role)
    is_internal = bool(data.is_internal) and staff

    now = utcnow()
    message = TicketMessage(ticket_id=ticket.id, user_id=user.id, message=text, is_internal=is_internal, created_at=now)
    async with unit_of_work(db):
        db.add(message)
        ticket.status = next_status(ticket.status, user.role, is_internal)
        if staff and ticket.assigned_to is None:
            ticket.assigned_to = user.id
        ticket.updated_at = now

    row = to_message_row(message, user)
    await log.log_info("ticket", "Сообщение добавлено", {"ticket": ticket.id, "internal": is_internal, "status": ticket.status})

    await best_effort(log, "ticket", "Рассылка new-message", rooms.broadcast(
        ticket.id, "new-message", row.model_dump(mode="json"), staff_only=is_internal,
    ))

    if is_internal:
        return row, ticket

    title = f"Respuesta en ticket #{ticket.id}: {ticket.subject}"
    email_data = {
        "ticketId": ticket.id,
        "subject": ticket.subject,
        "responderName": user.display_name,
        "message": text,
    }

    if staff:
        client = await db.get(User, ticket.client_id)
        await best_effort(log, "ticket", "Уведомление клиенту", notify(
            request.app.state.db, "ticket_message", ticket.client_id, ticket.id, title, text[:500],
        ))
        if client is not None:
            await best_effort(log, "ticket", "Письмо ticket-response клиенту", mailer.send(
                "ticket-response", client.email,
                {**email_data, "ticketUrl": ticket_url(settings, ticket.id, for_client=True)},
            ))
    else:
        # без назначенного сотрудника уведомление получают все
        await best_effort(log, "ticket", "Уведомление персоналу", notify(
            request.app.state.db, "ticket_message", ticket.assigned_to, ticket.id, title, text[:500],
        ))
        assignee = await db.get(User, ticket.assigned_to) if ticket.assigned_to else None
        to_email = assignee.email if assignee and assignee.email else settings.ADMIN_EMAIL
        await best_effort(log, "ticket", "Письмо ticket-response персоналу", mailer.send(
            "ticket-response", to_email,
            {**email_data, "ticketUrl": ticket_url(settings, ticket.id, for_client=False)},
        ))

    return row, ticket


# ────────────── Назначение и статус ──────────────
async def assign_me_service(id: int, user: User, request: Request) -> Ticket:
    """Взять тикет себе. Чужое назначение не перезаписывается (409)."""
    db = request.state.db
    log = request.app.state.log
    ticket = await load_ticket(id, user, request)

    # проверка и запись одним UPDATE: из одновременных заявок проходит одна
    result = await db.execute(
        update(Ticket)
        .where(Ticket.id == id, or_(Ticket.assigned_to.is_(None), Ticket.assigned_to == user.id))
        .values(
            assigned_to=user.id,
            status=case((Ticket.status == "new", "in_progress"), else_=Ticket.status),
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(ticket)

    if result.rowcount == 0:
        await log.log_warning("ticket", "Тикет уже назначен", {"ticket": id, "assigned_to": ticket.assigned_to, "user": user.id})
        raise HTTPException(status_code=409, detail={"error": "already_assigned", "assigned_to": ticket.assigned_to})

    await log.log_info("ticket", "Тикет назначен", {"ticket": id, "user": user.id})
    return ticket


async def update_ticket_service(id: int, data: TicketUpdate, user: User, request: Request) -> Ticket:
    """
    Правка тикета администратором. closed ставит closed_at,
    любой другой статус его очищает (явное переоткрытие).
    """
    db = request.state.db
    ticket = await load_ticket(id, user, request)
    changes = data.model_dump(exclude_unset=True)

    if "assigned_to" in changes and changes["assigned_to"] is not None:
        assignee = await db.get(User, changes["assigned_to"])
        if assignee is None or not is_staff(assignee.role):
            raise HTTPException(status_code=400, detail="bad_assignee")

    for key in ("status", "priority", "improvement_status"):
        if key in changes and changes[key] is None:
            changes.pop(key)

    for key, value in changes.items():
        setattr(ticket, key, value)

    if "status" in changes:
        ticket.closed_at = utcnow() if ticket.status == "closed" else None
    ticket.updated_at = utcnow()
    await db.commit()

    await request.app.state.log.log_info("ticket", "Тикет обновлён", {"ticket": id, "changes": changes})
    return ticket


async def close_ticket_service(id: int, user: User, request: Request) -> Ticket:
    db = request.state.db
    log = request.app.state.log
    settings = request.app.state.settings
    ticket = await load_ticket(id, user, request)

    now = utcnow()
    ticket.status = "closed"
    ticket.closed_at = now
    ticket.updated_at = now
    await db.commit()
    await log.log_info("ticket", "Тикет закрыт", {"ticket": id, "user": user.id})

    client = await db.get(User, ticket.client_id)
    await best_effort(log, "ticket", "Уведомление о закрытии", notify(
        request.app.state.db, "ticket_closed", ticket.client_id, ticket.id, f"Ticket #{ticket.id} cerrado", ticket.subject,
    ))
    if client is not None:
        await best_effort(log, "ticket", "Письмо ticket-closed", request.app.state.mailer.send(
            "ticket-closed", client.email,
            {"ticketId": ticket.id, "subject": ticket.subject, "ticketUrl": ticket_url(settings, ticket.id, for_client=True)},
        ))
    return ticket


async def delete_ticket_service(id: int, user: User, request: Request) -> None:
    """
    Каскадное удаление одной транзакцией: сообщения, вложения,
    уведомления ticket* по этому тикету, сам тикет. Файлы удаляются после commit.
    """
    db = request.state.db
    log = request.app.state.log
    settings = request.app.state.settings
    ticket = await load_ticket(id, user, request)

    result = await db.execute(select(TicketAttachment.file_path).where(TicketAttachment.ticket_id == id))
    file_paths = result.scalars().all()

    async with unit_of_work(db):
        await db.execute(delete(TicketAttachment).where(TicketAttachment.ticket_id == id))
        await db.execute(delete(TicketMessage).where(TicketMessage.ticket_id == id))
        await db.execute(
            delete(AdminNotification).where(
                AdminNotification.type.like("ticket%"),
                AdminNotification.ref_id == id,
            )
        )
        await db.delete(ticket)

    for file_path in file_paths:
        try:
            remove_upload(settings.UPLOADS_DIR, file_path)
        except OSError as e:
            await log.log_warning("ticket", f"Файл вложения не удалён: {e}", {"path": file_path})

    await log.log_info("ticket", "Тикет удалён", {"ticket": id, "files": len(file_paths)})


# ────────────── Вложения ──────────────
def to_attachment_row(attachment: TicketAttachment, uploader: User | None) -> AttachmentRow:
    return AttachmentRow(
        id=attachment.id,
        ticket_id=attachment.ticket_id,
        message_id=attachment.message_id,
        filename=attachment.filename,
        original_name=attachment.original_name,
        file_path=attachment.file_path,
        file_size=attachment.file_size,
        mime_type=attachment.mime_type,
        uploaded_by=attachment.uploaded_by,
        display_name=uploader.display_name if uploader else None,
        created_at=attachment.created_at,
    )


async def upload_attachment_service(
    id: int,
    file: UploadFile,
    user: User,
    request: Request,
    message_id: int | None = None,
) -> AttachmentRow:
    db = request.state.db
    settings = request.app.state.settings
    ticket = await load_ticket(id, user, request)

    if message_id is not None:
        message = await db.get(TicketMessage, message_id)
        if message is None or message.ticket_id != ticket.id:
            raise HTTPException(status_code=400, detail="bad_message")

    saved = await save_upload(file, settings.UPLOADS_DIR, "attachments", ATTACHMENT_EXTENSIONS, settings.UPLOAD_MAX_BYTES)

    attachment = TicketAttachment(
        ticket_id=ticket.id,
        message_id=message_id,
        filename=saved.filename,
        original_name=saved.original_name,
        file_path=saved.url,
        file_size=saved.size,
        mime_type=saved.mime_type,
        uploaded_by=user.id,
    )
    db.add(attachment)
    await db.commit()

    await request.app.state.log.log_info("ticket", "Вложение загружено", {"ticket": id, "file": saved.filename, "size": saved.size})
    return to_attachment_row(attachment, user)
