# backoffice/services/lead.py

from fastapi import HTTPException, Request
from sqlalchemy import func
from sqlalchemy.future import select

from backoffice.models.lead import LEAD_STATUSES, Lead
from backoffice.schemas.lead import LeadCreate
from backoffice.services.notification import notify
from backoffice.services.outcome import best_effort


def clean(value: str | None) -> str | None:
    """strip(); пустая строка превращается в None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


# ────────────── Форма контакта ──────────────
async def create_lead_service(data: LeadCreate, request: Request) -> Lead:
    """
    Сохраняет заявку с сайта.

    Строка лида коммитится до любых побочных эффектов: уведомление
    и оба письма выполняются best-effort и не влияют на ответ.
    """
    db = request.state.db
    log = request.app.state.log
    mailer = request.app.state.mailer
    settings = request.app.state.settings

    name = clean(data.name)
    email = clean(data.email)
    message = clean(data.message)
    if not name or not email or not message:
        await log.log_warning("lead", "Форма контакта без обязательных полей")
        raise HTTPException(status_code=400, detail="missing_fields")

    lead = Lead(
        name=name[:150],
        email=email[:255],
        phone=clean(data.phone),
        project_type=clean(data.project_type),
        message=message,
        status="new",
    )
    db.add(lead)
    await db.commit()
    await log.log_info("lead", "Лид создан", {"id": lead.id, "email": lead.email})

    await best_effort(log, "lead", "Уведомление о лиде", notify(
        request.app.state.db, "lead", None, lead.id, f"Nuevo contacto: {lead.name}", lead.message[:500],
    ))
    await best_effort(log, "lead", "Автоответ lead-received", mailer.send(
        "lead-received", lead.email, {"name": lead.name, "message": lead.message},
    ))
    await best_effort(log, "lead", "Письмо new-lead", mailer.send(
        "new-lead",
        settings.ADMIN_EMAIL,
        {
            "name": lead.name,
            "email": lead.email,
            "phone": lead.phone or "",
            "projectType": lead.project_type or "",
            "message": lead.message,
            "leadUrl": f"{settings.SITE_URL}{settings.ADMIN_PATH}/lead?id={lead.id}",
        },
    ))
    return lead


# ────────────── Разбор лидов персоналом ──────────────
async def read_leads_service(request: Request, status: str | None = None, skip: int = 0, limit: int = 100) -> list[Lead]:
    """Важные сначала, затем новые."""
    db = request.state.db
    query = select(Lead).order_by(Lead.is_important.desc(), Lead.created_at.desc(), Lead.id.desc())
    if status:
        query = query.where(Lead.status == status)
    result = await db.execute(query.offset(skip).limit(limit))
    return result.scalars().all()


async def read_lead_service(id: int, request: Request) -> Lead:
    db = request.state.db
    lead = await db.get(Lead, id)
    if lead is None:
        await request.app.state.log.log_error("lead", "Лид не найден", {"id": id})
        raise HTTPException(status_code=404, detail="not_found")
    return lead


async def lead_summary_service(request: Request) -> dict:
    db = request.state.db
    result = await db.execute(select(Lead.status, func.count(Lead.id)).group_by(Lead.status))
    summary = {status: 0 for status in LEAD_STATUSES}
    for status, count in result.all():
        summary[status] = count
    return summary


async def toggle_important_service(id: int, request: Request) -> Lead:
    db = request.state.db
    lead = await read_lead_service(id, request)
    lead.is_important = not lead.is_important
    await db.commit()
    return lead


async def set_lead_status_service(id: int, status: str | None, request: Request) -> Lead:
    db = request.state.db
    if status not in LEAD_STATUSES:
        raise HTTPException(status_code=400, detail="bad_status")
    lead = await read_lead_service(id, request)
    lead.status = status
    await db.commit()
    await request.app.state.log.log_info("lead", "Статус лида изменён", {"id": id, "status": status})
    return lead


async def save_lead_notes_service(id: int, notes: str | None, request: Request) -> Lead:
    db = request.state.db
    lead = await read_lead_service(id, request)
    lead.internal_notes = notes
    await db.commit()
    return lead


async def delete_lead_service(id: int, request: Request) -> None:
    db = request.state.db
    lead = await read_lead_service(id, request)
    await db.delete(lead)
    await db.commit()
    await request.app.state.log.log_info("lead", "Лид удалён", {"id": id})
