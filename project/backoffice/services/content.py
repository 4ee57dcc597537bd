# backoffice/services/content.py

import bleach
import markdown
from fastapi import HTTPException, Request
from sqlalchemy import or_
from sqlalchemy.future import select

from backoffice.models.content import FaqItem, MaintenanceNotice
from backoffice.models.user import User
from backoffice.schemas.content import Faq, FaqBase, Notice, NoticeBase, NoticeCreate
from backoffice.utils.database import utcnow

# Разрешённая разметка в ответах FAQ
ALLOWED_TAGS = [
    "p", "br", "strong", "em", "b", "i", "ul", "ol", "li", "a", "code", "pre",
    "blockquote", "h3", "h4", "table", "thead", "tbody", "tr", "th", "td",
]
ALLOWED_ATTRIBUTES = {"a": ["href", "title", "target", "rel"]}
ALLOWED_PROTOCOLS = ["http", "https", "mailto"]


def render_markdown(text: str | None) -> str | None:
    if not text:
        return None
    html = markdown.markdown(text, extensions=["tables"])
    return bleach.clean(html, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES, protocols=ALLOWED_PROTOCOLS, strip=True)


# ────────────── Обслуживание ──────────────
def to_notice(notice: MaintenanceNotice, creator: User | None) -> Notice:
    row = Notice.model_validate(notice)
    if creator is not None:
        row.creator_name = creator.display_name
    return row


async def active_notices_service(request: Request) -> list[Notice]:
    """Активные уведомления, окно которых включает текущий момент."""
    db = request.state.db
    now = utcnow()
    result = await db.execute(
        select(MaintenanceNotice)
        .where(
            MaintenanceNotice.is_active.is_(True),
            MaintenanceNotice.start_at <= now,
            or_(MaintenanceNotice.end_at.is_(None), MaintenanceNotice.end_at >= now),
        )
        .order_by(MaintenanceNotice.start_at.desc())
    )
    return [Notice.model_validate(n) for n in result.scalars().all()]


async def all_notices_service(request: Request) -> list[Notice]:
    db = request.state.db
    result = await db.execute(
        select(MaintenanceNotice, User)
        .outerjoin(User, User.id == MaintenanceNotice.created_by)
        .order_by(MaintenanceNotice.start_at.desc(), MaintenanceNotice.id.desc())
    )
    return [to_notice(notice, creator) for notice, creator in result.all()]


async def create_notice_service(data: NoticeCreate, user: User, request: Request) -> tuple[MaintenanceNotice, list[dict]]:
    """
    Создаёт уведомление. send_email рассылает maintenance-notice всем клиентам;
    результат по каждому адресату возвращается и пишется в журнал.
    """
    db = request.state.db
    log = request.app.state.log

    if data.end_at is not None and data.end_at < data.start_at:
        raise HTTPException(status_code=400, detail="bad_window")

    notice = MaintenanceNotice(**data.model_dump(exclude={"send_email"}), created_by=user.id)
    db.add(notice)
    await db.commit()
    await log.log_info("maintenance", "Уведомление создано", {"id": notice.id})

    deliveries = []
    if data.send_email:
        deliveries = await request.app.state.mailer.send_bulk_to_clients(
            "maintenance-notice",
            {
                "title": notice.title,
                "message": notice.message,
                "startAt": notice.start_at.strftime("%d/%m/%Y %H:%M"),
                "endAt": notice.end_at.strftime("%d/%m/%Y %H:%M") if notice.end_at else "",
            },
        )
        failed = [d for d in deliveries if not d["ok"]]
        await log.log_info("maintenance", "Рассылка завершена", {"sent": len(deliveries) - len(failed), "failed": len(failed)})
    return notice, deliveries


async def read_notice_service(id: int, request: Request) -> MaintenanceNotice:
    db = request.state.db
    notice = await db.get(MaintenanceNotice, id)
    if notice is None:
        raise HTTPException(status_code=404, detail="not_found")
    return notice


async def update_notice_service(id: int, data: NoticeBase, request: Request) -> MaintenanceNotice:
    db = request.state.db
    notice = await read_notice_service(id, request)
    if data.end_at is not None and data.end_at < data.start_at:
        raise HTTPException(status_code=400, detail="bad_window")
    for key, value in data.model_dump().items():
        setattr(notice, key, value)
    await db.commit()
    return notice


async def delete_notice_service(id: int, request: Request) -> None:
    db = request.state.db
    notice = await read_notice_service(id, request)
    await db.delete(notice)
    await db.commit()


# ────────────── FAQ ──────────────
def to_faq(item: FaqItem) -> Faq:
    row = Faq.model_validate(item)
    row.answer_html = render_markdown(item.answer)
    row.answer_en_html = render_markdown(item.answer_en)
    return row


async def published_faq_service(request: Request, category: str | None = None) -> list[Faq]:
    db = request.state.db
    query = select(FaqItem).where(FaqItem.is_published.is_(True)).order_by(FaqItem.category, FaqItem.sort_order, FaqItem.id)
    if category:
        query = query.where(FaqItem.category == category)
    result = await db.execute(query)
    return [to_faq(item) for item in result.scalars().all()]


async def faq_categories_service(request: Request) -> list[str]:
    db = request.state.db
    result = await db.execute(
        select(FaqItem.category).where(FaqItem.is_published.is_(True)).distinct().order_by(FaqItem.category)
    )
    return result.scalars().all()


async def all_faq_service(request: Request) -> list[Faq]:
    db = request.state.db
    result = await db.execute(select(FaqItem).order_by(FaqItem.category, FaqItem.sort_order, FaqItem.id))
    return [to_faq(item) for item in result.scalars().all()]


async def read_faq_service(id: int, request: Request) -> FaqItem:
    db = request.state.db
    item = await db.get(FaqItem, id)
    if item is None:
        raise HTTPException(status_code=404, detail="not_found")
    return item


async def create_faq_service(data: FaqBase, request: Request) -> FaqItem:
    db = request.state.db
    if not data.question.strip() or not data.answer.strip():
        raise HTTPException(status_code=400, detail="missing_fields")
    item = FaqItem(**data.model_dump())
    db.add(item)
    await db.commit()
    return item


async def update_faq_service(id: int, data: FaqBase, request: Request) -> FaqItem:
    db = request.state.db
    item = await read_faq_service(id, request)
    for key, value in data.model_dump().items():
        setattr(item, key, value)
    await db.commit()
    return item


async def delete_faq_service(id: int, request: Request) -> None:
    db = request.state.db
    item = await read_faq_service(id, request)
    await db.delete(item)
    await db.commit()
