# backoffice/services/requirement.py

import re

from fastapi import HTTPException, Request
from sqlalchemy import func, or_
from sqlalchemy.future import select
from sqlalchemy.orm import aliased

from backoffice.models.requirement import ProjectRequirement
from backoffice.models.user import User
from backoffice.schemas.requirement import Requirement, RequirementCreate, RequirementUpdate
from backoffice.services.outcome import best_effort
from backoffice.services.users import login_url
from backoffice.utils.database import unit_of_work
from backoffice.utils.security import generate_password, hash_password

REQUIREMENT_STATUSES = ("draft", "sent", "approved", "rejected", "converted")

# Справочники для формы требований
OPTIONS = {
    "business_types": [
        "Restaurante", "Tienda/Comercio", "Servicios Profesionales", "Consultoria",
        "Educacion", "Salud", "Tecnologia", "Manufactura", "Inmobiliaria", "Otro",
    ],
    "project_types": [
        "Pagina Web Informativa", "Tienda en Linea (E-commerce)", "Sistema Web (Aplicacion)",
        "API/Backend", "Landing Page", "Blog/Portal de Noticias", "Otro",
    ],
    "sections": [
        "Inicio", "Nosotros", "Servicios", "Productos", "Galeria", "Blog", "Contacto",
        "Login/Registro", "Panel de Administracion", "Carrito de Compras", "Pasarela de Pagos",
    ],
    "technologies": [
        "HTML/CSS/JS", "React", "Vue.js", "Next.js", "Node.js", "Express", "PHP",
        "Laravel", "WordPress", "MySQL", "PostgreSQL", "MongoDB", "SQLite",
    ],
    "budget_ranges": [
        "Menos de $5,000 MXN", "$5,000 - $15,000 MXN", "$15,000 - $30,000 MXN",
        "$30,000 - $50,000 MXN", "Mas de $50,000 MXN", "A definir",
    ],
    "timelines": ["1-2 semanas", "2-4 semanas", "1-2 meses", "2-3 meses", "Mas de 3 meses", "Flexible"],
}


def to_requirement(item: ProjectRequirement, client: User | None, creator: User | None) -> Requirement:
    row = Requirement.model_validate(item)
    row.client_name = client.display_name if client else None
    row.creator_name = creator.display_name if creator else None
    return row


def requirements_query():
    client = aliased(User)
    creator = aliased(User)
    return (
        select(ProjectRequirement, client, creator)
        .outerjoin(client, client.id == ProjectRequirement.client_id)
        .outerjoin(creator, creator.id == ProjectRequirement.created_by)
    )


async def list_requirements_service(request: Request, status: str | None = None) -> list[Requirement]:
    db = request.state.db
    query = requirements_query().order_by(ProjectRequirement.created_at.desc(), ProjectRequirement.id.desc())
    if status:
        query = query.where(ProjectRequirement.status == status)
    result = await db.execute(query)
    return [to_requirement(*row) for row in result.all()]


async def get_requirement_service(id: int, request: Request) -> Requirement:
    db = request.state.db
    result = await db.execute(requirements_query().where(ProjectRequirement.id == id))
    row = result.first()
    if row is None:
        raise HTTPException(status_code=404, detail="not_found")
    return to_requirement(*row)


async def read_requirement(id: int, request: Request) -> ProjectRequirement:
    item = await request.state.db.get(ProjectRequirement, id)
    if item is None:
        raise HTTPException(status_code=404, detail="not_found")
    return item


def check_contact(contact_name: str, contact_email: str) -> None:
    if not contact_name.strip() or not contact_email.strip():
        raise HTTPException(status_code=400, detail="missing_fields")


async def create_requirement_service(data: RequirementCreate, user: User, request: Request) -> ProjectRequirement:
    db = request.state.db
    check_contact(data.contact_name, data.contact_email)

    item = ProjectRequirement(**data.model_dump(), status="draft", created_by=user.id)
    db.add(item)
    await db.commit()
    await request.app.state.log.log_info("requirement", "Требования созданы", {"id": item.id, "user": user.id})
    return item


async def update_requirement_service(id: int, data: RequirementUpdate, request: Request) -> ProjectRequirement:
    db = request.state.db
    item = await read_requirement(id, request)
    check_contact(data.contact_name, data.contact_email)

    changes = data.model_dump()
    status = changes.pop("status") or "draft"
    if status not in REQUIREMENT_STATUSES:
        raise HTTPException(status_code=400, detail="bad_status")
    if status == "converted" and item.status != "converted":
        raise HTTPException(status_code=400, detail="bad_status")

    for key, value in changes.items():
        setattr(item, key, value)
    item.status = status
    await db.commit()
    return item


def username_from_email(email: str) -> str:
    return re.sub(r"[^a-z0-9]", "", email.split("@")[0].lower())


async def convert_requirement_service(id: int, request: Request) -> tuple[User, str]:
    """
    Создаёт клиента по контактам из требований и помечает их converted.
    Пользователь и отметка пишутся одной транзакцией, письмо user-created после.
    """
    db = request.state.db
    log = request.app.state.log
    settings = request.app.state.settings
    item = await read_requirement(id, request)

    if item.status == "converted":
        raise HTTPException(status_code=400, detail="already_converted")

    username = username_from_email(item.contact_email)
    if not username:
        raise HTTPException(status_code=400, detail="bad_email")

    existing = await db.scalar(
        select(func.count(User.id)).where(
            or_(User.username == username, func.lower(User.email) == item.contact_email.lower())
        )
    )
    if existing:
        raise HTTPException(status_code=400, detail="user_exists")

    password = generate_password()
    client = User(
        username=username,
        name=item.contact_name,
        full_name=item.contact_name,
        email=item.contact_email,
        phone=item.contact_phone,
        company=item.company_name,
        password_hash=hash_password(password),
        role="client",
        must_change_password=True,
    )
    async with unit_of_work(db):
        db.add(client)
        await db.flush()
        item.status = "converted"
        item.converted_to_client_id = client.id
        if item.client_id is None:
            item.client_id = client.id

    await log.log_info("requirement", "Требования конвертированы в клиента", {"id": id, "client": client.id})
    await best_effort(log, "requirement", "Письмо user-created", request.app.state.mailer.send(
        "user-created",
        client.email,
        {"name": client.display_name, "username": username, "password": password, "loginUrl": login_url(settings, "client")},
    ))
    return client, password


async def delete_requirement_service(id: int, request: Request) -> None:
    db = request.state.db
    item = await read_requirement(id, request)
    await db.delete(item)
    await db.commit()
    await request.app.state.log.log_info("requirement", "Требования удалены", {"id": id})
