# backoffice/services/client_services.py

from fastapi import HTTPException, Request
from sqlalchemy.future import select

from backoffice.models.service import ClientService
from backoffice.models.user import User
from backoffice.schemas.service import Service, ServiceCreate, ServiceUpdate, StorageConfig
from backoffice.services.policy import is_staff
from backoffice.services.storage import storage_color, storage_status, usage_percentage


def to_service(service: ClientService, client: User | None) -> Service:
    row = Service.model_validate(service)
    if client is not None:
        row.client_name = client.display_name
        row.company = client.company
    return row


async def read_services_service(user: User, request: Request) -> list[Service]:
    """Персонал видит все услуги с именем клиента, клиент только свои."""
    db = request.state.db
    query = (
        select(ClientService, User)
        .outerjoin(User, User.id == ClientService.client_id)
        .order_by(ClientService.created_at.desc(), ClientService.id.desc())
    )
    if not is_staff(user.role):
        query = query.where(ClientService.client_id == user.id)
    result = await db.execute(query)
    return [to_service(service, client) for service, client in result.all()]


async def read_service_service(id: int, request: Request) -> ClientService:
    db = request.state.db
    service = await db.get(ClientService, id)
    if service is None:
        await request.app.state.log.log_error("service", "Услуга не найдена", {"id": id})
        raise HTTPException(status_code=404, detail="not_found")
    return service


async def create_service_service(data: ServiceCreate, request: Request) -> ClientService:
    db = request.state.db
    settings = request.app.state.settings

    client = await db.get(User, data.client_id)
    if client is None or client.role != "client":
        raise HTTPException(status_code=400, detail="bad_client")
    if not data.service_name.strip():
        raise HTTPException(status_code=400, detail="missing_fields")

    service = ClientService(
        client_id=client.id,
        service_name=data.service_name.strip(),
        domain=data.domain,
        description=data.description,
        service_type=data.service_type or "web",
        status=data.status or "active",
        storage_limit_mb=data.storage_limit_mb or settings.STORAGE_DEFAULT_LIMIT_MB,
        start_date=data.start_date,
        end_date=data.end_date,
    )
    db.add(service)
    await db.commit()
    await request.app.state.log.log_info("service", "Услуга создана", {"id": service.id, "client": client.id})
    return service


async def update_service_service(id: int, data: ServiceUpdate, request: Request) -> ClientService:
    db = request.state.db
    service = await read_service_service(id, request)
    for key, value in data.model_dump(exclude_unset=True).items():
        if key in ("service_name", "service_type", "status") and not value:
            continue
        setattr(service, key, value)
    await db.commit()
    await request.app.state.log.log_info("service", "Услуга обновлена", {"id": id})
    return service


async def delete_service_service(id: int, request: Request) -> None:
    db = request.state.db
    service = await read_service_service(id, request)
    await db.delete(service)
    await db.commit()
    await request.app.state.log.log_info("service", "Услуга удалена", {"id": id})


# ────────────── Хранилище ──────────────
async def configure_storage_service(id: int, data: StorageConfig, request: Request) -> ClientService:
    db = request.state.db
    service = await read_service_service(id, request)

    changes = data.model_dump(exclude_unset=True)
    if "folder_path" in changes:
        service.folder_path = (changes["folder_path"] or "").strip() or None
    if changes.get("storage_limit_mb") is not None:
        if changes["storage_limit_mb"] <= 0:
            raise HTTPException(status_code=400, detail="bad_limit")
        service.storage_limit_mb = changes["storage_limit_mb"]
    if changes.get("alert_threshold") is not None:
        if not 0 < changes["alert_threshold"] <= 100:
            raise HTTPException(status_code=400, detail="bad_threshold")
        service.alert_threshold = changes["alert_threshold"]

    await db.commit()
    await request.app.state.log.log_info("storage", "Настройки хранилища обновлены", {"service": id, **changes})
    return service


async def storage_overview_service(request: Request) -> list[dict]:
    """Активные услуги с папкой, самые тяжёлые первыми."""
    db = request.state.db
    settings = request.app.state.settings
    result = await db.execute(
        select(ClientService, User)
        .outerjoin(User, User.id == ClientService.client_id)
        .where(ClientService.status == "active", ClientService.folder_path.is_not(None))
        .order_by(ClientService.storage_used_mb.desc(), ClientService.id)
    )

    overview = []
    for service, client in result.all():
        limit_mb = float(service.storage_limit_mb or settings.STORAGE_DEFAULT_LIMIT_MB)
        percentage = usage_percentage(service.storage_used_mb or 0, limit_mb)
        overview.append({
            "id": service.id,
            "service_name": service.service_name,
            "domain": service.domain,
            "folder_path": service.folder_path,
            "client_name": client.display_name if client else None,
            "used_mb": service.storage_used_mb or 0,
            "limit_mb": limit_mb,
            "percentage": percentage,
            "status": storage_status(percentage),
            "color": storage_color(percentage),
            "alert_threshold": service.alert_threshold,
            "last_scan_at": service.last_scan_at,
        })
    return overview
