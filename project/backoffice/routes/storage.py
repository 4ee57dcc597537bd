# backoffice/routes/storage.py

import hmac

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from backoffice.models.user import User
from backoffice.routes.auth import require
from backoffice.schemas.service import Service, StorageConfig
from backoffice.services.client_services import (
    configure_storage_service,
    read_service_service,
    storage_overview_service,
)
from backoffice.services.policy import Capability
from backoffice.services.storage import storage_color, storage_status, usage_percentage

router = APIRouter()
internal_router = APIRouter()

manage = require(Capability.MANAGE)


# ────────────── Админка ──────────────
@router.post(
    "/scan/{id}",
    summary="Сканировать одну услугу",
    responses={
        200: {"description": "Результат сканирования"},
        404: {"description": "Услуга не найдена, папка не задана или отсутствует"},
    },
)
async def scan_one(id: int, request: Request, _: User = Depends(manage)):
    result = await request.app.state.storage.scan_service(id)
    if result is None:
        raise HTTPException(status_code=404, detail="not_scannable")
    return {"ok": True, "result": result}


@router.post(
    "/scan-all",
    summary="Сканировать все активные услуги",
    responses={200: {"description": "Результаты по каждой услуге"}},
)
async def scan_all(request: Request, _: User = Depends(manage)):
    results = await request.app.state.storage.scan_all()
    return {"ok": True, "results": results, "scanned": len(results)}


@router.post(
    "/configure/{id}",
    summary="Папка, лимит и порог предупреждения услуги",
    responses={
        200: {"description": "Настройки сохранены"},
        400: {"description": "Недопустимый лимит или порог"},
        404: {"description": "Услуга не найдена"},
    },
)
async def configure(id: int, data: StorageConfig, request: Request, _: User = Depends(manage)):
    service = await configure_storage_service(id, data, request)
    return {"ok": True, "service": Service.model_validate(service)}


@router.get(
    "/overview",
    summary="Сводка по хранилищу",
    response_description="Самые тяжёлые услуги первыми",
    responses={200: {"description": "Услуги с процентом, статусом и цветом"}},
)
async def overview(request: Request, _: User = Depends(manage)):
    return {"ok": True, "services": await storage_overview_service(request)}


# ────────────── Внутренний API ──────────────
async def internal_guard(request: Request, x_internal_api_key: str | None = Header(None)):
    """Общий ключ из X-Internal-Api-Key и локальный адрес клиента."""
    settings = request.app.state.settings
    host = request.client.host if request.client else None

    if not settings.INTERNAL_API_KEY or not hmac.compare_digest(
        (x_internal_api_key or "").encode(), settings.INTERNAL_API_KEY.encode()
    ):
        await request.app.state.log.log_warning("storage", "Внутренний API: неверный ключ", {"host": host})
        raise HTTPException(status_code=403, detail="forbidden")
    if host not in settings.INTERNAL_API_ALLOWED_HOSTS:
        await request.app.state.log.log_warning("storage", "Внутренний API: адрес не разрешён", {"host": host})
        raise HTTPException(status_code=403, detail="forbidden")


@internal_router.post(
    "/scan/{id}",
    summary="Сканировать услугу (внутренний вызов)",
    dependencies=[Depends(internal_guard)],
    responses={403: {"description": "Неверный ключ или адрес"}, 404: {"description": "Услуга не сканируется"}},
)
async def internal_scan_one(id: int, request: Request):
    result = await request.app.state.storage.scan_service(id)
    if result is None:
        raise HTTPException(status_code=404, detail="not_scannable")
    return {"ok": True, "result": result}


@internal_router.post(
    "/scan-all",
    summary="Сканировать все услуги (внутренний вызов)",
    dependencies=[Depends(internal_guard)],
    responses={403: {"description": "Неверный ключ или адрес"}},
)
async def internal_scan_all(request: Request):
    results = await request.app.state.storage.scan_all()
    return {"ok": True, "results": results, "scanned": len(results)}


@internal_router.get(
    "/status/{id}",
    summary="Последний результат сканирования услуги",
    dependencies=[Depends(internal_guard)],
    responses={403: {"description": "Неверный ключ или адрес"}, 404: {"description": "Услуга не найдена"}},
)
async def internal_status(id: int, request: Request):
    service = await read_service_service(id, request)
    limit_mb = float(service.storage_limit_mb or request.app.state.settings.STORAGE_DEFAULT_LIMIT_MB)
    percentage = usage_percentage(service.storage_used_mb or 0, limit_mb)
    return {
        "ok": True,
        "service_id": service.id,
        "service_name": service.service_name,
        "used_mb": service.storage_used_mb or 0,
        "limit_mb": limit_mb,
        "percentage": percentage,
        "status": storage_status(percentage),
        "color": storage_color(percentage),
        "last_scan_at": service.last_scan_at,
        "last_scan_result": service.last_scan_result,
    }
