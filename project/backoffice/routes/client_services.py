# backoffice/routes/client_services.py

from fastapi import APIRouter, Depends, Request
from backoffice.models.user import User
from backoffice.routes.auth import require
from backoffice.schemas.service import Service, ServiceCreate, ServiceUpdate
from backoffice.services.client_services import (
    create_service_service,
    delete_service_service,
    read_services_service,
    update_service_service,
)
from backoffice.services.policy import Capability

router = APIRouter()

manage = require(Capability.MANAGE)


@router.get(
    "",
    summary="Услуги клиентов",
    responses={200: {"description": "Персонал видит все услуги, клиент только свои"}},
)
async def list_services(request: Request, user: User = Depends(require(Capability.READ))):
    return {"ok": True, "services": await read_services_service(user, request)}


@router.post(
    "",
    summary="Создать услугу",
    responses={200: {"description": "Услуга создана"}, 400: {"description": "Неверный клиент или пустое имя"}},
)
async def create_service(data: ServiceCreate, request: Request, _: User = Depends(manage)):
    try:
        service = await create_service_service(data, request)
        return {"ok": True, "service": Service.model_validate(service)}
    except Exception as e:
        await request.app.state.log.log_error("service", f"Ошибка при создании услуги: {e}")
        raise


@router.put(
    "/{id}",
    summary="Обновить услугу",
    responses={200: {"description": "Услуга обновлена"}, 404: {"description": "Услуга не найдена"}},
)
async def update_service(id: int, data: ServiceUpdate, request: Request, _: User = Depends(manage)):
    service = await update_service_service(id, data, request)
    return {"ok": True, "service": Service.model_validate(service)}


@router.delete(
    "/{id}",
    summary="Удалить услугу",
    responses={200: {"description": "Услуга удалена"}, 404: {"description": "Услуга не найдена"}},
)
async def delete_service(id: int, request: Request, _: User = Depends(manage)):
    await delete_service_service(id, request)
    return {"ok": True}
