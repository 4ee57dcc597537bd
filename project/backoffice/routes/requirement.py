# backoffice/routes/requirement.py

from typing import Optional

from fastapi import APIRouter, Depends, Request
from backoffice.models.user import User
from backoffice.routes.auth import require
from backoffice.schemas.requirement import RequirementCreate, RequirementUpdate
from backoffice.services.policy import Capability
from backoffice.services.requirement import (
    OPTIONS,
    convert_requirement_service,
    create_requirement_service,
    delete_requirement_service,
    get_requirement_service,
    list_requirements_service,
    update_requirement_service,
)

router = APIRouter()

triage = require(Capability.TRIAGE)
manage = require(Capability.MANAGE)


@router.get("/options", summary="Справочники формы требований", responses={200: {"description": "Списки вариантов"}})
async def options(_: User = Depends(triage)):
    return {"ok": True, "options": OPTIONS}


@router.get("", summary="Список требований", responses={200: {"description": "Новые первыми"}})
async def list_requirements(request: Request, status: Optional[str] = None, _: User = Depends(triage)):
    return {"ok": True, "requirements": await list_requirements_service(request, status)}


@router.get("/{id}", summary="Требования по ID", responses={404: {"description": "Не найдены"}})
async def get_requirement(id: int, request: Request, _: User = Depends(triage)):
    return {"ok": True, "requirement": await get_requirement_service(id, request)}


@router.post("", summary="Создать требования", responses={400: {"description": "Нет контактного имени или email"}})
async def create_requirement(data: RequirementCreate, request: Request, user: User = Depends(triage)):
    try:
        item = await create_requirement_service(data, user, request)
        return {"ok": True, "requirement_id": item.id}
    except Exception as e:
        await request.app.state.log.log_error("requirement", f"Ошибка при создании требований: {e}")
        raise


@router.put(
    "/{id}",
    summary="Обновить требования",
    responses={400: {"description": "Недопустимый статус"}, 404: {"description": "Не найдены"}},
)
async def update_requirement(id: int, data: RequirementUpdate, request: Request, _: User = Depends(triage)):
    await update_requirement_service(id, data, request)
    return {"ok": True}


@router.post(
    "/{id}/convert",
    summary="Создать клиента из требований",
    responses={
        200: {"description": "Клиент создан, временный пароль в ответе"},
        400: {"description": "Уже конвертированы или пользователь существует"},
        404: {"description": "Не найдены"},
    },
)
async def convert_requirement(id: int, request: Request, _: User = Depends(manage)):
    try:
        client, password = await convert_requirement_service(id, request)
        return {"ok": True, "user_id": client.id, "username": client.username, "temp_password": password}
    except Exception as e:
        await request.app.state.log.log_error("requirement", f"Ошибка конвертации: {e}", {"id": id})
        raise


@router.delete("/{id}", summary="Удалить требования", responses={404: {"description": "Не найдены"}})
async def delete_requirement(id: int, request: Request, _: User = Depends(manage)):
    await delete_requirement_service(id, request)
    return {"ok": True}
