# backoffice/routes/project.py

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from backoffice.models.user import User
from backoffice.routes.auth import require
from backoffice.schemas.project import ProjectBase, ProjectCreate, ProjectImage, Technology, TechnologyBase, TechnologyCreate
from backoffice.services.policy import Capability
from backoffice.services.project import (
    active_technologies_service,
    all_projects_service,
    all_technologies_service,
    create_project_service,
    create_technology_service,
    delete_image_service,
    delete_project_service,
    delete_technology_service,
    published_project_service,
    published_projects_service,
    update_project_service,
    update_technology_service,
    upload_image_service,
)

router = APIRouter()
technology_router = APIRouter()

manage = require(Capability.MANAGE)


# ────────────── Проекты ──────────────
@router.get("", summary="Опубликованные проекты", responses={200: {"description": "С технологиями и изображениями"}})
async def public_projects(request: Request):
    return {"ok": True, "projects": await published_projects_service(request)}


@router.get("/manage", summary="Все проекты", responses={200: {"description": "Включая черновики"}})
async def manage_projects(request: Request, _: User = Depends(manage)):
    return {"ok": True, "projects": await all_projects_service(request)}


@router.get("/{slug}", summary="Проект по slug", responses={404: {"description": "Проект не найден"}})
async def public_project(slug: str, request: Request):
    return {"ok": True, "project": await published_project_service(slug, request)}


@router.post("", summary="Создать проект", responses={409: {"description": "slug занят"}})
async def create_project(data: ProjectCreate, request: Request, _: User = Depends(manage)):
    try:
        project = await create_project_service(data, request)
        return {"ok": True, "id": project.id, "slug": project.slug}
    except Exception as e:
        await request.app.state.log.log_error("project", f"Ошибка при создании проекта: {e}")
        raise


@router.put(
    "/{id}",
    summary="Обновить проект",
    responses={404: {"description": "Проект не найден"}, 409: {"description": "slug занят"}},
)
async def update_project(id: int, data: ProjectBase, request: Request, _: User = Depends(manage)):
    project = await update_project_service(id, data, request)
    return {"ok": True, "id": project.id, "slug": project.slug}


@router.delete("/{id}", summary="Удалить проект", responses={404: {"description": "Проект не найден"}})
async def delete_project(id: int, request: Request, _: User = Depends(manage)):
    await delete_project_service(id, request)
    return {"ok": True}


@router.post(
    "/{id}/images",
    summary="Загрузить изображение проекта",
    responses={400: {"description": "Не изображение"}, 413: {"description": "Файл слишком большой"}},
)
async def upload_image(
    id: int,
    request: Request,
    file: UploadFile = File(...),
    caption: Optional[str] = Form(None),
    _: User = Depends(manage),
):
    image = await upload_image_service(id, file, caption, request)
    return {"ok": True, "image": ProjectImage.model_validate(image)}


@router.delete("/images/{image_id}", summary="Удалить изображение", responses={404: {"description": "Не найдено"}})
async def delete_image(image_id: int, request: Request, _: User = Depends(manage)):
    await delete_image_service(image_id, request)
    return {"ok": True}


# ────────────── Технологии ──────────────
@technology_router.get("", summary="Активные технологии", responses={200: {"description": "По категории, порядку, имени"}})
async def public_technologies(request: Request):
    techs = await active_technologies_service(request)
    return {"ok": True, "technologies": [Technology.model_validate(t) for t in techs]}


@technology_router.get("/manage", summary="Все технологии", responses={200: {"description": "Включая неактивные"}})
async def manage_technologies(request: Request, _: User = Depends(manage)):
    techs = await all_technologies_service(request)
    return {"ok": True, "technologies": [Technology.model_validate(t) for t in techs]}


@technology_router.post("", summary="Создать технологию", responses={400: {"description": "Пустое имя"}})
async def create_technology(data: TechnologyCreate, request: Request, _: User = Depends(manage)):
    tech = await create_technology_service(data, request)
    return {"ok": True, "technology": Technology.model_validate(tech)}


@technology_router.put("/{id}", summary="Обновить технологию", responses={404: {"description": "Не найдена"}})
async def update_technology(id: int, data: TechnologyBase, request: Request, _: User = Depends(manage)):
    tech = await update_technology_service(id, data, request)
    return {"ok": True, "technology": Technology.model_validate(tech)}


@technology_router.delete("/{id}", summary="Удалить технологию", responses={404: {"description": "Не найдена"}})
async def delete_technology(id: int, request: Request, _: User = Depends(manage)):
    await delete_technology_service(id, request)
    return {"ok": True}
