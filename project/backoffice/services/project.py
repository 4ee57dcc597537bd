# backoffice/services/project.py

from fastapi import HTTPException, Request, UploadFile
from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.future import select

from backoffice.models.project import Project, ProjectImage, ProjectTechnology, Technology
from backoffice.schemas.project import Project as ProjectRow
from backoffice.schemas.project import ProjectImage as ImageRow
from backoffice.schemas.project import ProjectBase, ProjectCreate, TechnologyBase, TechnologyCreate, TechnologyRef
from backoffice.services.blog import make_slug
from backoffice.services.uploads import IMAGE_EXTENSIONS, remove_upload, save_upload
from backoffice.utils.database import unit_of_work


async def with_details(projects: list[Project], request: Request) -> list[ProjectRow]:
    """Добавляет технологии и изображения к проектам двумя запросами."""
    db = request.state.db
    ids = [p.id for p in projects]
    if not ids:
        return []

    techs = (await db.execute(
        select(ProjectTechnology).where(ProjectTechnology.project_id.in_(ids)).order_by(ProjectTechnology.id)
    )).scalars().all()
    images = (await db.execute(
        select(ProjectImage).where(ProjectImage.project_id.in_(ids)).order_by(ProjectImage.sort_order, ProjectImage.id)
    )).scalars().all()

    rows = []
    for project in projects:
        row = ProjectRow.model_validate(project)
        row.technologies = [TechnologyRef.model_validate(t) for t in techs if t.project_id == project.id]
        row.images = [ImageRow.model_validate(i) for i in images if i.project_id == project.id]
        rows.append(row)
    return rows


# ────────────── Публичная часть ──────────────
async def published_projects_service(request: Request) -> list[ProjectRow]:
    db = request.state.db
    result = await db.execute(
        select(Project)
        .where(Project.is_published.is_(True))
        .order_by(Project.date.desc(), Project.created_at.desc(), Project.id.desc())
    )
    return await with_details(result.scalars().all(), request)


async def published_project_service(slug: str, request: Request) -> ProjectRow:
    db = request.state.db
    result = await db.execute(select(Project).where(Project.slug == slug, Project.is_published.is_(True)))
    project = result.scalar_one_or_none()
    if project is None:
        raise HTTPException(status_code=404, detail="not_found")
    return (await with_details([project], request))[0]


# ────────────── Управление проектами ──────────────
async def all_projects_service(request: Request) -> list[ProjectRow]:
    db = request.state.db
    result = await db.execute(select(Project).order_by(Project.created_at.desc(), Project.id.desc()))
    return await with_details(result.scalars().all(), request)


async def read_project_service(id: int, request: Request) -> Project:
    db = request.state.db
    project = await db.get(Project, id)
    if project is None:
        raise HTTPException(status_code=404, detail="not_found")
    return project


async def create_project_service(data: ProjectCreate, request: Request) -> Project:
    db = request.state.db
    title = data.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="missing_fields")

    values = data.model_dump(exclude_unset=True, exclude={"technologies"})
    values["title"] = title
    values["slug"] = make_slug(data.slug, title)
    values["is_published"] = bool(values.get("is_published"))

    project = Project(**values)
    try:
        async with unit_of_work(db):
            db.add(project)
            await db.flush()
            for tech in data.technologies or []:
                db.add(ProjectTechnology(project_id=project.id, tech_name=tech.tech_name, tech_icon=tech.tech_icon))
    except IntegrityError:
        raise HTTPException(status_code=409, detail="slug_taken")

    await request.app.state.log.log_info("project", "Проект создан", {"id": project.id, "slug": project.slug})
    return project


async def update_project_service(id: int, data: ProjectBase, request: Request) -> Project:
    """Список технологий, если передан, заменяется целиком в одной транзакции."""
    db = request.state.db
    project = await read_project_service(id, request)
    changes = data.model_dump(exclude_unset=True, exclude={"technologies"})

    if "slug" in changes or "title" in changes:
        title = (changes.get("title") or project.title).strip()
        changes["title"] = title
        changes["slug"] = make_slug(changes.get("slug") or project.slug, title)

    try:
        async with unit_of_work(db):
            for key, value in changes.items():
                if key == "is_published" and value is None:
                    continue
                setattr(project, key, value)
            if data.technologies is not None:
                await db.execute(delete(ProjectTechnology).where(ProjectTechnology.project_id == id))
                for tech in data.technologies:
                    db.add(ProjectTechnology(project_id=id, tech_name=tech.tech_name, tech_icon=tech.tech_icon))
    except IntegrityError:
        raise HTTPException(status_code=409, detail="slug_taken")

    await request.app.state.log.log_info("project", "Проект обновлён", {"id": id})
    return project


async def delete_project_service(id: int, request: Request) -> None:
    db = request.state.db
    settings = request.app.state.settings
    project = await read_project_service(id, request)

    result = await db.execute(select(ProjectImage.file_path).where(ProjectImage.project_id == id))
    file_paths = result.scalars().all()

    async with unit_of_work(db):
        await db.execute(delete(ProjectTechnology).where(ProjectTechnology.project_id == id))
        await db.execute(delete(ProjectImage).where(ProjectImage.project_id == id))
        await db.delete(project)

    for file_path in file_paths:
        try:
            remove_upload(settings.UPLOADS_DIR, file_path)
        except OSError as e:
            await request.app.state.log.log_warning("project", f"Файл не удалён: {e}", {"path": file_path})
    await request.app.state.log.log_info("project", "Проект удалён", {"id": id})


# ────────────── Изображения ──────────────
async def upload_image_service(id: int, file: UploadFile, caption: str | None, request: Request) -> ProjectImage:
    db = request.state.db
    settings = request.app.state.settings
    await read_project_service(id, request)

    saved = await save_upload(file, settings.UPLOADS_DIR, "projects", IMAGE_EXTENSIONS, settings.UPLOAD_MAX_BYTES)
    last_order = await db.scalar(select(func.max(ProjectImage.sort_order)).where(ProjectImage.project_id == id))

    image = ProjectImage(project_id=id, file_path=saved.url, caption=caption, sort_order=(last_order or 0) + 1)
    db.add(image)
    await db.commit()
    await request.app.state.log.log_info("project", "Изображение загружено", {"project": id, "file": saved.filename})
    return image


async def delete_image_service(image_id: int, request: Request) -> None:
    db = request.state.db
    settings = request.app.state.settings
    image = await db.get(ProjectImage, image_id)
    if image is None:
        raise HTTPException(status_code=404, detail="not_found")

    file_path = image.file_path
    await db.delete(image)
    await db.commit()
    try:
        remove_upload(settings.UPLOADS_DIR, file_path)
    except OSError as e:
        await request.app.state.log.log_warning("project", f"Файл не удалён: {e}", {"path": file_path})


# ────────────── Технологии ──────────────
async def active_technologies_service(request: Request) -> list[Technology]:
    db = request.state.db
    result = await db.execute(
        select(Technology)
        .where(Technology.is_active.is_(True))
        .order_by(Technology.category, Technology.sort_order, Technology.name)
    )
    return result.scalars().all()


async def all_technologies_service(request: Request) -> list[Technology]:
    db = request.state.db
    result = await db.execute(select(Technology).order_by(Technology.category, Technology.sort_order, Technology.name))
    return result.scalars().all()


async def read_technology_service(id: int, request: Request) -> Technology:
    db = request.state.db
    tech = await db.get(Technology, id)
    if tech is None:
        raise HTTPException(status_code=404, detail="not_found")
    return tech


async def create_technology_service(data: TechnologyCreate, request: Request) -> Technology:
    db = request.state.db
    if not data.name.strip():
        raise HTTPException(status_code=400, detail="missing_fields")
    tech = Technology(
        name=data.name.strip(),
        category=data.category or "other",
        description=data.description,
        description_en=data.description_en,
        icon_url=data.icon_url,
        sort_order=data.sort_order or 0,
        is_active=True if data.is_active is None else data.is_active,
    )
    db.add(tech)
    await db.commit()
    return tech


async def update_technology_service(id: int, data: TechnologyBase, request: Request) -> Technology:
    db = request.state.db
    tech = await read_technology_service(id, request)
    for key, value in data.model_dump(exclude_unset=True).items():
        if key in ("name", "category", "sort_order", "is_active") and value is None:
            continue
        setattr(tech, key, value)
    await db.commit()
    return tech


async def delete_technology_service(id: int, request: Request) -> None:
    db = request.state.db
    tech = await read_technology_service(id, request)
    await db.delete(tech)
    await db.commit()
