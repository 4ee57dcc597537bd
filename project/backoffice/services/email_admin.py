# backoffice/services/email_admin.py

from fastapi import HTTPException, Request
from sqlalchemy.future import select

from backoffice.models.email import EmailLog, EmailTemplate
from backoffice.schemas.email import TemplateUpdate
from backoffice.services import email_templates
from backoffice.services.outcome import Outcome


def merge_template(default: dict, saved: EmailTemplate | None) -> dict:
    """Встроенный шаблон с наложенной сохранённой версией."""
    return {
        "code": default["code"],
        "name": saved.name if saved else default["name"],
        "subject": saved.subject if saved else default["subject"],
        "html_content": saved.html_content if saved else default["body"],
        "variables": default["variables"],
        "description": default["description"],
        "is_active": saved.is_active if saved else True,
        "is_customized": saved is not None,
        "updated_at": saved.updated_at if saved else None,
    }


async def list_templates_service(request: Request) -> list[dict]:
    db = request.state.db
    result = await db.execute(select(EmailTemplate))
    saved = {t.code: t for t in result.scalars().all()}
    return [merge_template(t, saved.get(t["code"])) for t in email_templates.DEFAULT_TEMPLATES]


def default_template(code: str) -> dict:
    template = email_templates.TEMPLATES_BY_CODE.get(code)
    if template is None:
        raise HTTPException(status_code=400, detail="unknown_template")
    return template


async def get_template_service(code: str, request: Request) -> dict:
    db = request.state.db
    default = default_template(code)
    result = await db.execute(select(EmailTemplate).where(EmailTemplate.code == code))
    return merge_template(default, result.scalar_one_or_none())


async def save_template_service(code: str, data: TemplateUpdate, request: Request) -> dict:
    """Создаёт или обновляет сохранённую версию шаблона."""
    db = request.state.db
    default = default_template(code)

    result = await db.execute(select(EmailTemplate).where(EmailTemplate.code == code))
    saved = result.scalar_one_or_none()
    if saved is None:
        saved = EmailTemplate(code=code)
        db.add(saved)

    saved.name = data.name or saved.name or default["name"]
    saved.subject = data.subject or saved.subject or default["subject"]
    saved.html_content = data.html_content if data.html_content is not None else (saved.html_content or default["body"])
    saved.is_active = data.is_active
    await db.commit()

    await request.app.state.log.log_info("email", "Шаблон сохранён", {"code": code})
    return merge_template(default, saved)


async def send_template_test_service(code: str, to_email: str | None, request: Request) -> Outcome:
    """Пробная отправка шаблона с тестовыми данными."""
    default_template(code)
    to_email = to_email or request.app.state.settings.ADMIN_EMAIL
    if not to_email:
        raise HTTPException(status_code=400, detail="missing_fields")
    return await request.app.state.mailer.send(code, to_email, dict(email_templates.SAMPLE_DATA))


async def email_logs_service(request: Request, limit: int = 100) -> list[EmailLog]:
    db = request.state.db
    result = await db.execute(
        select(EmailLog).order_by(EmailLog.created_at.desc(), EmailLog.id.desc()).limit(max(1, min(limit, 500)))
    )
    return result.scalars().all()


async def smtp_test_service(to_email: str | None, request: Request) -> Outcome:
    """Сначала проверка соединения, затем тестовое письмо."""
    mailer = request.app.state.mailer
    verified = await mailer.verify()
    if not verified.ok:
        return verified

    to_email = to_email or request.app.state.settings.ADMIN_EMAIL
    if not to_email:
        raise HTTPException(status_code=400, detail="missing_fields")
    return await mailer.send("notification", to_email, {
        "subject": "Prueba de correo",
        "title": "Prueba de correo",
        "message": "La configuracion SMTP funciona correctamente.",
    })
