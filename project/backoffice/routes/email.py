# backoffice/routes/email.py

from fastapi import APIRouter, Depends, Request
from backoffice.models.user import User
from backoffice.routes.auth import require
from backoffice.schemas.email import EmailLog, TemplateUpdate, TestEmailRequest
from backoffice.services.email_admin import (
    email_logs_service,
    get_template_service,
    list_templates_service,
    save_template_service,
    send_template_test_service,
    smtp_test_service,
)
from backoffice.services.policy import Capability

router = APIRouter()

manage = require(Capability.MANAGE)


@router.get("/templates", summary="Шаблоны писем", responses={200: {"description": "Встроенные с сохранёнными правками"}})
async def list_templates(request: Request, _: User = Depends(manage)):
    return {"ok": True, "templates": await list_templates_service(request)}


@router.get("/templates/{code}", summary="Шаблон по коду", responses={400: {"description": "Неизвестный код"}})
async def get_template(code: str, request: Request, _: User = Depends(manage)):
    return {"ok": True, "template": await get_template_service(code, request)}


@router.put("/templates/{code}", summary="Сохранить шаблон", responses={400: {"description": "Неизвестный код"}})
async def save_template(code: str, data: TemplateUpdate, request: Request, _: User = Depends(manage)):
    return {"ok": True, "template": await save_template_service(code, data, request)}


@router.post(
    "/templates/{code}/test",
    summary="Пробная отправка шаблона",
    responses={200: {"description": "ok=false с причиной, если письмо не ушло"}},
)
async def test_template(code: str, data: TestEmailRequest, request: Request, _: User = Depends(manage)):
    outcome = await send_template_test_service(code, data.to_email, request)
    return {"ok": outcome.ok, "error": outcome.reason}


@router.get("/logs", summary="Журнал отправки", responses={200: {"description": "Последние попытки"}})
async def logs(request: Request, limit: int = 100, _: User = Depends(manage)):
    rows = await email_logs_service(request, limit)
    return {"ok": True, "logs": [EmailLog.model_validate(r) for r in rows]}


@router.post(
    "/test",
    summary="Проверка SMTP",
    responses={200: {"description": "Соединение проверено и тестовое письмо отправлено, либо причина ошибки"}},
)
async def smtp_test(data: TestEmailRequest, request: Request, _: User = Depends(manage)):
    outcome = await smtp_test_service(data.to_email, request)
    return {"ok": outcome.ok, "error": outcome.reason}
