# backoffice/main.py

import asyncio
import contextlib
import multiprocessing
import os
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv

# --- загрузка переменных окружения ---
load_dotenv()

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from backoffice.config import settings
from backoffice.middleware.db_middleware import DBSessionMiddleware
from backoffice.routes.auth import LoginRedirect, limiter
from backoffice.services.mailer import Mailer
from backoffice.services.realtime import TicketRooms
from backoffice.services.storage import StorageAgent
from backoffice.utils.database import Database
from backoffice.utils.log import Log

# --- sync логгер для раннего старта ---
boot_log = Log(settings.LOG_DIR, settings.LOG_PRINT)
if os.environ.get("RUN_MAIN") == "true" or multiprocessing.current_process().name == "MainProcess":
    boot_log.log_info_sync(target="startup", message="Импорты main.py выполнены")


# ────────────── Lifespan ──────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    boot_log.log_info_sync(target="startup", message="lifespan: startup начат")

    app.state.settings = settings
    app.state.log = Log(settings.LOG_DIR, settings.LOG_PRINT)
    await app.state.log.log_info(target="startup", message="Async Log инициализирован")

    # Инициализация БД
    app.state.db = Database(settings.DATABASE_URL, echo=settings.LOG_PRINT_DB == "1")
    created = await app.state.db.init(settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD, settings.ADMIN_EMAIL)
    boot_log.log_info_sync(target="startup", message="База инициализирована", data={"admin_created": created})

    app.state.mailer = Mailer(settings, app.state.db, app.state.log)
    app.state.rooms = TicketRooms()
    app.state.storage = StorageAgent(settings, app.state.db, app.state.mailer, app.state.log)

    scheduler = None
    if settings.STORAGE_SCAN_ENABLED:
        scheduler = asyncio.create_task(app.state.storage.run_schedule())
        boot_log.log_info_sync(target="startup", message="Расписание сканирования запущено")

    yield

    # shutdown
    await app.state.log.log_info(target="shutdown", message="Остановка приложения")
    if scheduler is not None:
        scheduler.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await scheduler
    await app.state.db.dispose()
    await app.state.log.shutdown()
    boot_log.log_info_sync(target="shutdown", message="Log корректно завершён")


# ────────────── Создаём FastAPI приложение ──────────────
app = FastAPI(title="Studio Back Office API", lifespan=lifespan)
app.state.limiter = limiter

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.SITE_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# DB middleware для request.state.db
app.add_middleware(DBSessionMiddleware)


# ────────────── Ошибки в формате {ok: false, error} ──────────────
def error_response(status_code: int, detail, headers=None) -> JSONResponse:
    if isinstance(detail, dict):
        body = {"ok": False, **detail}
    else:
        body = {"ok": False, "error": detail}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return error_response(exc.status_code, exc.detail, getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(400, {"error": "validation_error", "details": exc.errors()})


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    await request.app.state.log.log_warning("auth", "Превышен лимит запросов", {"host": request.client.host if request.client else None})
    return error_response(429, "too_many_requests")


@app.exception_handler(LoginRedirect)
async def login_redirect_handler(request: Request, exc: LoginRedirect):
    return RedirectResponse(exc.location, status_code=302)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    await request.app.state.log.log_error("app", f"Необработанная ошибка: {exc}", {"path": request.url.path})
    return error_response(500, str(exc))


@app.get("/")
def read_root():
    return {"ok": True, "service": "backoffice"}


# ────────────── Подключение роутов ──────────────
from backoffice.routes import (  # noqa: E402
    auth,
    blog,
    client_services,
    content,
    email,
    lead,
    notification,
    pages,
    project,
    realtime,
    requirement,
    storage,
    ticket,
    users,
)

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(lead.router, prefix="/api", tags=["lead"])
app.include_router(ticket.router, prefix="/api", tags=["ticket"])
app.include_router(notification.router, prefix="/api/notifications", tags=["notification"])
app.include_router(client_services.router, prefix="/api/services", tags=["service"])
app.include_router(storage.router, prefix="/api/storage", tags=["storage"])
app.include_router(storage.internal_router, prefix="/internal/storage", tags=["internal"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(blog.router, prefix="/api/blog", tags=["blog"])
app.include_router(project.router, prefix="/api/projects", tags=["project"])
app.include_router(project.technology_router, prefix="/api/technologies", tags=["technology"])
app.include_router(content.maintenance_router, prefix="/api/maintenance", tags=["maintenance"])
app.include_router(content.faq_router, prefix="/api/faq", tags=["faq"])
app.include_router(requirement.router, prefix="/api/requirements", tags=["requirement"])
app.include_router(email.router, prefix="/api/emails", tags=["email"])
app.include_router(pages.admin_router, prefix=settings.ADMIN_PATH, tags=["pages"])
app.include_router(pages.client_router, prefix="/cliente", tags=["pages"])
app.include_router(realtime.router, tags=["realtime"])

# Загруженные файлы
os.makedirs(settings.UPLOADS_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOADS_DIR), name="uploads")

# ────────────── Запуск uvicorn ──────────────
if __name__ == "__main__":
    boot_log.log_info_sync(target="startup", message="Запуск uvicorn.run")
    uvicorn.run(
        "backoffice.main:app",
        host="127.0.0.1",
        port=8000,
        log_level="info",
        reload=True
    )
