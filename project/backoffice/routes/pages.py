# backoffice/routes/pages.py

import os

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse, RedirectResponse
from backoffice.models.user import User
from backoffice.routes.auth import page_user
from backoffice.services.policy import is_staff

admin_router = APIRouter()
client_router = APIRouter()


def view(request: Request, *parts: str) -> FileResponse:
    path = os.path.join(request.app.state.settings.VIEWS_DIR, *parts)
    if not os.path.isfile(path):
        raise HTTPException(status_code=404, detail="not_found")
    return FileResponse(path, media_type="text/html")


@admin_router.get("/dashboard", summary="Панель персонала", include_in_schema=False)
async def admin_dashboard(request: Request, user: User = Depends(page_user(client_portal=False))):
    if not is_staff(user.role):
        return RedirectResponse("/cliente/", status_code=302)
    return view(request, "admin", "dashboard.html")


@client_router.get("/", summary="Портал клиента", include_in_schema=False)
async def client_portal(request: Request, user: User = Depends(page_user(client_portal=True))):
    if is_staff(user.role):
        return RedirectResponse(f"{request.app.state.settings.ADMIN_PATH}/dashboard", status_code=302)
    if user.must_change_password:
        return RedirectResponse("/cliente/change-password", status_code=302)
    return view(request, "client", "index.html")


@client_router.get("/change-password", summary="Смена пароля клиента", include_in_schema=False)
async def client_change_password(request: Request, _: User = Depends(page_user(client_portal=True))):
    return view(request, "client", "change-password.html")
