# backoffice/schemas/user.py

from pydantic import BaseModel
from typing import Literal, Optional
from datetime import datetime

Role = Literal["admin", "support", "client"]


class LoginRequest(BaseModel):
    username: str
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class RecoverRequest(BaseModel):
    email: str


class UserBase(BaseModel):
    """
    Базовая схема пользователя для входных данных и обновления.
    """
    email: Optional[str] = None
    name: Optional[str] = None
    full_name: Optional[str] = None
    company: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[Role] = None
    pm2_access: Optional[bool] = None
    is_active: Optional[bool] = None


class UserCreate(UserBase):
    """
    Создание пользователя администратором.
    Если пароль не передан, генерируется временный.
    """
    username: str
    password: Optional[str] = None
    role: Role = "client"


class UserUpdate(UserBase):
    """
    Передаются только те поля, которые нужно изменить.
    """
    username: Optional[str] = None
    password: Optional[str] = None
    must_change_password: Optional[bool] = None


class UserResponse(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    name: Optional[str] = None
    full_name: Optional[str] = None
    display_name: str
    company: Optional[str] = None
    phone: Optional[str] = None
    role: Role
    must_change_password: bool
    pm2_access: bool
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime

    model_config = {
        "from_attributes": True
    }


class DirectoryEntry(BaseModel):
    """Строка справочника персонала или клиентов."""
    id: int
    username: str
    display_name: str
    email: Optional[str] = None
    company: Optional[str] = None

    model_config = {
        "from_attributes": True
    }
