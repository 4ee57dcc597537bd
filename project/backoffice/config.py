# backoffice/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    DATABASE_URL: str                       # async URL, например sqlite+aiosqlite:///./studio.db
    AUTH_SECRET_KEY: str                    # подпись cookie сессии

    # Сессии
    SESSION_TTL_MINUTES: int = 720
    SESSION_COOKIE_NAME: str = "sid"
    SESSION_COOKIE_SECURE: bool = False
    LOGIN_RATE_LIMIT: str = "10/5minutes"

    # Первый администратор и адрес для служебных писем
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "admin"
    ADMIN_EMAIL: str = ""

    # SMTP (пустой SMTP_HOST = почта отключена)
    SMTP_HOST: str = ""
    SMTP_PORT: int = 465
    SMTP_SECURE: bool = True
    SMTP_USER: str = ""
    SMTP_PASS: str = ""
    SMTP_TIMEOUT: int = 30
    EMAIL_FROM_NAME: str = "Cerberus Dev"

    SITE_URL: str = "http://localhost:8000"
    ADMIN_PATH: str = "/admin"
    VIEWS_DIR: str = "views"

    # Загрузки
    UPLOADS_DIR: str = "public/uploads"
    UPLOAD_MAX_BYTES: int = 10 * 1024 * 1024

    # Агент хранилища
    STORAGE_SCAN_ENABLED: bool = True
    STORAGE_SCAN_INTERVAL_HOURS: int = 6
    STORAGE_DEFAULT_LIMIT_MB: float = 5000
    STORAGE_ALERT_COOLDOWN_HOURS: int = 24

    # Внутренний API (пустой ключ = закрыт)
    INTERNAL_API_KEY: str = ""
    INTERNAL_API_ALLOWED_HOSTS: list[str] = ["127.0.0.1", "::1", "::ffff:127.0.0.1"]

    CLOSED_TICKET_VISIBLE_DAYS: int = 7
    NOTIFICATIONS_LIMIT: int = 50

    LOG_DIR: str = "backoffice/log"
    LOG_PRINT: str = "1"
    LOG_PRINT_DB: str = "0"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
