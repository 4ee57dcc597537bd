# backoffice/services/mailer.py

import asyncio
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr

from sqlalchemy.future import select

from backoffice.config import Settings
from backoffice.models.email import EmailLog, EmailTemplate
from backoffice.models.user import User
from backoffice.services import email_templates
from backoffice.services.outcome import Outcome
from backoffice.utils.database import Database, utcnow


class Mailer:
    """
    Отправка писем по шаблонам через SMTP.

    Создаётся в lifespan вместе с Database и Log. Каждая попытка
    пишется в email_logs (sent/failed). send() никогда не бросает исключение:
    результат всегда Outcome.
    """

    def __init__(self, settings: Settings, database: Database, log):
        self.settings = settings
        self.database = database
        self.log = log

    @property
    def configured(self) -> bool:
        return bool(self.settings.SMTP_HOST)

    @property
    def sender(self) -> str:
        return formataddr((self.settings.EMAIL_FROM_NAME, self.settings.SMTP_USER or "no-reply@localhost"))

    # ────────────── SMTP ──────────────
    def _connect(self) -> smtplib.SMTP:
        s = self.settings
        if s.SMTP_SECURE:
            server = smtplib.SMTP_SSL(s.SMTP_HOST, s.SMTP_PORT, context=ssl.create_default_context(), timeout=s.SMTP_TIMEOUT)
        else:
            server = smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT)
            server.ehlo()
            server.starttls(context=ssl.create_default_context())
            server.ehlo()
        if s.SMTP_USER:
            server.login(s.SMTP_USER, s.SMTP_PASS)
        return server

    def _deliver(self, to_email: str, subject: str, html: str) -> None:
        """Синхронная отправка (выполняется в thread pool)."""
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email
        msg.set_content("Este mensaje requiere un cliente de correo con soporte HTML.")
        msg.add_alternative(html, subtype="html")

        with self._connect() as server:
            server.send_message(msg)

    def _verify(self) -> None:
        with self._connect() as server:
            server.noop()

    async def verify(self) -> Outcome:
        if not self.configured:
            return Outcome.failure("smtp_not_configured")
        try:
            await asyncio.to_thread(self._verify)
        except Exception as e:
            await self.log.log_error("email", f"SMTP недоступен: {e}")
            return Outcome.failure(str(e))
        await self.log.log_info("email", "SMTP соединение проверено")
        return Outcome.success()

    # ────────────── Шаблоны ──────────────
    async def load_override(self, code: str) -> dict | None:
        async with self.database.session() as session:
            result = await session.execute(select(EmailTemplate).where(EmailTemplate.code == code))
            saved = result.scalar_one_or_none()
        if saved is None or not saved.is_active:
            return None
        return {"subject": saved.subject, "html_content": saved.html_content}

    async def write_log(self, code: str, to_email: str, subject: str, error: str | None) -> None:
        async with self.database.session() as session:
            session.add(EmailLog(
                template_code=code,
                to_email=to_email,
                subject=subject[:255],
                status="failed" if error else "sent",
                error_msg=error,
                sent_at=None if error else utcnow(),
            ))
            await session.commit()

    # ────────────── Отправка ──────────────
    async def send(self, code: str, to_email: str | None, data: dict | None = None) -> Outcome:
        data = data or {}
        subject = code
        try:
            if not to_email:
                raise ValueError("recipient_missing")
            override = await self.load_override(code)
            subject, html = email_templates.render(code, data, override)
            if not self.configured:
                raise RuntimeError("smtp_not_configured")
            await asyncio.to_thread(self._deliver, to_email, subject, html)
        except Exception as e:
            await self.log.log_error("email", f"Письмо {code} не отправлено", {"to": to_email, "error": str(e)})
            if to_email:
                try:
                    await self.write_log(code, to_email, subject, str(e))
                except Exception as log_err:
                    await self.log.log_error("email", f"Не удалось записать email_logs: {log_err}")
            return Outcome.failure(str(e))

        await self.write_log(code, to_email, subject, None)
        await self.log.log_info("email", f"Письмо {code} отправлено", {"to": to_email})
        return Outcome.success(subject=subject)

    async def send_admin(self, subject: str, message: str, data: dict | None = None) -> Outcome:
        if not self.settings.ADMIN_EMAIL:
            await self.log.log_warning("email", "ADMIN_EMAIL не задан")
            return Outcome.failure("admin_email_not_configured")
        payload = {"subject": subject, "title": subject, "message": message}
        payload.update(data or {})
        return await self.send("notification", self.settings.ADMIN_EMAIL, payload)

    async def send_bulk_to_clients(self, code: str, data: dict) -> list[dict]:
        """Одинаковое письмо всем клиентам с email; результат по каждому адресату."""
        async with self.database.session() as session:
            result = await session.execute(
                select(User).where(User.role == "client", User.email.is_not(None), User.is_active.is_(True))
            )
            clients = result.scalars().all()

        await self.log.log_info("email", f"Рассылка {code}", {"clients": len(clients)})

        results = []
        for client in clients:
            outcome = await self.send(code, client.email, {**data, "clientName": client.display_name})
            results.append({"client_id": client.id, "email": client.email, "ok": outcome.ok, "error": outcome.reason})
        return results
