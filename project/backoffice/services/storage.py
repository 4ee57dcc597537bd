# backoffice/services/storage.py

"""
Агент хранилища: считает размер папок клиентских услуг,
сохраняет результат и отправляет предупреждения о заполнении.
"""

import asyncio
import os
import time
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.future import select

from backoffice.config import Settings
from backoffice.models.service import ClientService
from backoffice.models.user import User
from backoffice.services.notification import notify
from backoffice.services.outcome import best_effort
from backoffice.utils.database import Database, utcnow

# Папки, которые не учитываются в размере
EXCLUDED_DIRS = frozenset({
    "node_modules",
    ".next",
    "dist",
    ".git",
    "cache",
    ".cache",
    "__pycache__",
    "vendor",
    "tmp",
    "temp",
})

EXCLUDED_EXTENSIONS = frozenset({".log"})

STATUS_COLORS = {
    "critical": "#dc2626",
    "danger": "#ea580c",
    "warning": "#ca8a04",
    "ok": "#16a34a",
}


@dataclass
class FolderScan:
    total_bytes: int = 0
    file_count: int = 0
    excluded_count: int = 0
    scan_time_ms: int = 0


def scan_folder(folder_path: str) -> FolderScan:
    """
    Рекурсивно суммирует размер файлов, пропуская EXCLUDED_DIRS и EXCLUDED_EXTENSIONS.
    Каждая пропущенная папка или файл увеличивает excluded_count.
    Файлы, исчезнувшие во время обхода, пропускаются.
    """
    result = FolderScan()
    started = time.monotonic()
    pending = [folder_path]

    while pending:
        current = pending.pop()
        try:
            entries = list(os.scandir(current))
        except OSError:
            continue

        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    if entry.name in EXCLUDED_DIRS:
                        result.excluded_count += 1
                    else:
                        pending.append(entry.path)
                elif entry.is_file(follow_symlinks=False):
                    if os.path.splitext(entry.name)[1].lower() in EXCLUDED_EXTENSIONS:
                        result.excluded_count += 1
                        continue
                    result.total_bytes += entry.stat(follow_symlinks=False).st_size
                    result.file_count += 1
            except OSError:
                continue

    result.scan_time_ms = int((time.monotonic() - started) * 1000)
    return result


def bytes_to_mb(size: int) -> float:
    return round(size / (1024 * 1024), 2)


def storage_status(percentage: float) -> str:
    if percentage >= 95:
        return "critical"
    if percentage >= 90:
        return "danger"
    if percentage >= 80:
        return "warning"
    return "ok"


def storage_color(percentage: float) -> str:
    return STATUS_COLORS[storage_status(percentage)]


def usage_percentage(used_mb: float, limit_mb: float) -> float:
    if not limit_mb:
        return 0.0
    return round(used_mb / limit_mb * 100, 2)


def alert_due(alert_sent_at: datetime | None, now: datetime, cooldown_hours: int) -> bool:
    """Не чаще одного предупреждения за cooldown_hours."""
    if alert_sent_at is None:
        return True
    return now - alert_sent_at >= timedelta(hours=cooldown_hours)


def next_run_at(now: datetime, interval_hours: int) -> datetime:
    """
    Ближайшая граница «каждые N часов» по часам: минута 0, hour % N == 0
    (как cron "0 */N * * *").
    """
    interval_hours = max(1, min(interval_hours, 24))
    candidate = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    while candidate.hour % interval_hours != 0:
        candidate += timedelta(hours=1)
    return candidate


class StorageAgent:
    """
    Сканирование услуг. Создаётся в lifespan (app.state.storage) и используется
    расписанием, админкой и внутренним API.
    """

    def __init__(self, settings: Settings, database: Database, mailer, log):
        self.settings = settings
        self.database = database
        self.mailer = mailer
        self.log = log

    async def scan_service(self, service_id: int) -> dict | None:
        """
        Сканирует одну услугу и сохраняет результат.
        None: услуга не найдена, папка не задана или отсутствует на диске.
        """
        async with self.database.session() as session:
            service = await session.get(ClientService, service_id)
            if service is None or not service.folder_path:
                return None

            if not os.path.isdir(service.folder_path):
                await self.log.log_warning("storage", f"Папка не найдена: {service.folder_path}", {"service": service_id})
                return None

            await self.log.log_info("storage", f"Сканирование: {service.service_name} ({service.folder_path})")

            scan = await asyncio.to_thread(scan_folder, service.folder_path)

            used_mb = bytes_to_mb(scan.total_bytes)
            limit_mb = float(service.storage_limit_mb or self.settings.STORAGE_DEFAULT_LIMIT_MB)
            percentage = usage_percentage(used_mb, limit_mb)
            status = storage_status(percentage)

            service.storage_used_mb = used_mb
            service.last_scan_at = utcnow()
            service.last_scan_result = {
                "total_mb": used_mb,
                "total_bytes": scan.total_bytes,
                "file_count": scan.file_count,
                "excluded_count": scan.excluded_count,
                "percentage": percentage,
                "status": status,
                "scan_time_ms": scan.scan_time_ms,
            }
            await session.commit()

            client = await session.get(User, service.client_id)

            await self.log.log_info(
                "storage",
                f"{service.service_name}: {used_mb} MB / {limit_mb} MB ({percentage}%) - {status}",
            )

            result = {
                "service_id": service.id,
                "service_name": service.service_name,
                "client": {
                    "id": client.id,
                    "name": client.display_name,
                    "email": client.email,
                } if client else None,
                "used_mb": used_mb,
                "limit_mb": limit_mb,
                "percentage": percentage,
                "status": status,
                "color": storage_color(percentage),
                "file_count": scan.file_count,
                "excluded_count": scan.excluded_count,
                "scan_time_ms": scan.scan_time_ms,
                "needs_alert": status != "ok" and percentage >= float(service.alert_threshold or 80),
                "alert_sent": False,
            }

            if result["needs_alert"] and alert_due(service.alert_sent_at, utcnow(), self.settings.STORAGE_ALERT_COOLDOWN_HOURS):
                result["alert_sent"] = await self.send_alert(session, service, client, result)

            return result

    async def send_alert(self, session, service: ClientService, client: User | None, result: dict) -> bool:
        """Письмо клиенту и уведомления; отметка alert_sent_at ставится только здесь."""
        status = result["status"]
        title = f"{service.service_name}: almacenamiento al {result['percentage']}%"

        if client is not None:
            await best_effort(self.log, "storage", "Письмо о хранилище", self.mailer.send(
                f"storage-{status}",
                client.email,
                {
                    "clientName": client.display_name,
                    "serviceName": service.service_name,
                    "percentage": result["percentage"],
                    "usedMb": result["used_mb"],
                    "limitMb": result["limit_mb"],
                    "portalUrl": f"{self.settings.SITE_URL}/cliente/",
                },
            ))
            await best_effort(self.log, "storage", "Уведомление клиенту", notify(
                self.database, f"storage_{status}", client.id, service.id, title,
            ))
        await best_effort(self.log, "storage", "Уведомление персоналу", notify(
            self.database, f"storage_{status}", None, service.id, title,
            client.display_name if client else None,
        ))

        service.alert_sent_at = utcnow()
        await session.commit()
        await self.log.log_info("storage", "Предупреждение отправлено", {"service": service.id, "status": status})
        return True

    async def scan_all(self) -> list[dict]:
        """Все активные услуги с настроенной папкой, по очереди."""
        await self.log.log_info("storage", "Полное сканирование начато")

        async with self.database.session() as session:
            result = await session.execute(
                select(ClientService.id).where(
                    ClientService.folder_path.is_not(None),
                    ClientService.status == "active",
                )
            )
            service_ids = result.scalars().all()

        results = []
        for service_id in service_ids:
            try:
                scanned = await self.scan_service(service_id)
            except Exception as e:
                await self.log.log_error("storage", f"Ошибка сканирования услуги {service_id}: {e}")
                continue
            if scanned:
                results.append(scanned)

        await self.log.log_info("storage", "Полное сканирование завершено", {"scanned": len(results)})
        return results

    async def run_schedule(self):
        """Фоновая задача: scan_all на каждой границе интервала до отмены."""
        interval = self.settings.STORAGE_SCAN_INTERVAL_HOURS
        await self.log.log_info("storage", f"Расписание запущено, интервал {interval} ч")
        while True:
            now = datetime.now()
            delay = (next_run_at(now, interval) - now).total_seconds()
            await asyncio.sleep(delay)
            try:
                await self.scan_all()
            except Exception as e:
                await self.log.log_error("storage", f"Ошибка расписания: {e}")
