# backoffice/services/uploads.py

import os
import secrets
import time
from dataclasses import dataclass

import aiofiles
from fastapi import HTTPException, UploadFile

ATTACHMENT_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".pdf", ".doc", ".docx", ".txt", ".zip"})
IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})

CHUNK_SIZE = 64 * 1024


@dataclass
class SavedFile:
    filename: str
    original_name: str
    url: str           # /uploads/<kind>/<filename>
    disk_path: str
    size: int
    mime_type: str | None


async def save_upload(
    file: UploadFile,
    uploads_dir: str,
    kind: str,
    allowed_extensions: frozenset[str],
    max_bytes: int,
) -> SavedFile:
    """
    Сохраняет загруженный файл под случайным именем в <uploads_dir>/<kind>/.
    Проверяет расширение и размер; недокачанный файл удаляется.
    """
    original_name = os.path.basename(file.filename or "")
    ext = os.path.splitext(original_name)[1].lower()
    if not original_name or ext not in allowed_extensions:
        raise HTTPException(status_code=400, detail="file_type_not_allowed")

    target_dir = os.path.join(uploads_dir, kind)
    os.makedirs(target_dir, exist_ok=True)

    filename = f"{kind.rstrip('s')}-{int(time.time() * 1000)}-{secrets.token_hex(3)}{ext}"
    disk_path = os.path.join(target_dir, filename)

    size = 0
    async with aiofiles.open(disk_path, "wb") as out:
        while True:
            chunk = await file.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > max_bytes:
                break
            await out.write(chunk)

    if size > max_bytes:
        os.remove(disk_path)
        raise HTTPException(status_code=413, detail="file_too_large")

    return SavedFile(
        filename=filename,
        original_name=original_name[:255],
        url=f"/uploads/{kind}/{filename}",
        disk_path=disk_path,
        size=size,
        mime_type=file.content_type,
    )


def remove_upload(uploads_dir: str, url: str) -> bool:
    """Удаляет файл по его URL /uploads/...; False, если файла уже нет."""
    if not url.startswith("/uploads/"):
        return False
    disk_path = os.path.join(uploads_dir, url[len("/uploads/"):])
    try:
        os.remove(disk_path)
    except FileNotFoundError:
        return False
    return True
