# blueprints/bookings/artifacts.py
"""Хранилище вложений (резюме) вне транзакции бронирования."""
from __future__ import annotations
import base64
import binascii
import secrets
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urlparse
from urllib.request import url2pathname

from werkzeug.utils import secure_filename

from blueprints.core.errors import ValidationError


class ArtifactError(Exception):
    pass


class ArtifactStore(Protocol):
    def put(self, *, owner: str, file_name: str, data: bytes, content_type: Optional[str] = None) -> str:
        ...

    def delete(self, url: str) -> None:
        ...


class LocalArtifactStore:
    """Кладёт файлы в UPLOAD_FOLDER; возвращает file:// URL."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def put(self, *, owner: str, file_name: str, data: bytes, content_type: Optional[str] = None) -> str:
        safe = secure_filename(file_name) or "resume"
        folder = self.root / secure_filename(owner.replace("@", "_at_"))
        target = folder / f"{secrets.token_hex(8)}-{safe}"
        try:
            folder.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise ArtifactError(f"cannot store {safe}: {exc}") from exc
        return target.resolve().as_uri()

    def delete(self, url: str) -> None:
        parsed = urlparse(url)
        if parsed.scheme != "file":
            raise ArtifactError(f"not a local artifact: {url}")
        path = Path(url2pathname(parsed.path)).resolve()
        if self.root.resolve() not in path.parents:
            raise ArtifactError(f"outside of {self.root}: {url}")
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise ArtifactError(f"cannot delete {path.name}: {exc}") from exc


def decode_content(content: str, max_bytes: int) -> bytes:
    try:
        data = base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("cv content must be base64-encoded", details={"field": "booking.cv.content"})
    if not data:
        raise ValidationError("cv content is empty", details={"field": "booking.cv.content"})
    if len(data) > max_bytes:
        raise ValidationError("cv is too large", details={"max_bytes": max_bytes, "size": len(data)})
    return data
