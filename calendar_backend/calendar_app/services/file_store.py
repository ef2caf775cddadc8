import logging
import os
import re
import secrets
import time
from dataclasses import dataclass

from calendar_app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class StoredFile:
    original_name: str
    path: str
    mime_type: str
    size: int


def _sanitize(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9.-]", "_", name) or "document"


def save_calendar_file(original_name: str, mime_type: str, data: bytes, upload_dir: str | None = None) -> StoredFile:
    target_dir = upload_dir or settings.upload_dir
    os.makedirs(target_dir, exist_ok=True)
    unique = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
    path = os.path.join(target_dir, f"calendar-{unique}-{_sanitize(original_name)}")
    with open(path, "wb") as handle:
        handle.write(data)
    return StoredFile(original_name=original_name, path=path, mime_type=mime_type, size=len(data))


def delete_file(path: str | None) -> bool:
    if not path:
        return False
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.error("Could not delete stored file %s: %s", path, exc)
        return False
    return True
