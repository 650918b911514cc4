from __future__ import annotations

import logging
from pathlib import Path

from receipt_split.core.config import settings
from receipt_split.core.errors import StorageError

logger = logging.getLogger(__name__)

_EXT_BY_CONTENT_TYPE = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


def object_name(receipt_id: str, content_type: str | None) -> str:
    ext = _EXT_BY_CONTENT_TYPE.get((content_type or "").lower(), ".jpg")
    return f"receipts/{receipt_id}{ext}"


class LocalImageStorage:
    """Stores receipt images on local disk and serves them under ``base_url``."""

    def __init__(self, upload_dir: str | Path | None = None, base_url: str | None = None):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.base_url = (base_url if base_url is not None else settings.IMAGE_BASE_URL).rstrip("/")

    def upload(self, data: bytes, receipt_id: str, content_type: str | None) -> str:
        name = object_name(receipt_id, content_type)
        save_path = self.upload_dir / name
        try:
            save_path.parent.mkdir(parents=True, exist_ok=True)
            save_path.write_bytes(data)
        except OSError as e:
            logger.exception("failed to store image for receipt %s", receipt_id)
            raise StorageError(f"Failed to upload image: {e}") from e
        return f"{self.base_url}/{name}"
