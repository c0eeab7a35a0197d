"""Stores uploaded product images under the uploads directory."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Dict, Optional
from uuid import uuid4

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from common.services.errors import StoreError
from common.services.logging import log_event
from common.utils.security import validate_file

from .image_processing import (
    SIZE_LIMITS,
    create_thumbnail,
    process_for_masonry,
    process_keep_ratio,
)


class ImageStorage:
    """Validates, processes and writes product photos plus their thumbnails."""

    def __init__(self, uploads_dir: Path) -> None:
        self._uploads_dir = Path(uploads_dir)
        self._thumbnails_dir = self._uploads_dir / "thumbnails"
        self._uploads_dir.mkdir(parents=True, exist_ok=True)
        self._thumbnails_dir.mkdir(parents=True, exist_ok=True)

    @property
    def uploads_dir(self) -> Path:
        return self._uploads_dir

    def save_upload(self, uploaded: Optional[FileStorage], *, mode: str = "masonry",
                    size_key: Optional[str] = None) -> Dict:
        """Process an uploaded image and return its public URLs."""

        if uploaded is None or not (uploaded.filename or "").strip():
            raise StoreError("Файл не найден")
        binary = uploaded.read()
        errors = validate_file(
            uploaded.filename,
            uploaded.mimetype,
            len(binary),
            max_size=SIZE_LIMITS["maxFileSize"],
        )
        if not binary:
            errors.append("Файл пустой")
        if errors:
            raise StoreError("Недопустимый файл", details=errors)

        try:
            if mode == "keep":
                processed, metadata = process_keep_ratio(binary)
            else:
                processed, metadata = process_for_masonry(binary, size_key)
            thumbnail = create_thumbnail(binary)
        except ValueError as exc:
            raise StoreError(str(exc)) from exc

        file_name = self._safe_filename(uploaded.filename)
        (self._uploads_dir / file_name).write_bytes(processed)
        (self._thumbnails_dir / file_name).write_bytes(thumbnail)
        log_event("info", "upload.saved", file=file_name, size=len(processed), mode=mode)
        return {
            "success": True,
            "url": f"/uploads/{file_name}",
            "thumbnailUrl": f"/uploads/thumbnails/{file_name}",
            "fileName": file_name,
            "originalName": uploaded.filename,
            "metadata": {**metadata, "originalSize": len(binary), "processedSize": len(processed)},
        }

    def resolve(self, name: str) -> Optional[Path]:
        """Map a public ``/uploads/<name>`` path to a file inside the uploads dir."""

        candidate = (self._uploads_dir / name).resolve()
        root = self._uploads_dir.resolve()
        if root not in candidate.parents or not candidate.is_file():
            return None
        return candidate

    @staticmethod
    def _safe_filename(original: str) -> str:
        stem = secure_filename(Path(original).stem).lower()[:16] or "image"
        return f"{int(time.time() * 1000)}-{stem}-{uuid4().hex[:8]}.jpg"
