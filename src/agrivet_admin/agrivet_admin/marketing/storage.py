"""Campaign image uploads on the local filesystem."""

from __future__ import annotations

import io
import logging
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from ..common.datetime_utils import now_local
from ..core.constants import ALLOWED_IMAGE_TYPES, MAX_IMAGE_WIDTH, MAX_UPLOAD_BYTES
from ..core.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
    "image/gif": "GIF",
}


def _format_size(size: int) -> str:
    for unit in ("Bytes", "KB", "MB"):
        if size < 1024:
            return f"{size:g} {unit}"
        size = round(size / 1024, 2)
    return f"{size:g} GB"


class ImageStorage:
    def __init__(
        self,
        upload_dir: str,
        *,
        url_prefix: str = "/uploads",
        max_bytes: int = MAX_UPLOAD_BYTES,
        max_width: int = MAX_IMAGE_WIDTH,
        clock: Callable[[], datetime] = now_local,
    ):
        self._root = Path(upload_dir).resolve()
        self._url_prefix = url_prefix.rstrip("/")
        self._max_bytes = max_bytes
        self._max_width = max_width
        self._clock = clock

    @property
    def root(self) -> Path:
        return self._root

    def upload(self, filename: Optional[str], content_type: Optional[str], data: bytes) -> dict:
        """Validate, down-scale and store one image; returns ``{path, url, size}``."""
        name = (filename or "").strip()
        if not name:
            raise ValidationError("No file selected", {"file": "Choose an image to upload"})

        mime = (content_type or "").split(";")[0].strip().lower()
        if mime not in ALLOWED_IMAGE_TYPES:
            allowed = ", ".join(ALLOWED_IMAGE_TYPES)
            raise ValidationError(f"File type must be one of: {allowed}", {"file": "Unsupported file type"})

        ext = os.path.splitext(name)[1].lower()
        if ext not in ALLOWED_IMAGE_TYPES[mime]:
            expected = ", ".join(ALLOWED_IMAGE_TYPES[mime])
            raise ValidationError(f"File extension must be one of: {expected}", {"file": "Extension does not match type"})

        if not data:
            raise ValidationError("The uploaded file is empty", {"file": "Empty file"})
        if len(data) > self._max_bytes:
            raise ValidationError(
                f"File size must be less than {_format_size(self._max_bytes)}", {"file": "File is too large"}
            )

        data = self._normalize(data, _PIL_FORMATS[mime])

        stored_name = self._unique_name(name, ext)
        self._root.mkdir(parents=True, exist_ok=True)
        target = self._root / stored_name
        target.write_bytes(data)
        logger.info("Stored campaign image %s (%d bytes)", stored_name, len(data))

        return {"path": stored_name, "url": f"{self._url_prefix}/{stored_name}", "size": len(data)}

    def _normalize(self, data: bytes, pil_format: str) -> bytes:
        try:
            with Image.open(io.BytesIO(data)) as probe:
                probe.verify()
        except (UnidentifiedImageError, OSError, SyntaxError):
            raise ValidationError("The file is not a valid image", {"file": "Not a valid image"})

        # verify() leaves the image unusable; reopen for the real work
        with Image.open(io.BytesIO(data)) as img:
            if img.format != pil_format:
                raise ValidationError("The file content does not match its type", {"file": "Type mismatch"})
            if img.width <= self._max_width:
                return data

            height = max(round(img.height * self._max_width / img.width), 1)
            resized = img.resize((self._max_width, height), Image.Resampling.LANCZOS)
            if pil_format == "JPEG" and resized.mode not in ("RGB", "L"):
                resized = resized.convert("RGB")

            out = io.BytesIO()
            resized.save(out, format=pil_format)
            return out.getvalue()

    def _unique_name(self, original: str, ext: str) -> str:
        stem = secure_filename(os.path.splitext(original)[0])[:50] or "image"
        stamp = self._clock().strftime("%Y%m%d%H%M%S")
        return f"{stem}_{stamp}_{uuid.uuid4().hex[:8]}{ext}"

    def resolve(self, path: str) -> Path:
        """Absolute location of a stored file; refuses anything outside the upload directory."""
        candidate = (self._root / (path or "").lstrip("/")).resolve()
        if candidate == self._root or self._root not in candidate.parents:
            raise ValidationError("Invalid file path")
        return candidate

    def delete(self, path: str) -> None:
        if path.startswith(self._url_prefix + "/"):
            path = path[len(self._url_prefix) + 1 :]
        target = self.resolve(path)
        if not target.is_file():
            raise NotFoundError("File not found")
        target.unlink()
        logger.info("Deleted campaign image %s", target.name)
