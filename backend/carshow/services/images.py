"""Image upload validation and normalization.

Uploads go through a fixed sequence: declared type and size are checked
before anything is decoded, then the image is decoded, rotated upright from
its EXIF orientation, cover-cropped to the box of its asset class and
re-encoded as a JPEG. The result is written under a random name inside the
asset class directory.
"""
from __future__ import annotations

import io
import logging
import os
import secrets
import tempfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable

from fastapi import UploadFile
from PIL import Image, ImageOps
from starlette.concurrency import run_in_threadpool

from carshow.core.config import Settings
from carshow.core.exceptions import (
    FileTooLargeError,
    ImageProcessingError,
    NoFileError,
    UnsupportedMediaError,
)

logger = logging.getLogger(__name__)

CANONICAL_EXTENSION = ".jpg"
DECODERS = ("JPEG", "PNG", "GIF", "WEBP")


@dataclass(frozen=True)
class AssetClass:
    """Kind of stored image: where it lives and the box it is fitted to."""

    name: str
    directory: str
    size: tuple[int, int]


PROFILE_PHOTO = AssetClass("profile", "user_uploads/profile", (200, 200))
VEHICLE_PHOTO = AssetClass("vehicle", "user_uploads/cars", (800, 600))
BACKGROUND_IMAGE = AssetClass("background", "user_uploads/backgrounds", (1920, 1080))

ASSET_CLASSES = (PROFILE_PHOTO, VEHICLE_PHOTO, BACKGROUND_IMAGE)


def _flatten(image: Image.Image, background: tuple[int, int, int] = (255, 255, 255)) -> Image.Image:
    has_alpha = image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info)
    if not has_alpha:
        return image.convert("RGB")
    rgba = image.convert("RGBA")
    canvas = Image.new("RGB", rgba.size, background)
    canvas.paste(rgba, mask=rgba.getchannel("A"))
    return canvas


def normalize_image(data: bytes, size: tuple[int, int], quality: int = 85) -> bytes:
    """Return ``data`` as an upright, cover-fitted JPEG of exactly ``size``."""

    try:
        with Image.open(io.BytesIO(data), formats=DECODERS) as source:
            upright = ImageOps.exif_transpose(source)
            flattened = _flatten(upright)
            fitted = ImageOps.fit(
                flattened,
                size,
                method=Image.Resampling.LANCZOS,
                centering=(0.5, 0.5),
            )
            output = io.BytesIO()
            # No exif argument: orientation and other metadata are dropped.
            fitted.save(output, format="JPEG", quality=quality, optimize=True)
    except Image.DecompressionBombError as exc:
        raise ImageProcessingError("Image dimensions are too large.") from exc
    except (OSError, ValueError, SyntaxError) as exc:
        raise ImageProcessingError(f"Could not process image: {exc}") from exc
    return output.getvalue()


def write_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via a temporary file and rename."""

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".upload-", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except OSError:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


class ImagePipeline:
    """Validate, transform and store uploaded images."""

    def __init__(
        self,
        upload_root: Path,
        url_prefix: str = "/images",
        allowed_types: Iterable[str] = ("image/jpeg", "image/png", "image/gif", "image/webp"),
        max_bytes: int = 5 * 1024 * 1024,
        quality: int = 85,
    ) -> None:
        self.upload_root = Path(upload_root)
        self.url_prefix = "/" + url_prefix.strip("/")
        self.allowed_types = frozenset(item.lower() for item in allowed_types)
        self.max_bytes = max_bytes
        self.quality = quality

    @classmethod
    def from_settings(cls, settings: Settings) -> ImagePipeline:
        return cls(
            upload_root=settings.upload_root,
            url_prefix=settings.upload_url_prefix,
            allowed_types=settings.allowed_image_types,
            max_bytes=settings.max_upload_bytes,
            quality=settings.jpeg_quality,
        )

    def ensure_directories(self) -> None:
        for asset_class in ASSET_CLASSES:
            (self.upload_root / asset_class.directory).mkdir(parents=True, exist_ok=True)

    def validate(self, content_type: str | None, size: int | None) -> None:
        """Reject by declared type and size; never looks at the bytes."""

        declared = (content_type or "").split(";", 1)[0].strip().lower()
        if declared not in self.allowed_types:
            raise UnsupportedMediaError()
        if size is not None and size > self.max_bytes:
            limit_mb = self.max_bytes // (1024 * 1024)
            raise FileTooLargeError(f"File is too large. Maximum size is {limit_mb} MB.")

    async def read_upload(self, upload: UploadFile | None) -> bytes:
        if upload is None or not upload.filename:
            raise NoFileError()
        self.validate(upload.content_type, upload.size)
        data = await upload.read(self.max_bytes + 1)
        self.validate(upload.content_type, len(data))
        if not data:
            raise NoFileError()
        return data

    def url_for(self, asset_class: AssetClass, filename: str) -> str:
        return f"{self.url_prefix}/{asset_class.directory}/{filename}"

    def path_for_url(self, url: str | None) -> Path | None:
        """Map a stored asset URL back to its file, or ``None`` if it is not ours."""

        if not url or not url.startswith(self.url_prefix + "/"):
            return None
        relative = PurePosixPath(url[len(self.url_prefix) + 1 :])
        if relative.is_absolute() or ".." in relative.parts:
            return None
        root = self.upload_root.resolve()
        candidate = (root / relative).resolve()
        if not candidate.is_relative_to(root):
            return None
        return candidate

    async def store_bytes(self, data: bytes, asset_class: AssetClass) -> str:
        normalized = await run_in_threadpool(normalize_image, data, asset_class.size, self.quality)
        filename = secrets.token_hex(16) + CANONICAL_EXTENSION
        target = self.upload_root / asset_class.directory / filename
        try:
            await run_in_threadpool(write_atomic, target, normalized)
        except OSError as exc:
            logger.error("Failed to write %s image to %s: %s", asset_class.name, target, exc)
            raise ImageProcessingError("Could not save image. Please try again.") from exc
        logger.info("Stored %s image %s (%d bytes)", asset_class.name, filename, len(normalized))
        return self.url_for(asset_class, filename)

    async def store(self, upload: UploadFile | None, asset_class: AssetClass) -> str:
        data = await self.read_upload(upload)
        return await self.store_bytes(data, asset_class)
