"""
Upload validation and storage.
Files go to Cloudinary when it is configured, otherwise to the local upload directory.
"""

import asyncio
import io
import logging
import uuid
from pathlib import Path
from typing import List, Optional

import aiofiles
import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from app.config import get_settings
from app.utils.exceptions import (
    ExternalServiceError,
    FileSizeExceededError,
    FileUploadError,
    UnsupportedFileTypeError,
)

settings = get_settings()
logger = logging.getLogger(__name__)


class FileValidator:
    """Checks uploads against the accepted media types and size limit."""

    ALLOWED_PREFIXES = ("image/", "video/")
    ALLOWED_EXACT = ("application/pdf",)

    @classmethod
    def supported_types(cls) -> List[str]:
        return ["image/*", "video/*", *cls.ALLOWED_EXACT]

    @classmethod
    def validate_content_type(cls, content_type: Optional[str]) -> str:
        content_type = (content_type or "").lower()
        if content_type in cls.ALLOWED_EXACT or content_type.startswith(cls.ALLOWED_PREFIXES):
            return content_type
        raise UnsupportedFileTypeError(content_type or "unknown", cls.supported_types())

    @classmethod
    def validate_size(cls, size: int, max_size: Optional[int] = None) -> int:
        limit = max_size or settings.max_upload_size
        if size <= 0:
            raise FileUploadError("File is empty")
        if size > limit:
            raise FileSizeExceededError(size, limit)
        return size

    @staticmethod
    def validate_image_content(content: bytes) -> None:
        """Make sure bytes declared as an image actually decode as one."""
        try:
            with Image.open(io.BytesIO(content)) as img:
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise FileUploadError(f"Invalid image file: {e}")

    @classmethod
    async def read_validated(cls, file: UploadFile) -> bytes:
        """
        Read an upload fully and validate it.

        Raises:
            FileUploadError, UnsupportedFileTypeError, FileSizeExceededError
        """
        if file is None or not file.filename:
            raise FileUploadError("No file uploaded")
        content_type = cls.validate_content_type(file.content_type)
        await file.seek(0)
        content = await file.read()
        cls.validate_size(len(content))
        if content_type.startswith("image/") and content_type != "image/svg+xml":
            cls.validate_image_content(content)
        return content


class FileStorage:
    """Stores uploaded bytes and returns a public URL."""

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir or settings.upload_dir)

    @staticmethod
    def unique_name(original_filename: str) -> str:
        return f"{uuid.uuid4()}{Path(original_filename or '').suffix.lower()}"

    async def save(self, file: UploadFile, folder: str) -> str:
        """Validate and store one upload under `folder`, returning its URL."""
        content = await FileValidator.read_validated(file)
        if settings.cloudinary_configured:
            return await self._upload_to_cloudinary(content, folder, file.content_type or "")
        return await self._save_locally(content, folder, file.filename)

    async def save_many(self, files: List[UploadFile], folder: str) -> List[str]:
        return [await self.save(f, folder) for f in files if f is not None and f.filename]

    async def _upload_to_cloudinary(self, content: bytes, folder: str, content_type: str) -> str:
        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True,
        )
        resource_type = "video" if content_type.startswith("video/") else "auto"
        try:
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                content,
                folder=f"{settings.cloudinary_folder}/{folder}",
                resource_type=resource_type,
            )
        except cloudinary.exceptions.Error as e:
            logger.error(f"Cloudinary upload failed: {e}")
            raise ExternalServiceError("Cloudinary", str(e))
        return result["secure_url"]

    async def _save_locally(self, content: bytes, folder: str, filename: str) -> str:
        target_dir = self.base_dir / folder
        target_dir.mkdir(parents=True, exist_ok=True)
        name = self.unique_name(filename)
        async with aiofiles.open(target_dir / name, "wb") as f:
            await f.write(content)
        logger.info(f"Stored upload locally: {folder}/{name}")
        return f"{settings.uploads_url_path}/{folder}/{name}"


file_storage = FileStorage()
