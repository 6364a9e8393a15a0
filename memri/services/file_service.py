"""File handling service for photo uploads."""
import logging
import secrets
import time
from io import BytesIO
from pathlib import Path
from typing import Optional, Tuple

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from memri.config import settings

logger = logging.getLogger(__name__)

ALLOWED_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}

# Pillow format name -> stored extension
FORMAT_EXTENSIONS = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "GIF": ".gif",
    "WEBP": ".webp",
}


class FileService:
    """Service for storing uploaded images on disk and serving them under /uploads."""

    def __init__(self, upload_dir: Optional[str] = None, max_bytes: Optional[int] = None):
        self.upload_dir = Path(upload_dir or settings.upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.max_bytes = max_bytes or settings.upload_max_bytes

    @staticmethod
    def generate_file_name(extension: str) -> str:
        """Unique name like ``photo-1743260503114-360974261.jpg``."""
        timestamp = int(time.time() * 1000)
        random_part = secrets.randbelow(1_000_000_000)
        return f"photo-{timestamp}-{random_part}{extension}"

    async def save_photo(self, file: UploadFile) -> Tuple[str, str]:
        """
        Validate and save an uploaded image.

        Args:
            file: Uploaded file from FastAPI

        Returns:
            (file name, public URL path)

        Raises:
            ValueError: If the file type, size or content is invalid
        """
        if file.content_type not in ALLOWED_TYPES:
            raise ValueError("Only image files are allowed")

        contents = await file.read()
        if not contents:
            raise ValueError("Uploaded file is empty")
        if len(contents) > self.max_bytes:
            raise ValueError(f"File too large (max {self.max_bytes // (1024 * 1024)}MB)")

        image_format = self._verify_image(contents)
        extension = FORMAT_EXTENSIONS.get(image_format)
        if extension is None:
            raise ValueError("Only image files are allowed")

        # The client filename never decides the extension
        file_name = self.generate_file_name(extension)
        with open(self.upload_dir / file_name, "wb") as f:
            f.write(contents)

        logger.info("Saved upload %s (%d bytes)", file_name, len(contents))
        return file_name, self.get_file_url(file_name)

    @staticmethod
    def _verify_image(contents: bytes) -> Optional[str]:
        """Return the format Pillow detects, rejecting bytes it cannot parse."""
        try:
            with Image.open(BytesIO(contents)) as img:
                img.verify()
                return img.format
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ValueError("Uploaded file is not a valid image") from e

    def delete_file(self, file_name: str) -> bool:
        """
        Delete a stored upload.

        Returns:
            True if deleted, False if the file was not there
        """
        path = self.upload_dir / Path(file_name).name
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Error deleting file %s: %s", path, e)
            return False

    def get_file_url(self, file_name: str) -> str:
        return f"/uploads/{file_name}"
