import re
import uuid
import aiofiles
import aiofiles.os
from io import BytesIO
from pathlib import Path
from typing import Optional
from PIL import Image, UnidentifiedImageError
import logging

from app.core.config import settings
from app.core.exceptions import StorageError, ValidationError
from app.schemas.inventory.count_schema import PhotoUpload

logger = logging.getLogger(__name__)

FORMAT_EXTENSIONS = {
    "JPEG": "jpg",
    "PNG": "png",
    "WEBP": "webp",
    "GIF": "gif",
    "BMP": "bmp",
    "TIFF": "tiff",
}

class PhotoStorageService:
    """Stores count evidence photos under {upload_dir}/{bucket}/{event}/{warehouse}/"""

    def __init__(self, upload_dir: Optional[str] = None, bucket: Optional[str] = None, max_size: Optional[int] = None):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_PATH)
        self.bucket = bucket or settings.PHOTO_BUCKET
        self.max_size = max_size or settings.MAX_PHOTO_SIZE

    @property
    def bucket_dir(self) -> Path:
        return self.upload_dir / self.bucket

    def validate_image(self, photo: PhotoUpload) -> str:
        """Check size and that Pillow can read the image; returns the file extension"""
        if not photo.data:
            raise ValidationError("Photo is empty")
        if len(photo.data) > self.max_size:
            raise ValidationError(f"Photo too large. Max: {self.max_size // (1024 * 1024)}MB")

        try:
            with Image.open(BytesIO(photo.data)) as img:
                image_format = img.format
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
            raise ValidationError("Photo is not a readable image")

        # The detected format wins over whatever name the client sent
        if image_format in FORMAT_EXTENSIONS:
            return FORMAT_EXTENSIONS[image_format]
        extension = photo.extension
        if not re.fullmatch(r"[a-z0-9]{1,8}", extension or ""):
            extension = "jpg"
        return extension

    def build_path(self, event_id: int, warehouse_code: str, extension: str) -> str:
        if not re.fullmatch(r"[A-Za-z0-9_-]+", warehouse_code):
            raise ValidationError("Invalid warehouse code for photo path")
        return f"{event_id}/{warehouse_code}/{uuid.uuid4()}.{extension}"

    async def save_photo(self, photo: PhotoUpload, event_id: int, warehouse_code: str) -> str:
        """Write the photo and return its path inside the bucket"""
        extension = self.validate_image(photo)
        photo_path = self.build_path(event_id, warehouse_code, extension)
        file_path = self.bucket_dir / photo_path

        try:
            await aiofiles.os.makedirs(file_path.parent, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(photo.data)
        except OSError as e:
            logger.error(f"❌ Error saving photo {photo_path}: {e}")
            raise StorageError("Failed to store photo")

        logger.info(f"📷 Stored photo {self.bucket}/{photo_path} ({len(photo.data)} bytes)")
        return photo_path

    async def delete_photo(self, photo_path: str) -> bool:
        """Remove a stored photo; used to clean up after a failed insert"""
        file_path = self.bucket_dir / photo_path
        try:
            await aiofiles.os.remove(file_path)
            logger.info(f"🗑️ Removed orphaned photo {photo_path}")
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"❌ Error deleting photo {photo_path}: {e}")
            return False

def get_photo_storage() -> PhotoStorageService:
    return PhotoStorageService()
