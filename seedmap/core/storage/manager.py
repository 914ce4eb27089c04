"""
Storage Manager
===============

Filesystem storage for generated map images.
Files are written asynchronously with aiofiles and served by the API as
static files under the public base URL.
"""

from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
from pathlib import Path

import aiofiles  # type: ignore
import aiofiles.os  # type: ignore

from seedmap.config.logging import get_logger
from seedmap.config.settings import get_settings

logger = get_logger(__name__)

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg")
PUBLIC_PREFIX = "generated-maps"


class StorageError(Exception):
    """Exception raised when a storage operation fails."""

    pass


def format_file_size(size_bytes: int) -> str:
    """Format a byte count as a human readable string."""
    if size_bytes <= 0:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size_bytes)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"


class FileStorageManager:
    """Local directory storage for generated map images."""

    def __init__(self, base_path: Optional[Path] = None, base_url: Optional[str] = None):
        settings = get_settings()
        self.base_path = Path(base_path or settings.storage_path)
        self.base_url = (base_url or settings.public_base_url).rstrip("/")
        self.logger: Any = logger.bind(component="storage_manager")

    async def initialize(self) -> None:
        """Create the storage directory if needed."""
        if not await aiofiles.os.path.isdir(self.base_path):
            await aiofiles.os.makedirs(self.base_path, exist_ok=True)
            self.logger.info("Created storage directory", directory=str(self.base_path))

    def get_path(self, filename: str) -> Path:
        """Resolve a filename inside the storage directory."""
        if not filename or "/" in filename or "\\" in filename or filename in (".", ".."):
            raise StorageError(f"Invalid filename: {filename!r}")
        return self.base_path / filename

    def get_url(self, filename: str) -> str:
        """Public URL of a stored image."""
        return f"{self.base_url}/{PUBLIC_PREFIX}/{filename}"

    async def put(self, data: bytes, filename: str) -> str:
        """
        Store image bytes under a filename.

        Args:
            data: Encoded image bytes
            filename: Target filename

        Returns:
            Public URL of the stored image

        Raises:
            StorageError: If the file cannot be written
        """
        file_path = self.get_path(filename)
        try:
            await self.initialize()
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(data)
        except Exception as e:
            self.logger.error("Failed to save image", filename=filename, error=str(e))
            raise StorageError(f"Failed to save image {filename}: {e}")

        self.logger.info(
            "Image saved successfully",
            filename=filename,
            file_path=str(file_path),
            file_size=format_file_size(len(data)),
            size_bytes=len(data),
        )
        return self.get_url(filename)

    async def exists(self, filename: str) -> bool:
        """Check whether an image exists."""
        try:
            return await aiofiles.os.path.isfile(self.get_path(filename))
        except StorageError:
            return False

    async def get_stats(self, filename: str) -> Optional[Dict[str, Any]]:
        """Get size and timestamps of a stored image, or None if it is missing."""
        try:
            stat = await aiofiles.os.stat(self.get_path(filename))
        except (OSError, StorageError) as e:
            self.logger.warning("Failed to get image stats", filename=filename, error=str(e))
            return None

        return {
            "size": stat.st_size,
            "size_formatted": format_file_size(stat.st_size),
            "created": datetime.fromtimestamp(stat.st_ctime, tz=timezone.utc),
            "modified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        }

    async def delete(self, filename: str) -> bool:
        """Delete an image. A missing file counts as deleted."""
        try:
            await aiofiles.os.remove(self.get_path(filename))
        except FileNotFoundError:
            self.logger.info("Image file not found for deletion", filename=filename)
            return True
        except (OSError, StorageError) as e:
            self.logger.error("Failed to delete image", filename=filename, error=str(e))
            return False

        self.logger.info("Image deleted successfully", filename=filename)
        return True

    async def list_images(self) -> List[Dict[str, Any]]:
        """List stored images with their stats."""
        await self.initialize()
        names = await aiofiles.os.listdir(self.base_path)

        images = []
        for name in sorted(names):
            if not name.lower().endswith(IMAGE_EXTENSIONS):
                continue
            stats = await self.get_stats(name)
            if stats is not None:
                images.append({"filename": name, **stats})
        return images

    async def get_storage_info(self) -> Dict[str, Any]:
        """Summarize storage usage."""
        try:
            images = await self.list_images()
        except OSError as e:
            self.logger.error("Failed to get storage info", error=str(e))
            images = []

        total_size = sum(image["size"] for image in images)
        return {
            "total_files": len(images),
            "total_size_bytes": total_size,
            "total_size_formatted": format_file_size(total_size),
        }
