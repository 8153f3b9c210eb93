"""File persistence for fantasy map images and generated pictures."""

import logging
import time
import uuid
from pathlib import Path
from typing import Optional, Union

from ..models.generation import SaveResult
from ..utils.image_utils import decode_image, image_to_png_bytes, load_image, save_image

logger = logging.getLogger(__name__)


class FantasyMapStorage:
    """Keeps private PNG copies of imported fantasy map images."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def save_map_image(self, source: Union[str, Path, bytes]) -> Optional[str]:
        """
        Store a copy of a map image as PNG.

        Args:
            source: Path to an image file, or raw image bytes

        Returns:
            Absolute path of the stored copy, or None if the source is unreadable
        """
        try:
            if isinstance(source, bytes):
                image = decode_image(source)
            else:
                image = load_image(source)
        except (OSError, ValueError) as e:
            logger.warning("Could not read fantasy map image: %s", e)
            return None

        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"{uuid.uuid4()}.png"
        path.write_bytes(image_to_png_bytes(image))
        logger.info("Stored fantasy map image %s (%dx%d)", path.name, image.width, image.height)
        return str(path.resolve())

    def load_map_bytes(self, path: Union[str, Path]) -> Optional[bytes]:
        """Read a stored map image, or None if it is missing."""
        path = Path(path)
        if not path.exists():
            logger.warning("Fantasy map image missing: %s", path)
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            logger.warning("Could not read fantasy map image %s: %s", path, e)
            return None

    def delete_map_image(self, path: Union[str, Path]) -> bool:
        """Delete a stored map image. A file that is already gone counts as deleted."""
        path = Path(path)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not delete fantasy map image %s: %s", path, e)
            return False
        return True


def timestamped_filename(prefix: str, extension: str = "png") -> str:
    """Filename like 'StreetGen_1718031234567.png'."""
    return f"{prefix}_{int(time.time() * 1000)}.{extension}"


class GalleryService:
    """Saves generated images to the user's pictures directory."""

    def __init__(self, directory: Union[str, Path], prefix: str = "StreetGen"):
        self.directory = Path(directory)
        self.prefix = prefix

    def save(self, image_bytes: bytes) -> tuple[SaveResult, Optional[Path]]:
        """
        Write an image as PNG under a timestamped name.

        Returns:
            (SaveResult, path written or None)
        """
        try:
            path = self.directory / timestamped_filename(self.prefix)
            save_image(decode_image(image_bytes), path)
        except (OSError, ValueError) as e:
            logger.warning("Saving image to gallery failed: %s", e)
            return SaveResult.FAILED, None

        logger.info("Saved image to %s", path)
        return SaveResult.SUCCESS, path
