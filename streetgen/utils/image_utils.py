"""Image encoding utilities."""

from io import BytesIO
from pathlib import Path
from typing import Union

from PIL import Image, UnidentifiedImageError


def decode_image(data: bytes) -> Image.Image:
    """Decode image bytes in any Pillow-supported format.

    Raises:
        ValueError: If the bytes are not a readable image
    """
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Could not decode image: {e}") from e
    return image


def load_image(path: Union[str, Path]) -> Image.Image:
    """Load an image from file."""
    return Image.open(path).convert("RGBA")


def save_image(image: Image.Image, path: Union[str, Path]) -> None:
    """Save an image to file, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path)


def image_to_png_bytes(image: Image.Image) -> bytes:
    """Encode an image as PNG."""
    buf = BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def prepare_reference_png(data: bytes, max_size: int = 2048) -> bytes:
    """
    Re-encode a reference image as PNG, shrinking it to fit the model limit.

    Args:
        data: Source image bytes (map capture or fantasy map)
        max_size: Longest allowed side in pixels

    Returns:
        PNG bytes
    """
    image = decode_image(data)
    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA")

    if image.width > max_size or image.height > max_size:
        image = image.copy()
        image.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)

    return image_to_png_bytes(image)
