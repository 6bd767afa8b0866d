"""Product image uploads: validation and storage under the uploads dir."""

import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence

from .config import ALLOWED_IMAGE_EXTENSIONS, MAX_IMAGE_BYTES, MAX_IMAGES
from .errors import UploadError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-z0-9_-]", re.IGNORECASE)


@dataclass
class ImageFile:
    filename: str
    content: bytes


def read_upload(filename: str, stream: BinaryIO) -> ImageFile:
    """Read at most one byte past the size limit so oversized files are never fully buffered."""
    content = stream.read(MAX_IMAGE_BYTES + 1)
    if len(content) > MAX_IMAGE_BYTES:
        raise UploadError(f"Image {filename} is larger than {MAX_IMAGE_BYTES // (1024 * 1024)}MB")
    return ImageFile(filename=filename, content=content)


def validate_images(files: Sequence[ImageFile]) -> None:
    """Reject the whole batch before anything touches the disk."""
    if len(files) > MAX_IMAGES:
        raise UploadError(f"At most {MAX_IMAGES} images allowed")
    for f in files:
        if Path(f.filename or "").suffix.lower() not in ALLOWED_IMAGE_EXTENSIONS:
            raise UploadError("Only images allowed (.png/.jpg/.jpeg/.webp)")
        if len(f.content) > MAX_IMAGE_BYTES:
            raise UploadError(f"Image {f.filename} is larger than {MAX_IMAGE_BYTES // (1024 * 1024)}MB")


def safe_filename(filename: str, stamp_ms: int) -> str:
    """Sanitized base name plus a millisecond stamp, extension lower-cased."""
    path = Path(filename or "image")
    ext = path.suffix.lower()
    base = _UNSAFE_CHARS.sub("_", path.stem) or "image"
    return f"{base}_{stamp_ms}{ext}"


def save_images(
    files: Sequence[ImageFile],
    seller_id: str,
    uploads_dir: Path,
    stamp_ms: Optional[int] = None,
) -> List[str]:
    """Store images for a seller and return their public /uploads paths."""
    validate_images(files)
    if not files:
        return []
    seller_key = _UNSAFE_CHARS.sub("_", seller_id) or "unknown"
    dest = Path(uploads_dir) / "sellers" / seller_key
    dest.mkdir(parents=True, exist_ok=True)
    stamp_ms = stamp_ms if stamp_ms is not None else int(time.time() * 1000)

    web_paths: List[str] = []
    for f in files:
        name = safe_filename(f.filename, stamp_ms)
        target = dest / name
        counter = 1
        while target.exists():
            stem, ext = Path(name).stem, Path(name).suffix
            target = dest / f"{stem}-{counter}{ext}"
            counter += 1
        target.write_bytes(f.content)
        logger.info("Saved upload %s (%d bytes)", target, len(f.content))
        web_paths.append(f"/uploads/sellers/{seller_key}/{target.name}")
    return web_paths
