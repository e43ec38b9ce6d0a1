import base64, io, logging, os
from typing import Optional

import httpx
from PIL import Image, UnidentifiedImageError

from .errors import TransportError, ValidationError
from .settings import MAX_UPLOAD_BYTES

logger = logging.getLogger(__name__)


def write_bytes(path: str, data: bytes):
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)


def bytes_to_data_uri(data: bytes, max_bytes: int = MAX_UPLOAD_BYTES) -> str:
    if not data:
        raise ValidationError("Please upload an image first")
    if len(data) > max_bytes:
        raise ValidationError(f"Please select an image smaller than {max_bytes // (1024 * 1024)}MB")
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = (img.format or "").upper()
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("The uploaded file is not a supported image") from e
    mime = Image.MIME.get(fmt, f"image/{fmt.lower() or 'png'}")
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def image_to_data_uri(path: str, max_bytes: int = MAX_UPLOAD_BYTES) -> str:
    if not os.path.isfile(path):
        raise ValidationError(f"Image not found: {path}")
    if os.path.getsize(path) > max_bytes:
        raise ValidationError(f"Please select an image smaller than {max_bytes // (1024 * 1024)}MB")
    with open(path, "rb") as f:
        return bytes_to_data_uri(f.read(), max_bytes=max_bytes)


async def download_file(url: str, path: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> str:
    logger.info(f"Downloading {url} to {path}")
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    try:
        async with httpx.AsyncClient(timeout=120, transport=transport, follow_redirects=True) as client:
            async with client.stream("GET", url) as r:
                r.raise_for_status()
                with open(path, "wb") as f:
                    async for chunk in r.aiter_bytes(1024 * 1024):
                        f.write(chunk)
    except httpx.HTTPError as e:
        logger.error(f"Download failed for {url}: {e}")
        raise TransportError(f"Download failed: {e}") from e
    logger.info(f"Saved {path}")
    return path
