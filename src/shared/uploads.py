import re
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

import azure.functions as func
from PIL import Image, UnidentifiedImageError

from src.shared.settings import Settings
from src.shared.url_migration import build_image_url
from src.specs.common.datetime_utils import now_ms
from src.specs.common.errors import UploadError

UPLOAD_FIELD = "poster"


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ImageDetails:
    format: str
    content_type: str
    width: int
    height: int


def generate_unique_file_name(original_name: str, prefix: str = "posters/", timestamp_ms: Optional[int] = None) -> str:
    """posters/{epochMillis}-{name}, with directories dropped and whitespace runs turned into '-'."""
    name = re.split(r"[\\/]", original_name or "")[-1].strip() or "poster"
    name = re.sub(r"\s+", "-", name)
    return f"{prefix}{timestamp_ms if timestamp_ms is not None else now_ms()}-{name}"


def extract_file_from_request(req: func.HttpRequest, max_bytes: int) -> UploadedFile:
    """Pull the ``poster`` multipart field out of the request and enforce the size limit."""
    upload = req.files.get(UPLOAD_FIELD)
    if upload is None or not getattr(upload, "filename", None):
        raise UploadError("No file uploaded or the file format is not supported", details={"field": UPLOAD_FIELD})

    data = upload.read()
    if not data:
        raise UploadError("Uploaded file is empty", details={"filename": upload.filename})
    if len(data) > max_bytes:
        raise UploadError(
            f"File exceeds the {max_bytes // (1024 * 1024)}MB limit",
            details={"size": len(data), "maxBytes": max_bytes},
        )
    return UploadedFile(filename=upload.filename, content_type=upload.mimetype or None, data=data)


def inspect_image(data: bytes) -> ImageDetails:
    """Verify the bytes decode as an image and report format and dimensions."""
    try:
        with Image.open(BytesIO(data)) as img:
            fmt = img.format or ""
            width, height = img.size
            img.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        raise UploadError("Uploaded file is not a supported image", details={"reason": str(e)}) from e
    return ImageDetails(
        format=fmt,
        content_type=Image.MIME.get(fmt, "application/octet-stream"),
        width=width,
        height=height,
    )


def get_object_url(settings: Settings, key: str) -> str:
    return build_image_url(settings.public_api_base_url, key)
