"""
Image hosting through Cloudinary.

The API only needs "store these bytes, give back a stable public URL", so
this module is a thin wrapper around `cloudinary.uploader.upload`.
"""

import io
import logging
import os
import re

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

cloudinary.config(
    cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
    api_key=os.getenv("CLOUDINARY_API_KEY"),
    api_secret=os.getenv("CLOUDINARY_API_SECRET"),
    secure=True,
)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
UPLOAD_ROOT = "portfolio"
DEFAULT_FOLDER = "general"

_FOLDER_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def folder_path(folder: str) -> str:
    folder = (folder or DEFAULT_FOLDER).strip()
    if not _FOLDER_RE.match(folder):
        raise ValidationError("Invalid upload folder")
    return f"{UPLOAD_ROOT}/{folder}"


def upload_image(data: bytes, folder: str = DEFAULT_FOLDER) -> dict:
    target = folder_path(folder)
    try:
        result = cloudinary.uploader.upload(
            io.BytesIO(data),
            folder=target,
            resource_type="image",
            transformation=[{"quality": "auto", "fetch_format": "auto"}],
        )
    except CloudinaryError as e:
        logger.error("Upload to %s failed: %s", target, e)
        raise UpstreamError(str(e) or "Upload failed")
    return {
        "url": result["secure_url"],
        "publicId": result["public_id"],
        "width": result.get("width"),
        "height": result.get("height"),
    }
