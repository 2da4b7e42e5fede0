# Overview: Hosted document storage (Cloudinary) for generated bills.

"""
Document Store

Thin wrapper over the Cloudinary SDK. Every SDK failure is re-raised as
StorageError so callers only handle one exception type.

URL RULES:
- Stored URLs are Cloudinary secure_url values
- The forced-download variant injects the fl_attachment flag after /upload/,
  which keeps version, public_id and extension intact
"""

from __future__ import annotations

import io
import re
import time
from dataclasses import dataclass

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from flask import current_app


UPLOAD_SEGMENT = "/upload/"
DOWNLOAD_SEGMENT = "/upload/fl_attachment/"
_PUBLIC_ID_RE = re.compile(r"/v\d+/(.+)\.[a-z]+$", re.IGNORECASE)


class StorageError(Exception):
    """Raised when the document store rejects or fails an operation."""
    pass


@dataclass(frozen=True)
class UploadResult:
    secure_url: str
    public_id: str
    resource_type: str


def _configure() -> None:
    cfg = current_app.config
    if not cfg.get("CLOUDINARY_CLOUD_NAME"):
        raise StorageError("CLOUDINARY_CLOUD_NAME is not configured")
    cloudinary.config(
        cloud_name=cfg["CLOUDINARY_CLOUD_NAME"],
        api_key=cfg.get("CLOUDINARY_API_KEY"),
        api_secret=cfg.get("CLOUDINARY_API_SECRET"),
        secure=True,
    )


def _to_result(result: dict) -> UploadResult:
    try:
        return UploadResult(
            secure_url=result["secure_url"],
            public_id=result["public_id"],
            resource_type=result.get("resource_type", "raw"),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise StorageError(f"Unexpected upload response: {result!r}") from e


def upload_bill(pdf_bytes: bytes, folder: str | None = None) -> UploadResult:
    """Upload a rendered bill as a raw asset named bill_<millis>.pdf."""
    if not pdf_bytes:
        raise StorageError("Refusing to upload an empty document")

    _configure()
    folder = folder or current_app.config["BILL_UPLOAD_FOLDER"]
    try:
        result = cloudinary.uploader.upload(
            io.BytesIO(pdf_bytes),
            folder=folder,
            resource_type="raw",
            public_id=f"bill_{int(time.time() * 1000)}.pdf",
            use_filename=True,
            unique_filename=False,
        )
    except (CloudinaryError, OSError) as e:
        raise StorageError(f"Bill upload failed: {e}") from e

    return _to_result(result)


def upload_file(path: str, folder: str = "stockflow_uploads") -> UploadResult:
    """Upload a local file, letting Cloudinary detect its type."""
    _configure()
    try:
        result = cloudinary.uploader.upload(path, folder=folder, resource_type="auto")
    except (CloudinaryError, OSError) as e:
        raise StorageError(f"File upload failed: {e}") from e
    return _to_result(result)


def delete_asset(public_id: str, resource_type: str = "raw") -> bool:
    """Delete an asset. Returns True only when Cloudinary reports 'ok'."""
    _configure()
    try:
        result = cloudinary.uploader.destroy(public_id, resource_type=resource_type)
    except (CloudinaryError, OSError) as e:
        raise StorageError(f"Delete failed: {e}") from e
    return result.get("result") == "ok"


def get_download_url(url: str | None) -> str | None:
    """Forced-download variant of a stored URL (None stays None)."""
    if not url:
        return None
    if DOWNLOAD_SEGMENT in url:
        return url
    return url.replace(UPLOAD_SEGMENT, DOWNLOAD_SEGMENT, 1)


def extract_public_id(url: str | None) -> str | None:
    """Public id from a versioned Cloudinary URL, e.g. .../v123/folder/name.pdf."""
    if not url:
        return None
    match = _PUBLIC_ID_RE.search(url)
    return match.group(1) if match else None
