# Overview: Stores uploaded and generated files under UPLOAD_FOLDER and returns their /uploads URLs.

from __future__ import annotations

import base64
import binascii
import os
import re
import uuid

from flask import current_app
from werkzeug.utils import secure_filename


INVOICE_EXTENSIONS = {"jpg", "jpeg", "png", "gif"}
PROOF_EXTENSIONS = {"jpg", "jpeg", "png"}
MAX_IMAGE_BYTES = 5 * 1024 * 1024

_DATA_URL_RE = re.compile(r"^data:image/(?P<ext>[a-zA-Z0-9+.-]+);base64,(?P<payload>.+)$", re.DOTALL)


class UploadValidationError(Exception):
    """Raised for a missing file, a disallowed extension, or an undecodable payload."""
    pass


class UploadTooLargeError(Exception):
    """Raised when a single file exceeds its per-field limit."""
    pass


def allowed_file(filename: str | None, allowed: set[str]) -> bool:
    return bool(filename) and "." in filename and filename.rsplit(".", 1)[1].lower() in allowed


def _target_dir(subdir: str) -> str:
    path = os.path.join(current_app.config["UPLOAD_FOLDER"], subdir)
    os.makedirs(path, exist_ok=True)
    return path


def _unique_name(prefix: str, ext: str) -> str:
    return secure_filename(f"{prefix}_{uuid.uuid4().hex}.{ext.lower()}")


def _url_for(subdir: str, filename: str) -> str:
    return f"/uploads/{subdir}/{filename}"


def save_bytes(content: bytes, *, subdir: str, ext: str, prefix: str = "file") -> str:
    """Write raw bytes and return the public /uploads URL."""
    filename = _unique_name(prefix, ext)
    with open(os.path.join(_target_dir(subdir), filename), "wb") as fh:
        fh.write(content)
    return _url_for(subdir, filename)


def save_upload(
    file_storage,
    *,
    subdir: str,
    allowed: set[str],
    max_bytes: int = MAX_IMAGE_BYTES,
    prefix: str = "file",
) -> str:
    """
    Save a werkzeug FileStorage from a multipart request.

    Raises:
        UploadValidationError: no filename or disallowed extension
        UploadTooLargeError: file larger than max_bytes
    """
    filename = secure_filename(file_storage.filename or "")
    if not allowed_file(filename, allowed):
        raise UploadValidationError(
            f"Only {', '.join(sorted(allowed))} files are allowed"
        )

    content = file_storage.read()
    if len(content) > max_bytes:
        raise UploadTooLargeError(f"File exceeds {max_bytes // (1024 * 1024)} MB limit")

    ext = filename.rsplit(".", 1)[1]
    return save_bytes(content, subdir=subdir, ext=ext, prefix=prefix)


def save_data_url(
    data_url: str,
    *,
    subdir: str,
    allowed: set[str],
    max_bytes: int = MAX_IMAGE_BYTES,
    prefix: str = "file",
) -> str:
    """Decode a `data:image/<ext>;base64,...` string and save it as a file."""
    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise UploadValidationError("Image must be a base64 data URL")

    ext = match.group("ext").lower()
    if ext == "jpeg":
        ext = "jpg"
    if ext not in allowed:
        raise UploadValidationError(
            f"Only {', '.join(sorted(allowed))} images are allowed"
        )

    try:
        content = base64.b64decode(match.group("payload"), validate=True)
    except (binascii.Error, ValueError):
        raise UploadValidationError("Invalid base64 image data")

    if len(content) > max_bytes:
        raise UploadTooLargeError(f"File exceeds {max_bytes // (1024 * 1024)} MB limit")

    return save_bytes(content, subdir=subdir, ext=ext, prefix=prefix)


def delete_upload(url: str | None) -> None:
    """Best-effort removal of a file previously returned by save_*."""
    if not url or not url.startswith("/uploads/"):
        return
    relative = url[len("/uploads/"):]
    root = os.path.abspath(current_app.config["UPLOAD_FOLDER"])
    path = os.path.abspath(os.path.join(root, relative))
    if not path.startswith(root + os.sep):
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        current_app.logger.warning("Could not remove upload %s: %s", path, exc)
