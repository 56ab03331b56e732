"""Image uploads from the UI, stored under the upload directory.

Accepts `data:image/<type>;base64,<payload>` URLs. The stored name is the
sanitised original name plus a random hex suffix, so uploads never overwrite
each other.
"""

import base64
import binascii
import re
import secrets
from pathlib import Path

_DATA_URL_RE = re.compile(r"^data:(image/[a-zA-Z0-9.+-]+);base64,(.+)$", re.DOTALL)

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


class UploadError(ValueError):
    """Raised for a missing or undecodable data URL."""


def sanitize_name(name: str) -> str:
    """Strip everything but letters, digits, dash and underscore."""
    return re.sub(r"[^a-zA-Z0-9_-]", "", Path(name).stem) or "image"


def save_data_url(upload_dir: Path, data_url: str, filename: str = "") -> str:
    """Decode and store an image. Returns its public path under /assets/uploads."""
    if not data_url:
        raise UploadError("Missing dataUrl")
    match = _DATA_URL_RE.match(data_url)
    if not match:
        raise UploadError("Invalid data URL")
    mime, payload = match.group(1), match.group(2)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise UploadError("Invalid data URL") from e

    ext = _EXTENSIONS.get(mime.lower(), ".png")
    name = f"{sanitize_name(filename or 'image')}-{secrets.token_hex(6)}{ext}"
    upload_dir.mkdir(parents=True, exist_ok=True)
    (upload_dir / name).write_bytes(data)
    return f"/assets/uploads/{name}"
