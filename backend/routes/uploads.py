"""Image upload endpoint."""

from fastapi import APIRouter, HTTPException

from backend import runtime
from backend.uploads import UploadError, save_data_url

from .models import UploadBody

router = APIRouter()


@router.post("/upload")
async def upload_image(body: UploadBody):
    """Store a base64 image data URL and return its public path."""
    try:
        path = save_data_url(runtime.config().upload_dir, body.data_url, body.filename)
    except UploadError as e:
        raise HTTPException(400, str(e))
    return {"path": path}
