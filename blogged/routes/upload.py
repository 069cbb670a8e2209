"""
Blogged Backend — Image Upload Route
=====================================

What:  POST /api/upload accepts one image as multipart field `file` (or
       `image`) and returns the URL it is served under.

Request Flow:
    1. TokenAuthMiddleware resolves the caller; anonymous uploads get 401
    2. FastAPI parses the multipart body into an UploadFile
    3. FileService validates extension, content type, size and the
       detected type of the bytes, then stores
    4. Response: {url, message}
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from pydantic import BaseModel

from blogged.exceptions import ValidationError
from blogged.middleware.auth import get_current_identity
from blogged.schemas.auth import TokenIdentity
from blogged.schemas.common import ErrorResponse
from blogged.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Upload"])


class UploadResponse(BaseModel):
    url: str
    message: str


@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Not an image, empty or too large", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Upload an image",
    description="Accepts PNG, JPEG, GIF or WebP up to MAX_FILE_SIZE bytes.",
)
async def upload_image(
    file: Optional[UploadFile] = File(default=None, description="Image file"),
    image: Optional[UploadFile] = File(default=None, description="Alias of `file`"),
    identity: TokenIdentity = Depends(get_current_identity),
) -> UploadResponse:
    upload = file or image
    if upload is None:
        raise ValidationError(message="No file uploaded", field="file")

    try:
        content = await upload.read()
        url = await file_service.save_image(upload.filename, upload.content_type, content)
    finally:
        await upload.close()

    logger.info("User %s uploaded %s", identity.user_id, url)
    return UploadResponse(url=url, message="File uploaded successfully")
