"""
Uploads router — stores a file and hands back the path other records keep.

Endpoint: POST /api/uploads  (multipart: file, kind)
- kind is one of cover-letter, resume, profile-resume, avatar
- documents must be PDFs, avatars must be images, 5MB max
"""

from fastapi import APIRouter, Depends, File, Form, UploadFile

from internhub.schemas import UploadKind, UploadOut
from internhub.security import Caller, get_caller
from internhub.services.storage import save_upload, validate_upload

router = APIRouter()


@router.post("/uploads", response_model=UploadOut, status_code=201)
async def upload_file(file: UploadFile = File(...), kind: UploadKind = Form(...),
                      caller: Caller = Depends(get_caller)):
    data = await file.read()
    filename = file.filename or "upload"

    validate_upload(kind, filename, file.content_type, data)
    path, stored_name = save_upload(kind, filename, data)
    return UploadOut(path=path, file_name=stored_name)
