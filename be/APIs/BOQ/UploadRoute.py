"""
File Upload API Route

Stores installation and survey photos (and supporting documents) under
UPLOAD_DIR and returns their ids for use in ``installation_images`` /
``photos``. Uploaded files are served back from /uploads.
"""
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File
from sqlalchemy.orm import Session
from typing import List
from pathlib import Path
from datetime import datetime
import os
import logging

from APIs.Core import get_current_user, get_db
from Models.Admin.User import User
from Models.BOQ.UploadedFile import UploadedFile
from Schemas.BOQ.LocationSchema import UploadedFileOut
from utils.file_validation import validate_upload_file

logger = logging.getLogger(__name__)

uploadRouter = APIRouter(tags=["Uploads"])

UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", "uploads"))


@uploadRouter.post("/upload", response_model=List[UploadedFileOut], status_code=status.HTTP_201_CREATED)
async def upload_files(
    files: List[UploadFile] = File(..., description="Images or documents to store"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    saved_paths: List[Path] = []
    records: List[UploadedFile] = []

    try:
        for upload in files:
            content = await validate_upload_file(upload)

            timestamp = datetime.utcnow().strftime('%Y%m%d_%H%M%S_%f')
            safe_filename = f"{timestamp}_{Path(upload.filename).name}"
            file_path = UPLOAD_DIR / safe_filename
            with open(file_path, "wb") as buffer:
                buffer.write(content)
            saved_paths.append(file_path)

            record = UploadedFile(
                name=upload.filename,
                file_path=str(file_path),
                url=f"/uploads/{safe_filename}",
                mime=upload.content_type,
                size=len(content),
                uploaded_by=current_user.id
            )
            db.add(record)
            records.append(record)

        db.commit()
        for record in records:
            db.refresh(record)

    except HTTPException:
        db.rollback()
        for path in saved_paths:
            path.unlink(missing_ok=True)
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"File upload error: {e}")
        for path in saved_paths:
            path.unlink(missing_ok=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error uploading files: {str(e)}"
        )

    logger.info(f"User {current_user.id} uploaded {len(records)} file(s)")
    return [UploadedFileOut.model_validate(r) for r in records]
