"""
File Upload Validation Utilities

Provides size and type checks for uploads plus CSV decoding for the bulk
import endpoints.
"""

import csv
import io
import logging
from pathlib import Path
from typing import Dict, List

from fastapi import HTTPException, UploadFile

logger = logging.getLogger(__name__)

MAX_CSV_FILE_SIZE = 50 * 1024 * 1024  # 50 MB for CSV files
MAX_UPLOAD_FILE_SIZE = 10 * 1024 * 1024  # 10 MB for images / documents

ALLOWED_UPLOAD_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp', '.pdf', '.doc', '.docx'}

CSV_ENCODINGS = ['utf-8-sig', 'utf-8', 'latin-1', 'windows-1252']


async def validate_csv_file(file: UploadFile, max_size: int = MAX_CSV_FILE_SIZE) -> None:
    """
    Validate CSV file upload.

    Raises:
        HTTPException: If validation fails
    """
    if not file.filename or not file.filename.lower().endswith('.csv'):
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only CSV files are allowed."
        )

    content = await file.read()
    file_size = len(content)

    if file_size > max_size:
        max_mb = max_size / (1024 * 1024)
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {max_mb:.0f} MB."
        )

    if file_size == 0:
        raise HTTPException(status_code=400, detail="File is empty.")

    # Reset file pointer after reading
    await file.seek(0)


async def validate_upload_file(file: UploadFile, max_size: int = MAX_UPLOAD_FILE_SIZE) -> bytes:
    """Validate an image/document upload and return its content."""
    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in ALLOWED_UPLOAD_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type '{suffix or '?'}'. Allowed: {', '.join(sorted(ALLOWED_UPLOAD_EXTENSIONS))}"
        )

    content = await file.read()
    if len(content) > max_size:
        max_mb = max_size / (1024 * 1024)
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {max_mb:.0f} MB."
        )
    if not content:
        raise HTTPException(status_code=400, detail="File is empty.")
    return content


def read_csv_rows(content: bytes) -> List[Dict[str, str]]:
    """Decode CSV bytes and return rows with stripped keys and values."""
    csv_text = None
    for encoding in CSV_ENCODINGS:
        try:
            csv_text = content.decode(encoding)
            logger.info(f"Decoded CSV with encoding: {encoding}")
            break
        except UnicodeDecodeError:
            continue

    if csv_text is None:
        raise HTTPException(
            status_code=400,
            detail="Unable to decode CSV file. Please ensure the file is in a supported encoding (UTF-8, Latin-1, Windows-1252)"
        )

    reader = csv.DictReader(io.StringIO(csv_text))
    rows = []
    for row in reader:
        rows.append({
            (key or "").strip(): value.strip() if isinstance(value, str) else value
            for key, value in row.items()
        })
    return rows
