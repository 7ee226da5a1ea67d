"""
app/api/dependencies.py

Shared FastAPI dependencies for tracker uploads.
"""

from __future__ import annotations

from fastapi import File, HTTPException, UploadFile, status

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Accept an upload whose extension or MIME type marks it as CSV.

    Spreadsheet exports (.xlsx) must be saved as CSV before upload.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").split(";", 1)[0].strip().lower()

    if not filename.endswith(".csv") and content_type not in CSV_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return file
