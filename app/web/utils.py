"""
Upload helpers for the import API.

Extension checks live in app.imports.detect, which knows the accepted types
for each data source; this module only bounds the size and cleans the name.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import HTTPException, UploadFile

CHUNK_SIZE = 1024 * 1024


def sanitize_filename(filename: str) -> str:
    """Strip directories and control characters from a client-supplied name."""
    name = Path(filename.replace("\\", "/")).name
    return "".join(ch for ch in name if ch.isprintable())


async def read_report_upload(file: UploadFile, max_size: int, label: str = "Report file") -> tuple[str, bytes]:
    """
    Read an uploaded broker report.

    Args:
        file: The uploaded file
        max_size: Maximum size in bytes
        label: Noun used in error messages

    Returns:
        (sanitized filename, content)

    Raises:
        HTTPException: 400 when the name is missing or the file is empty, 413 when too large
    """
    filename = sanitize_filename(file.filename or "")
    if not filename:
        raise HTTPException(status_code=400, detail=f"{label} name is required")

    chunks: list[bytes] = []
    size = 0
    while True:
        chunk = await file.read(CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        if size > max_size:
            raise HTTPException(
                status_code=413,
                detail=f"{label} too large: more than {max_size / (1024 * 1024):.0f} MB",
            )
        chunks.append(chunk)

    if not size:
        raise HTTPException(status_code=400, detail=f"{label} is empty")
    return filename, b"".join(chunks)
