"""Upload size guards for multipart endpoints."""

from __future__ import annotations

from os import SEEK_END

from fastapi import HTTPException, Request, UploadFile
from starlette.concurrency import run_in_threadpool

# Boundaries, part headers and form fields around the file bodies
MULTIPART_OVERHEAD_BYTES = 64 * 1024


def reject_oversized_request(request: Request, *, max_size_bytes: int, file_count: int = 1) -> None:
    """
    413 when Content-Length already rules the body out.

    A missing or malformed header is not an error; per-file sizes are
    checked again after parsing.
    """
    header = request.headers.get("content-length")
    if not header:
        return
    try:
        content_length = int(header)
    except ValueError:
        return
    if content_length > max_size_bytes * max(1, file_count) + MULTIPART_OVERHEAD_BYTES:
        raise HTTPException(status_code=413, detail="Upload too large")


async def spooled_size(upload: UploadFile) -> int:
    """Size of the spooled upload, measured without reading it into memory."""

    def _measure() -> int:
        stream = upload.file
        position = stream.tell()
        try:
            stream.seek(0, SEEK_END)
            return stream.tell()
        finally:
            stream.seek(position)

    return await run_in_threadpool(_measure)


async def read_within_limit(upload: UploadFile, *, max_size_bytes: int) -> tuple[int, bytes | None]:
    """
    Return (size, content); content is None when the file is over the limit.

    Oversized bodies are never loaded.
    """
    size = await spooled_size(upload)
    if size > max_size_bytes:
        return size, None
    return size, await upload.read()
