"""Temporary storage for multipart uploads before they are sent to media storage."""

from __future__ import annotations

import asyncio
import secrets
from pathlib import Path

from fastapi import UploadFile


def random_filename(original: str | None) -> str:
    """24 hex characters plus the original extension."""

    return secrets.token_hex(12) + Path(original or "").suffix


def _write(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)


async def store_upload(upload: UploadFile | None, directory: str | Path) -> Path | None:
    """Write `upload` into `directory` under a random name; None when nothing was sent."""

    if upload is None or not upload.filename:
        return None

    target = Path(directory) / random_filename(upload.filename)
    data = await upload.read()
    await upload.close()
    await asyncio.to_thread(_write, target, data)
    return target
