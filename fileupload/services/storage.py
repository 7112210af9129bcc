from __future__ import annotations

import logging
from pathlib import Path
from typing import Final

from fileupload.core.limits import BoundedReader, ByteSource, PayloadTooLarge


logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE: Final[int] = 64 * 1024


def ensure_upload_dir(upload_dir: Path) -> Path:
    upload_dir.mkdir(parents=True, exist_ok=True)
    return upload_dir


def _discard_partial(dest_path: Path) -> None:
    try:
        dest_path.unlink(missing_ok=True)
    except OSError as e:
        logger.error("Could not remove partial upload %s: %s", dest_path, e)


def save_stream(
    source: ByteSource,
    dest_path: Path,
    *,
    limit: int,
    chunk_size: int = COPY_CHUNK_SIZE,
) -> int:
    """
    Copy `source` into `dest_path` chunk by chunk, at most `limit` bytes.

    Returns the number of bytes written. If the source runs past `limit` or
    the write fails, the partially written file is removed and the error
    re-raised. An existing file at `dest_path` is replaced.
    """
    reader = BoundedReader(source, limit)
    written = 0
    dst = dest_path.open("wb")
    try:
        with dst:
            while True:
                chunk = reader.read(chunk_size)
                if not chunk:
                    break
                dst.write(chunk)
                written += len(chunk)
    except (PayloadTooLarge, OSError):
        _discard_partial(dest_path)
        raise

    return written
