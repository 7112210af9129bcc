from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Final, Optional


MAX_FILENAME_BYTES: Final[int] = 255
TIMESTAMP_FORMAT: Final[str] = "%Y%m%d_%H%M%S"
# "YYYYMMDD_HHMMSS" plus the joining underscore
TIMESTAMP_PREFIX_LEN: Final[int] = 16
PLACEHOLDER_NAME: Final[str] = "unnamed"

_RESERVED_NAMES: Final[frozenset[str]] = frozenset({"", ".", ".."})

_SEPARATOR_RE = re.compile(r"[\\/]")
_DRIVE_RE = re.compile(r"^[A-Za-z]:")


@dataclass(frozen=True, slots=True)
class SanitizedName:
    base: str
    extension: str = ""

    def __str__(self) -> str:
        return self.base + self.extension


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


def _truncate_bytes(text: str, max_bytes: int) -> str:
    # Drops a trailing partial character rather than emitting invalid UTF-8.
    return text.encode("utf-8")[:max_bytes].decode("utf-8", errors="ignore")


def _strip_directories(name: str) -> str:
    segments = _SEPARATOR_RE.split(name)
    if len(segments) == 1:
        return name

    absolute = not segments[0] or bool(_DRIVE_RE.match(name))
    traversal = any(seg in (".", "..") for seg in segments)
    # Plain relative paths are flattened by the caller (dir/f.txt -> dir-f.txt), not cut.
    if not (absolute or traversal):
        return name

    for seg in reversed(segments):
        if seg:
            return seg
    return ""


def _split_extension(name: str) -> SanitizedName:
    dot = name.rfind(".")
    if dot < 0:
        return SanitizedName(base=name)
    return SanitizedName(base=name[:dot], extension=name[dot:])


def sanitize_name(filename: str, max_length: int = MAX_FILENAME_BYTES) -> SanitizedName:
    """
    Turn an untrusted client filename into a single, bounded path component.

    Absolute paths and names with `.`/`..` segments are reduced to their last
    segment; any separator left over becomes `-`, spaces become `_` and `..`
    collapses to `.`. Names longer than `max_length` UTF-8 bytes are cut down,
    keeping the extension (from the last dot) when it fits.
    """
    if max_length <= 0:
        raise ValueError("max_length must be positive")

    name = _strip_directories(filename)
    name = name.replace("\x00", "").replace(" ", "_")
    name = _SEPARATOR_RE.sub("-", name)
    name = name.replace("..", ".")

    if name in _RESERVED_NAMES:
        name = PLACEHOLDER_NAME

    if _byte_len(name) > max_length:
        parts = _split_extension(name)
        ext_len = _byte_len(parts.extension)
        if ext_len >= max_length:
            # extension alone does not leave room for a base
            name = _truncate_bytes(name, max_length)
        else:
            name = _truncate_bytes(parts.base, max_length - ext_len) + parts.extension

        if name in _RESERVED_NAMES:
            name = PLACEHOLDER_NAME[:max_length]

    return _split_extension(name)


def sanitize_filename(filename: str, max_length: int = MAX_FILENAME_BYTES) -> str:
    return str(sanitize_name(filename, max_length))


def upload_timestamp(moment: Optional[datetime] = None) -> str:
    return (moment or datetime.now()).strftime(TIMESTAMP_FORMAT)


def stored_filename(filename: str, timestamp: str) -> str:
    """
    Compose the on-disk name `<timestamp>_<sanitized name>`.

    The sanitized part is bounded so the whole name stays within
    MAX_FILENAME_BYTES. Two uploads of the same name within one second
    produce the same stored name.
    """
    safe_name = sanitize_filename(filename, MAX_FILENAME_BYTES - TIMESTAMP_PREFIX_LEN)
    return f"{timestamp}_{safe_name}"
