from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from dotenv import load_dotenv


logger = logging.getLogger(__name__)

PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parents[2]

DEFAULT_HOST: Final[str] = "0.0.0.0"
DEFAULT_PORT: Final[int] = 8080
DEFAULT_UPLOAD_DIR: Final[str] = "./uploads"
DEFAULT_MAX_SIZE_MB: Final[int] = 10
DEFAULT_LOG_LEVEL: Final[str] = "INFO"


@dataclass(frozen=True, slots=True)
class Settings:
    upload_dir: Path
    max_size_mb: int = DEFAULT_MAX_SIZE_MB

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def max_upload_bytes(self) -> int:
        return self.max_size_mb * 1024 * 1024


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %d", name, raw, default)
        return default
    return value


def load_settings() -> Settings:
    load_dotenv(dotenv_path=PROJECT_ROOT / ".env", override=False)

    upload_dir = Path(os.getenv("UPLOAD_DIR") or DEFAULT_UPLOAD_DIR)

    return Settings(
        upload_dir=upload_dir,
        max_size_mb=_int_from_env("MAX_SIZE", DEFAULT_MAX_SIZE_MB),
        host=os.getenv("HOST") or DEFAULT_HOST,
        port=_int_from_env("PORT", DEFAULT_PORT),
        log_level=(os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )
