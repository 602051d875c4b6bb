"""Atomic file writes (temp file + rename)."""

import logging
import os
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger(__name__)


def atomic_write_text(file_path: Path, content: str, max_retries: int = 3) -> None:
    """
    Write content so readers see either the old file or the complete new one.

    Args:
        file_path: Target file path (parent directories are created)
        content: Text to write
        max_retries: Attempts before giving up

    Raises:
        OSError: If every attempt fails
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    # PID suffix keeps concurrent writers from sharing a temp file
    tmp_file = file_path.with_suffix(f"{file_path.suffix}.tmp.{os.getpid()}")

    last_error = None
    for attempt in range(max_retries):
        try:
            tmp_file.write_text(content)
            os.replace(tmp_file, file_path)
            return
        except OSError as e:
            last_error = e
            logger.warning(
                f"Failed to write {file_path} (attempt {attempt + 1}/{max_retries}): {e}"
            )
        finally:
            if tmp_file.exists():
                try:
                    tmp_file.unlink()
                except OSError:
                    pass

    logger.error(f"Failed to write {file_path} after {max_retries} attempts: {last_error}")
    raise last_error


def atomic_write_model(file_path: Path, model: BaseModel, indent: int = 2) -> None:
    """Atomically write a Pydantic model as JSON."""
    atomic_write_text(file_path, model.model_dump_json(indent=indent))
