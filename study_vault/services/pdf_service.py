"""
Uploaded file handling on local disk.

PDFs are written under UPLOAD_DIR and avatars under AVATAR_DIR, each with a
uuid prefix so two uploads of "notes.pdf" never overwrite each other. Page
counting uses PyPDF2 and is blocking; the worker calls it through
asyncio.to_thread.
"""

import logging
import uuid
from pathlib import Path
from typing import Optional

from PyPDF2 import PdfReader

from study_vault.config import get_settings

logger = logging.getLogger(__name__)


def _ensure_dir(directory: str) -> Path:
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    return path


def upload_dir() -> Path:
    return _ensure_dir(get_settings().upload_dir)


def avatar_dir() -> Path:
    return _ensure_dir(get_settings().avatar_dir)


def stored_name(original_name: str) -> str:
    # Keep only the final path component of whatever the client sent
    base = Path(original_name.replace("\\", "/")).name or "document.pdf"
    return f"{uuid.uuid4().hex}-{base}"


def save_upload(content: bytes, original_name: str, directory: Optional[Path] = None) -> Path:
    """Write the uploaded bytes to disk (PDF directory by default) and return the new path."""
    file_path = (directory or upload_dir()) / stored_name(original_name)
    file_path.write_bytes(content)
    logger.info("Saved upload to %s (%d bytes)", file_path, len(content))
    return file_path


def is_stored_in(file_path: str | Path, directory: Path) -> bool:
    return Path(file_path).resolve().parent == directory.resolve()


def remove_file(file_path: str | Path) -> None:
    """Delete a stored file. Missing files are ignored; other errors are logged."""
    path = Path(file_path)
    try:
        path.unlink(missing_ok=True)
        logger.info("Removed file %s", path)
    except OSError as e:
        logger.error("Error deleting file %s: %s", path, e)


def count_pages(file_path: str | Path) -> int:
    """
    Number of pages in a PDF.
    This is blocking I/O and CPU work; call via asyncio.to_thread in the worker.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"PDF not found: {path}")
    reader = PdfReader(str(path))
    return len(reader.pages)
