import logging
import uuid
from pathlib import Path
from typing import Optional
from fastapi import UploadFile
from todo_api.core.config import settings
from todo_api.core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class LocalStorage:
    def __init__(self, upload_dir: Optional[str] = None, max_file_size: Optional[int] = None):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.max_file_size = max_file_size or settings.MAX_FILE_SIZE

    async def save_file(self, file: UploadFile) -> str:
        """Stream an upload to disk and return the generated filename"""
        file_ext = Path(file.filename or "").suffix.lower()
        unique_filename = f"{uuid.uuid4().hex}{file_ext}"
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        file_path = self.upload_dir / unique_filename

        written = 0
        try:
            with open(file_path, "wb") as f:
                while True:
                    chunk = await file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_file_size:
                        break
                    f.write(chunk)
        except Exception:
            # No partial files left behind
            file_path.unlink(missing_ok=True)
            raise

        if written > self.max_file_size:
            file_path.unlink(missing_ok=True)
            raise InvalidInputError(
                f"File too large. Maximum size is {self.max_file_size} bytes"
            )

        logger.info(f"Stored upload {file.filename!r} as {unique_filename} ({written} bytes)")
        return unique_filename

    def get_file_path(self, filename: str) -> Path:
        """Get full path to a stored file"""
        # Stored names are flat; never follow directory parts
        return self.upload_dir / Path(filename).name

    def delete_file(self, filename: Optional[str]) -> bool:
        """Delete a stored file; a missing file is not an error"""
        if not filename:
            return False
        file_path = self.get_file_path(filename)
        if file_path.exists():
            file_path.unlink()
            logger.info(f"Deleted stored file {filename}")
            return True
        return False


storage = LocalStorage()
