import logging
from pathlib import Path
from typing import Dict, Iterable, Optional
from fastapi import UploadFile
from todo_api.core.config import settings
from todo_api.core.exceptions import InvalidInputError
from todo_api.storage.local_storage import storage

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif"}


def has_upload(upload: Optional[UploadFile]) -> bool:
    """Browsers send an empty part for an untouched file input"""
    return upload is not None and bool(getattr(upload, "filename", None))


class AttachmentService:
    """Stores and cleans up the image/file pair a todo can reference"""

    @staticmethod
    def validate_image(image: UploadFile) -> None:
        file_ext = Path(image.filename).suffix.lower()
        if file_ext not in IMAGE_EXTENSIONS:
            logger.info(f"Rejected image upload {image.filename!r}")
            raise InvalidInputError(
                f"Image type not supported. Allowed: {', '.join(sorted(IMAGE_EXTENSIONS))}"
            )

    @staticmethod
    async def store_uploads(
        image: Optional[UploadFile] = None,
        file: Optional[UploadFile] = None
    ) -> Dict[str, str]:
        """
        Persist the supplied uploads.

        Returns a mapping of todo column -> stored filename containing only
        the fields that were uploaded. Nothing is left on disk if any upload
        is rejected.
        """
        if has_upload(image):
            AttachmentService.validate_image(image)

        stored: Dict[str, str] = {}
        try:
            if has_upload(image):
                stored["image_path"] = await storage.save_file(image)
            if has_upload(file):
                stored["file_path"] = await storage.save_file(file)
        except Exception:
            AttachmentService.discard(stored.values())
            raise
        return stored

    @staticmethod
    def discard(filenames: Iterable[Optional[str]]) -> None:
        """Delete stored files; empty references and already-missing files are skipped"""
        for filename in filenames:
            storage.delete_file(filename)

    @staticmethod
    def public_url(filename: Optional[str]) -> Optional[str]:
        if not filename:
            return None
        return f"{settings.UPLOAD_URL_PREFIX.rstrip('/')}/{filename}"


attachment_service = AttachmentService()
