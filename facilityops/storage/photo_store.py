import os
import uuid

from werkzeug.utils import secure_filename

from facilityops.errors import ValidationError
from facilityops.logging_config import get_logger

logger = get_logger(__name__)

ALLOWED_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.webp', '.heic'}


class LocalPhotoStore:
    """
    Saves uploaded photos under ``upload_dir`` and returns the URL they are served at.

    Lifecycle commands only ever see the returned reference.
    """

    def __init__(self, upload_dir: str, url_prefix: str = "/uploads"):
        self.upload_dir = upload_dir
        self.url_prefix = url_prefix.rstrip("/")

    @classmethod
    def from_config(cls, config):
        return cls(config.get("UPLOAD_DIR", "uploads"))

    def save(self, file_storage) -> str:
        """Persist a werkzeug FileStorage and return its reference URL."""
        original = secure_filename(file_storage.filename or "")
        _, ext = os.path.splitext(original)
        ext = ext.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(f"Unsupported photo type: {ext or 'none'}", {'filename': file_storage.filename})

        os.makedirs(self.upload_dir, exist_ok=True)
        filename = f"{uuid.uuid4().hex}{ext}"
        file_storage.save(os.path.join(self.upload_dir, filename))

        logger.debug("Photo stored", filename=filename, original=original)
        return f"{self.url_prefix}/{filename}"

    def delete(self, ref: str) -> bool:
        """Remove a photo previously returned by ``save``. Returns False if it was already gone."""
        prefix = f"{self.url_prefix}/"
        if not ref.startswith(prefix):
            raise ValueError(f"Not a stored photo reference: {ref}")
        path = os.path.join(self.upload_dir, os.path.basename(ref[len(prefix):]))
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        logger.debug("Photo removed", filename=os.path.basename(path))
        return True

    def discard(self, refs):
        """Delete stored photos of a submission that did not go through."""
        for ref in refs:
            self.delete(ref)
        if refs:
            logger.info("Discarded photos of rejected submission", count=len(refs))
