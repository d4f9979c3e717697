import logging
import os
import time
import uuid
from pathlib import Path
from typing import BinaryIO, Iterable, Optional

from .errors import PayloadTooLarge, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png"})
UPLOAD_URL_PREFIX = "/uploads/"
CHUNK_SIZE = 64 * 1024


class MediaIntake:
    """
    Validates and stores the optional photo attached to a report.

    Files land in a flat, append-only directory under generated names, so
    concurrent writers never collide. Nothing here deletes old files.
    """

    def __init__(
        self,
        upload_dir: str,
        max_bytes: int = 5 * 1024 * 1024,
        allowed_extensions: Iterable[str] = ALLOWED_EXTENSIONS,
    ):
        self.upload_dir = Path(upload_dir).resolve()
        self.max_bytes = max_bytes
        self.allowed_extensions = frozenset(ext.lower() for ext in allowed_extensions)
        # ensure dir exists
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def _check_extension(self, filename: str) -> str:
        ext = Path(filename).suffix.lower()
        if ext not in self.allowed_extensions:
            raise ValidationError("Only JPG/PNG allowed")
        return ext

    @staticmethod
    def _generate_name(ext: str) -> str:
        return f"{int(time.time() * 1000)}-{uuid.uuid4().hex}{ext}"

    def store(self, filename: Optional[str], stream: Optional[BinaryIO]) -> Optional[str]:
        """
        Persist an uploaded photo and return its public reference path.

        Returns None when no file was attached. Raises ValidationError for a
        disallowed extension and PayloadTooLarge past max_bytes; in both
        cases nothing is left on disk.
        """
        if stream is None or not filename:
            return None

        ext = self._check_extension(filename)
        name = self._generate_name(ext)
        final_path = self.upload_dir / name
        partial_path = self.upload_dir / f"{name}.part"

        written = 0
        try:
            with open(partial_path, "wb") as out:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise PayloadTooLarge()
                    out.write(chunk)
            os.replace(partial_path, final_path)
        except BaseException:
            partial_path.unlink(missing_ok=True)
            raise

        logger.info("Stored photo %s (%d bytes)", name, written)
        return f"{UPLOAD_URL_PREFIX}{name}"

    def resolve(self, reference: str) -> Path:
        """Map a reference returned by store() back to its file path."""
        if not reference or not reference.startswith(UPLOAD_URL_PREFIX):
            raise ValueError(f"Not an upload reference: {reference!r}")
        name = reference[len(UPLOAD_URL_PREFIX):]
        path = (self.upload_dir / name).resolve()
        if path.parent != self.upload_dir:
            raise ValueError(f"Reference escapes upload dir: {reference!r}")
        return path

    def discard(self, reference: Optional[str]):
        """Delete a stored photo whose report was never created."""
        if not reference:
            return
        try:
            path = self.resolve(reference)
        except ValueError:
            logger.warning("Refusing to discard %r", reference)
            return
        path.unlink(missing_ok=True)
        logger.info("Discarded orphaned photo %s", path.name)
