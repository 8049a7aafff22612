"""
On-disk storage for uploaded ZIP artifacts.
"""

import logging
import os
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import BinaryIO

from update_panel.errors import InvalidInput, NotFound, StorageFailure

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


class ArtifactStorage:
    def __init__(self, upload_dir: Path):
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def filename_for(version: str) -> str:
        return f"bot-{version}.zip"

    def path_for(self, filename: str) -> Path:
        """Resolve a stored artifact, refusing anything outside the upload dir."""
        if not filename or Path(filename).name != filename:
            raise NotFound(f"Artifact {filename!r} not found")
        path = self.upload_dir / filename
        if not path.is_file():
            raise NotFound(f"Artifact {filename!r} not found")
        return path

    def save(self, version: str, stream: BinaryIO) -> str:
        """Write ``stream`` to the artifact for ``version``.

        The data goes to a temp file first and is renamed over the final
        name only once it is complete and recognised as a ZIP archive. Any
        previous artifact for the same version is replaced.
        """
        filename = self.filename_for(version)
        target = self.upload_dir / filename

        try:
            fd, tmp = tempfile.mkstemp(dir=self.upload_dir, prefix=".upload-", suffix=".part")
        except OSError as e:
            logger.error(f"Cannot create temp file in {self.upload_dir}: {e}", exc_info=True)
            raise StorageFailure("Could not store the uploaded file") from e

        try:
            with os.fdopen(fd, "wb") as out:
                shutil.copyfileobj(stream, out, _CHUNK_SIZE)
            if not zipfile.is_zipfile(tmp):
                raise InvalidInput("Uploaded file is not a ZIP archive")
            os.replace(tmp, target)
        except InvalidInput:
            _discard(tmp)
            raise
        except OSError as e:
            _discard(tmp)
            logger.error(f"Failed to store artifact {filename}: {e}", exc_info=True)
            raise StorageFailure("Could not store the uploaded file") from e

        logger.info(f"Stored artifact {filename} ({target.stat().st_size} bytes)")
        return filename

    def delete(self, filename: str) -> bool:
        try:
            path = self.path_for(filename)
        except NotFound:
            logger.warning(f"Artifact {filename} already missing")
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to remove artifact {filename}: {e}", exc_info=True)
            raise StorageFailure(f"Could not remove artifact {filename}") from e
        logger.info(f"Removed artifact {filename}")
        return True


def _discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
