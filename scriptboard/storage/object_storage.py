"""Local filesystem object storage with public URLs."""

import os
from pathlib import Path
from typing import Any

from scriptboard.core.config import Settings
from scriptboard.core.errors import InputValidationError, PersistenceError


class LocalObjectStorage:
    """Buckets are directories under `settings.object_storage_path`."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize object storage.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.root = Path(settings.object_storage_path)
        self.base_url = settings.object_storage_base_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, bucket: str, path: str) -> Path:
        target = (self.root / bucket / path).resolve()
        if not str(target).startswith(str((self.root / bucket).resolve()) + os.sep):
            raise InputValidationError(f"Invalid object path: {path}")
        return target

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/{bucket}/{path}"

    def upload(self, bucket: str, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        """
        Write an object, overwriting any existing one at the same path.

        Returns:
            Public URL of the object
        """
        target = self._resolve(bucket, path)
        tmp = target.with_name(target.name + ".tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            os.replace(tmp, target)
        except OSError as e:
            raise PersistenceError(f"Upload failed for {bucket}/{path}: {e}") from e

        self.logger.debug(f"Stored {len(data)} bytes ({content_type}) at {bucket}/{path}")
        return self.public_url(bucket, path)

    def delete(self, bucket: str, paths: list[str]) -> int:
        """Delete objects; missing ones are skipped. Returns the number removed."""
        removed = 0
        for path in paths:
            target = self._resolve(bucket, path)
            try:
                target.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                raise PersistenceError(f"Delete failed for {bucket}/{path}: {e}") from e
        return removed

    def exists(self, bucket: str, path: str) -> bool:
        return self._resolve(bucket, path).is_file()
