"""Image storage: provider interface plus the property image store."""

import asyncio
import logging
import re
import shutil
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

from property_api.core.config import get_settings
from property_api.core.exceptions import StorageDeleteError, StorageWriteError
from property_api.models.enums import ImageDeleteOutcome

logger = logging.getLogger(__name__)

_EXTENSION_UNSAFE = re.compile(r"[^a-z0-9]")


@dataclass
class ImageUpload:
    """An uploaded file: in-memory bytes or a spooled file on disk."""

    filename: str
    content: Optional[bytes] = None
    source_path: Optional[Path] = None

    def read(self) -> bytes:
        if self.content is not None:
            return self.content
        if self.source_path is not None and self.source_path.is_file():
            return self.source_path.read_bytes()
        raise StorageWriteError(
            f"No file data available for {self.filename!r}",
            details={"filename": self.filename},
        )


class StorageProviderInterface(ABC):
    """Abstract interface for storage providers."""

    @abstractmethod
    async def write_object(self, object_path: str, data: bytes) -> None:
        """Durably write ``data`` at ``object_path``."""
        pass

    @abstractmethod
    async def delete_object(self, object_path: str) -> bool:
        """Delete an object. Returns False when it was already absent."""
        pass

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> bool:
        """Delete every object under ``prefix``. Returns False when nothing existed."""
        pass

    @abstractmethod
    async def object_exists(self, object_path: str) -> bool:
        """Verify an object exists in storage."""
        pass


class LocalFileSystemProvider(StorageProviderInterface):
    """Stores objects as files below a root directory."""

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def physical_path(self, object_path: str) -> Path:
        """Map an object path to a file below the root, refusing escapes."""
        path = (self.root / object_path).resolve()
        if path == self.root or self.root not in path.parents:
            raise ValueError(f"Object path escapes storage root: {object_path}")
        return path

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as handle:
            handle.write(data)
            handle.flush()

    def _unlink(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def _rmtree(self, path: Path) -> bool:
        if not path.exists():
            return False
        shutil.rmtree(path)
        return True

    async def write_object(self, object_path: str, data: bytes) -> None:
        await asyncio.to_thread(self._write, self.physical_path(object_path), data)

    async def delete_object(self, object_path: str) -> bool:
        return await asyncio.to_thread(self._unlink, self.physical_path(object_path))

    async def delete_prefix(self, prefix: str) -> bool:
        return await asyncio.to_thread(self._rmtree, self.physical_path(prefix))

    async def object_exists(self, object_path: str) -> bool:
        return await asyncio.to_thread(self.physical_path(object_path).is_file)


class ImageStore:
    """Property image store.

    References have the form ``/{namespace}/{property_id}/{name}.{ext}``.
    They are relative to the storage root so property rows stay portable
    across deployments. This class is the only place references are turned
    into storage paths.
    """

    def __init__(
        self,
        provider: StorageProviderInterface,
        namespace: str = "property-images",
        io_timeout_seconds: Optional[float] = 10.0,
    ):
        self.provider = provider
        self.namespace = namespace
        self.io_timeout_seconds = io_timeout_seconds

    @staticmethod
    def safe_extension(filename: str) -> str:
        """Last dot-delimited segment of ``filename``, reduced to ``[a-z0-9]``."""
        if "." not in filename:
            return ""
        return _EXTENSION_UNSAFE.sub("", filename.rsplit(".", 1)[-1].lower())

    def generate_object_path(self, property_id: str, filename: str) -> str:
        """Generate a unique object path inside the property's namespace."""
        name = uuid.uuid4().hex
        ext = self.safe_extension(filename)
        object_name = f"{name}.{ext}" if ext else name
        return f"{self.namespace}/{property_id}/{object_name}"

    def reference_to_object_path(self, reference: str) -> str:
        """Validate a reference and strip it down to its object path."""
        parts = PurePosixPath(reference.lstrip("/")).parts
        if len(parts) != 3 or parts[0] != self.namespace or ".." in parts:
            raise ValueError(f"Not an image reference: {reference!r}")
        return "/".join(parts)

    async def _bounded(self, awaitable):
        if self.io_timeout_seconds is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self.io_timeout_seconds)

    async def save(self, property_id: str, upload: ImageUpload) -> str:
        """Store one image and return its reference.

        Raises:
            StorageWriteError: no bytes available, write failure or timeout.
        """
        object_path = self.generate_object_path(property_id, upload.filename)

        async def read_and_write() -> None:
            data = await asyncio.to_thread(upload.read)
            await self.provider.write_object(object_path, data)

        try:
            await self._bounded(read_and_write())
        except asyncio.TimeoutError as e:
            await self._discard_timed_out(object_path, property_id)
            raise StorageWriteError(
                f"Timed out writing {upload.filename!r}",
                details={"filename": upload.filename, "timeout_seconds": self.io_timeout_seconds},
            ) from e
        except (OSError, ValueError) as e:
            raise StorageWriteError(
                f"Failed to write {upload.filename!r}: {e}",
                details={"filename": upload.filename},
            ) from e

        reference = f"/{object_path}"
        logger.debug("Stored image %s", reference, extra={"property_id": property_id, "reference": reference})
        return reference

    async def _discard_timed_out(self, object_path: str, property_id: str) -> None:
        """Remove whatever a timed-out write has produced so far.

        The worker thread is not cancelled, so a write that completes after
        this point still leaves an unreferenced file behind; that is logged.
        """
        try:
            await self.provider.delete_object(object_path)
        except (OSError, ValueError) as e:
            logger.warning("Could not remove timed-out object %s: %s", object_path, e)
        logger.warning(
            "Write of %s timed out; a late completion would leave an unreferenced file",
            object_path,
            extra={"property_id": property_id, "reference": f"/{object_path}"},
        )

    async def _remove(self, reference: str) -> bool:
        try:
            object_path = self.reference_to_object_path(reference)
            return await self._bounded(self.provider.delete_object(object_path))
        except (OSError, ValueError, asyncio.TimeoutError) as e:
            raise StorageDeleteError(
                f"Failed to delete image {reference!r}: {e}",
                details={"reference": reference},
            ) from e

    async def delete(self, reference: str) -> ImageDeleteOutcome:
        """Delete the object behind ``reference``. A missing object is not an error."""
        try:
            removed = await self._remove(reference)
        except StorageDeleteError as e:
            logger.warning(e.message, extra={"reference": reference, "outcome": ImageDeleteOutcome.FAILED.value})
            return ImageDeleteOutcome.FAILED

        outcome = ImageDeleteOutcome.DELETED if removed else ImageDeleteOutcome.NOT_FOUND
        logger.info("Image %s: %s", reference, outcome.value, extra={"reference": reference, "outcome": outcome.value})
        return outcome

    async def delete_namespace(self, property_id: str) -> ImageDeleteOutcome:
        """Remove the whole image directory of a property. Idempotent."""
        prefix = f"{self.namespace}/{property_id}"
        try:
            if not property_id or "/" in property_id or property_id in (".", ".."):
                raise ValueError(f"Invalid property id: {property_id!r}")
            removed = await self._bounded(self.provider.delete_prefix(prefix))
        except (OSError, ValueError, asyncio.TimeoutError) as e:
            logger.warning(
                "Failed to delete image namespace %s: %s", prefix, e,
                extra={"property_id": property_id, "outcome": ImageDeleteOutcome.FAILED.value},
            )
            return ImageDeleteOutcome.FAILED
        return ImageDeleteOutcome.DELETED if removed else ImageDeleteOutcome.NOT_FOUND

    async def exists(self, reference: str) -> bool:
        try:
            object_path = self.reference_to_object_path(reference)
        except ValueError:
            return False
        return await self.provider.object_exists(object_path)


def get_image_store() -> ImageStore:
    """Factory function to get the image store based on config."""
    settings = get_settings()
    provider = LocalFileSystemProvider(root=settings.upload_dir)
    return ImageStore(
        provider=provider,
        namespace=settings.image_namespace,
        io_timeout_seconds=settings.image_io_timeout_seconds,
    )
