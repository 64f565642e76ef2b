"""Content-addressed image blob stores with time-based expiry."""

from __future__ import annotations

import hashlib
import logging
import re
import threading
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from styledna.stores._ttl import TTLStore, utc_now

if TYPE_CHECKING:
    from styledna.stores._ttl import Clock

DEFAULT_IMAGE_TTL = timedelta(minutes=60)
DEFAULT_URL_PREFIX = "/api/images"
DEFAULT_EXTENSION = "jpg"

_EXTENSION_RE = re.compile(r"[a-z0-9]+")
_IMAGE_ID_RE = re.compile(r"[0-9a-f]{64}\.[a-z0-9]+")
_MEDIA_TYPES = {
    "png": "image/png",
    "webp": "image/webp",
}

logger = logging.getLogger("styledna.stores")


def content_hash(data: bytes) -> str:
    """Return the hex SHA-256 digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


def extension_for(original_name: str) -> str:
    """Return the lowercased extension of ``original_name`` or ``jpg`` when it has none."""
    _, dot, ext = original_name.rpartition(".")
    ext = ext.lower()
    if not dot or not _EXTENSION_RE.fullmatch(ext):
        return DEFAULT_EXTENSION
    return ext


def image_id_for(data: bytes, original_name: str) -> str:
    """Build the content-addressed ID ``<sha256>.<ext>`` for an image."""
    return f"{content_hash(data)}.{extension_for(original_name)}"


def media_type_for(image_id: str) -> str:
    """Guess the media type of a stored image from its ID extension."""
    _, _, ext = image_id.rpartition(".")
    return _MEDIA_TYPES.get(ext.lower(), "image/jpeg")


@dataclass(frozen=True, slots=True)
class StoredImage:
    """Handle returned after storing an image."""

    id: str
    content_hash: str
    url: str
    media_type: str
    size: int


@runtime_checkable
class ImageStore(Protocol):
    """Image blob storage protocol.

    IDs are content addressed, so storing identical bytes under the same
    extension always yields the same ID.
    """

    def store(self, data: bytes, original_name: str) -> StoredImage:
        """Store image bytes and return their handle."""
        ...

    def retrieve(self, image_id: str) -> bytes | None:
        """Return image bytes, or ``None`` when unknown or expired."""
        ...

    def exists(self, image_id: str) -> bool:
        """Return whether a live image is stored under ``image_id``."""
        ...

    def media_type(self, image_id: str) -> str:
        """Return the media type served for ``image_id``."""
        ...

    def delete(self, image_id: str) -> bool:
        """Delete an image. Return ``True`` when something was removed."""
        ...

    def sweep(self) -> tuple[str, ...]:
        """Remove expired images and return their IDs."""
        ...

    def start(self) -> None:
        """Start background expiry."""
        ...

    def stop(self) -> None:
        """Stop background expiry."""
        ...


class _TTLImageStore:
    """Shared handle building for the TTL-backed image stores."""

    _store: TTLStore[bytes] | TTLStore[Path]

    def __init__(self, url_prefix: str) -> None:
        self._url_prefix = url_prefix.rstrip("/")

    def _handle(self, image_id: str, size: int) -> StoredImage:
        return StoredImage(
            id=image_id,
            content_hash=image_id.partition(".")[0],
            url=self.url_for(image_id),
            media_type=media_type_for(image_id),
            size=size,
        )

    def url_for(self, image_id: str) -> str:
        """Return the public URL of an image ID."""
        return f"{self._url_prefix}/{image_id}"

    def media_type(self, image_id: str) -> str:
        """Return the media type served for ``image_id``."""
        return media_type_for(image_id)

    def exists(self, image_id: str) -> bool:
        """Return whether a live image is stored under ``image_id``."""
        return image_id in self._store

    def sweep(self) -> tuple[str, ...]:
        """Remove expired images and return their IDs."""
        return self._store.sweep()

    def start(self) -> None:
        """Start the background sweeper."""
        self._store.start()

    def stop(self) -> None:
        """Stop the background sweeper."""
        self._store.stop()


class InMemoryImageStore(_TTLImageStore):
    """Process-local image store; contents are lost on restart."""

    def __init__(
        self,
        *,
        ttl: timedelta = DEFAULT_IMAGE_TTL,
        clock: Clock = utc_now,
        url_prefix: str = DEFAULT_URL_PREFIX,
    ) -> None:
        """Initialize an empty store."""
        super().__init__(url_prefix)
        self._store: TTLStore[bytes] = TTLStore(ttl, clock=clock, name="images")

    def store(self, data: bytes, original_name: str) -> StoredImage:
        """Store bytes under their content-addressed ID, refreshing the TTL."""
        image_id = image_id_for(data, original_name)
        self._store.put(image_id, data)
        return self._handle(image_id, len(data))

    def retrieve(self, image_id: str) -> bytes | None:
        """Return image bytes, or ``None`` when unknown or expired."""
        return self._store.get(image_id)

    def delete(self, image_id: str) -> bool:
        """Delete an image by ID."""
        return self._store.delete(image_id)


class FileImageStore(_TTLImageStore):
    """Image store writing payloads into a scratch directory.

    Each image is written as ``<root>/<id>``. The expiry index is kept in
    memory; payload files are removed when their entry expires, unless the
    same ID has been stored again by then. Leftover payloads from an earlier
    process are adopted with a fresh TTL.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        ttl: timedelta = DEFAULT_IMAGE_TTL,
        clock: Clock = utc_now,
        url_prefix: str = DEFAULT_URL_PREFIX,
    ) -> None:
        """Initialize with a root directory, creating it if needed."""
        super().__init__(url_prefix)
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        self._write_lock = threading.RLock()
        self._store: TTLStore[Path] = TTLStore(ttl, clock=clock, on_evict=self._remove_payload, name="images")
        self._adopt_existing()

    @property
    def root(self) -> Path:
        """Return the root directory path."""
        return self._root

    def _resolve_path(self, image_id: str) -> Path | None:
        """Resolve a payload path and ensure it stays under the store root."""
        root = self._root.resolve()
        candidate = (self._root / image_id).resolve()
        try:
            candidate.relative_to(root)
        except ValueError:
            return None
        if candidate == root:
            return None
        return candidate

    def _adopt_existing(self) -> None:
        for path in self._root.iterdir():
            if path.is_file() and _IMAGE_ID_RE.fullmatch(path.name):
                self._store.put(path.name, path)

    def _remove_payload(self, image_id: str, path: Path) -> None:
        """Delete an expired payload unless the same ID was stored again meanwhile."""
        with self._write_lock:
            if image_id in self._store:
                return
            try:
                path.unlink(missing_ok=True)
            except OSError:
                logger.warning("could not remove expired image payload %s", image_id, exc_info=True)
                return
        logger.debug("removed expired image payload %s", image_id)

    def store(self, data: bytes, original_name: str) -> StoredImage:
        """Write bytes under their content-addressed ID, refreshing the TTL."""
        image_id = image_id_for(data, original_name)
        path = self._resolve_path(image_id)
        if path is None:
            msg = f"Image ID {image_id!r} resolves outside store root."
            raise ValueError(msg)
        with self._write_lock:
            path.write_bytes(data)
            self._store.put(image_id, path)
        return self._handle(image_id, len(data))

    def retrieve(self, image_id: str) -> bytes | None:
        """Read image bytes, or return ``None`` when unknown, expired or missing on disk."""
        path = self._store.get(image_id)
        if path is None:
            return None
        try:
            return path.read_bytes()
        except FileNotFoundError:
            self._store.delete(image_id)
            return None

    def delete(self, image_id: str) -> bool:
        """Delete an image payload and its index entry."""
        path = self._resolve_path(image_id)
        removed = self._store.delete(image_id)
        if path is not None and path.exists():
            path.unlink()
            removed = True
        return removed
