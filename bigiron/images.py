"""Content-addressed base image repository."""

from __future__ import annotations

import hashlib
import tempfile
from pathlib import Path
from typing import List, Union
from urllib.parse import urlparse
from urllib.request import url2pathname

from bigiron.constants import IMAGE_COPY_CHUNK, IMAGE_SUFFIX, SHA256_HEX_RE
from bigiron.exceptions import (
    ImageNotFoundError,
    IntegrityError,
    ParseError,
    StorageError,
    UnsupportedSourceError,
)
from bigiron.statestore import DirectoryStore
from bigiron.utils import log

ImageId = str


def validate_digest(digest: str) -> ImageId:
    """Normalise a SHA-256 hex digest; anything else is rejected."""
    candidate = digest.strip().lower() if isinstance(digest, str) else ""
    if not SHA256_HEX_RE.match(candidate):
        raise ParseError(f"Invalid image hash '{digest}': expected 64 hex characters (SHA-256)")
    return candidate


def source_path_from_url(url: str) -> Path:
    parsed = urlparse(url)
    if parsed.scheme != "file":
        raise UnsupportedSourceError(f"Url scheme not supported: '{parsed.scheme or url}'")
    if parsed.netloc not in ("", "localhost"):
        raise UnsupportedSourceError(f"Remote file URLs are not supported: {url}")
    return Path(url2pathname(parsed.path))


class ImageRepository:
    """Base images stored as ``<sha256>.qcow2`` in a flat directory.

    A file stored under digest ``D`` always hashes to ``D``: imports are
    streamed into a temporary file next to the destination and only renamed
    into place once the digest has been verified.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.store = DirectoryStore(path)

    def _path_for(self, image_id: ImageId) -> Path:
        return self.store.join(f"{image_id}{IMAGE_SUFFIX}")

    def list_images(self) -> List[str]:
        return [name for name in self.store.list_files() if name.endswith(IMAGE_SUFFIX)]

    def import_image(self, url: str, digest: str) -> ImageId:
        image_id = validate_digest(digest)
        source = source_path_from_url(url)

        destination = self._path_for(image_id)
        if destination.exists():
            log("INFO", f"Image {image_id} already present in repository")
            return image_id

        if not source.is_file():
            raise ImageNotFoundError(f"Image source not found: {source}")

        log("INFO", f"Copying new image into image repo at {destination}")
        hasher = hashlib.sha256()
        try:
            with open(source, "rb") as src, tempfile.NamedTemporaryFile(
                delete=False, dir=self.store.path, prefix=f".{image_id}-", suffix=".part"
            ) as tmp:
                tmp_path = Path(tmp.name)
                try:
                    while True:
                        chunk = src.read(IMAGE_COPY_CHUNK)
                        if not chunk:
                            break
                        hasher.update(chunk)
                        tmp.write(chunk)
                except Exception:
                    tmp_path.unlink(missing_ok=True)
                    raise
        except OSError as exc:
            raise StorageError(f"Failed to copy image from {source}: {exc}") from exc

        actual = hasher.hexdigest()
        if actual != image_id:
            tmp_path.unlink(missing_ok=True)
            raise IntegrityError(
                f"Given hash value does not match image data hash (expected {image_id}, got {actual})"
            )

        try:
            tmp_path.replace(destination)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to store image {image_id}: {exc}") from exc
        log("SUCCESS", f"New image hash='{actual}' matches given hash")
        return image_id

    def resolve_image(self, image_id: ImageId) -> Path:
        path = self._path_for(validate_digest(image_id))
        if not path.is_file():
            raise ImageNotFoundError(f"No image with id='{image_id}' found")
        return path
