# Overview: Local-disk storage for uploaded images.

from __future__ import annotations

import logging
import mimetypes
import os
import uuid
from dataclasses import dataclass
from typing import Iterable

from werkzeug.datastructures import FileStorage

from storefront.errors import InvalidInput, NotFound


logger = logging.getLogger(__name__)

# Stored extension follows the accepted content type, never the client filename
IMAGE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


@dataclass(frozen=True)
class StoredFile:
    url: str
    path: str


class LocalFileStorage:
    """
    Files are written under root with a random name; url is the public path
    (url_prefix + name) and path is the storage-relative reference used to
    delete the file later.
    """

    def __init__(self, root: str, url_prefix: str = "/uploads"):
        self.root = os.path.abspath(root)
        self.url_prefix = url_prefix.rstrip("/")

    def store(
        self,
        file: FileStorage,
        allowed_types: Iterable[str],
        max_size_bytes: int,
    ) -> StoredFile:
        if file is None or not file.filename:
            raise InvalidInput("No file provided")

        mimetype = (file.mimetype or "").lower()
        if mimetype not in set(allowed_types):
            raise InvalidInput("Invalid file type. Only JPEG, PNG, WebP, and GIF are allowed")

        data = file.read(max_size_bytes + 1)
        if len(data) > max_size_bytes:
            limit_mb = max_size_bytes // (1024 * 1024)
            raise InvalidInput(f"File too large. Maximum size is {limit_mb}MB")

        ext = IMAGE_EXTENSIONS.get(mimetype) or mimetypes.guess_extension(mimetype) or ""
        name = f"{uuid.uuid4().hex}{ext}"

        os.makedirs(self.root, exist_ok=True)
        with open(os.path.join(self.root, name), "wb") as handle:
            handle.write(data)

        logger.info("[STORAGE] stored %s (%d bytes)", name, len(data))
        return StoredFile(url=f"{self.url_prefix}/{name}", path=f"uploads/{name}")

    def delete(self, path: str) -> None:
        """Remove a stored file; the path must resolve inside the storage root."""
        if not path:
            raise InvalidInput("No file path provided")

        name = path.lstrip("/")
        for prefix in ("uploads/", self.url_prefix.lstrip("/") + "/"):
            if name.startswith(prefix):
                name = name[len(prefix):]
                break

        target = os.path.abspath(os.path.join(self.root, name))
        if os.path.commonpath([self.root, target]) != self.root or target == self.root:
            raise InvalidInput("Invalid file path")

        if not os.path.isfile(target):
            raise NotFound("File not found")

        os.remove(target)
        logger.info("[STORAGE] deleted %s", name)
