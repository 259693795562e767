"""Blob storage for avatars and message attachments."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Protocol

from parley_relay.core.errors import InvalidInput, NotAuthorized, NotFound
from parley_relay.utils.hash import blake3_hexdigest, encode_id

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[0-9a-f]{64}$")
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class ObjectStore(Protocol):
    """Minimal put/get/delete contract the relay needs from a blob store."""

    def put(self, data: bytes, content_type: str, owner: bytes | None = None) -> str: ...

    def get(self, url: str) -> bytes: ...

    def delete(self, url: str, requester: bytes | None = None) -> None: ...


class LocalObjectStore:
    """Filesystem-backed object store addressed by BLAKE3 digests.

    Each object lives at ``<root>/<digest>`` with a JSON sidecar holding its
    content type and uploader. The digest covers the uploader id as well as
    the bytes, so two users uploading the same file get separate objects.
    """

    def __init__(self, root: str | Path, base_url: str, max_bytes: int) -> None:
        self._root = Path(root)
        self._base_url = base_url.rstrip("/")
        self._max_bytes = max_bytes
        self._root.mkdir(parents=True, exist_ok=True)

    def url_for(self, key: str) -> str:
        return f"{self._base_url}/{key}"

    def put(self, data: bytes, content_type: str, owner: bytes | None = None) -> str:
        """Store ``data`` and return the URL it can be fetched from."""
        if not data:
            raise InvalidInput("Upload is empty")
        if len(data) > self._max_bytes:
            raise InvalidInput(
                f"Upload exceeds {self._max_bytes} bytes",
                max_bytes=self._max_bytes,
            )
        key = blake3_hexdigest((owner or b"") + data)
        blob_path, meta_path = self._paths(key)
        if not blob_path.exists():
            blob_path.write_bytes(data)
        meta = {
            "content_type": content_type or DEFAULT_CONTENT_TYPE,
            "owner": encode_id(owner) if owner is not None else None,
            "size": len(data),
        }
        meta_path.write_text(json.dumps(meta), encoding="utf-8")
        logger.debug("Stored object %s (%d bytes)", key, len(data))
        return self.url_for(key)

    def get(self, url: str) -> bytes:
        blob_path, _ = self._paths(self._key_from_url(url))
        try:
            return blob_path.read_bytes()
        except FileNotFoundError as err:
            raise NotFound("Object not found") from err

    def content_type(self, url: str) -> str:
        return str(self._metadata(self._key_from_url(url)).get("content_type") or DEFAULT_CONTENT_TYPE)

    def delete(self, url: str, requester: bytes | None = None) -> None:
        """Remove an object; only its uploader may delete an owned object."""
        key = self._key_from_url(url)
        meta = self._metadata(key)
        owner = meta.get("owner")
        if owner is not None and (requester is None or encode_id(requester) != owner):
            raise NotAuthorized("Only the uploader may delete this object")
        for path in self._paths(key):
            path.unlink(missing_ok=True)
        logger.info("Deleted object %s", key)

    def _metadata(self, key: str) -> dict[str, object]:
        blob_path, meta_path = self._paths(key)
        if not blob_path.exists():
            raise NotFound("Object not found")
        try:
            meta: dict[str, object] = json.loads(meta_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        return meta

    def _key_from_url(self, url: str) -> str:
        key = url.rsplit("/", 1)[-1] if url.startswith(f"{self._base_url}/") else url
        if not _KEY_PATTERN.match(key):
            raise NotFound("Object not found")
        return key

    def _paths(self, key: str) -> tuple[Path, Path]:
        return self._root / key, self._root / f"{key}.json"
