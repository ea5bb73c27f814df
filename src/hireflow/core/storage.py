from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Protocol
from urllib.parse import quote, unquote, urlparse

import requests

from hireflow.config import Settings, get_settings
from hireflow.errors import StorageError
from hireflow.types import StorageLocation

logger = logging.getLogger(__name__)

PUBLIC_PATH_PATTERN = re.compile(r"/storage/v1/object/public/([^/]+)/(.+)$")
PUBLIC_PATH_PREFIX = "/storage/v1/object/public"


def parse_storage_location(public_url: str | None) -> StorageLocation | None:
    """Map a public object URL to its (bucket, path), or None when it does not match."""
    if not public_url:
        return None
    try:
        parsed = urlparse(public_url.strip())
    except ValueError as exc:
        logger.warning("Failed to parse storage URL %r: %s", public_url, exc)
        return None

    if not parsed.scheme or not parsed.netloc:
        return None

    match = PUBLIC_PATH_PATTERN.search(parsed.path)
    if not match:
        return None
    return StorageLocation(bucket=match.group(1), path=unquote(match.group(2)))


def build_public_url(base_url: str, bucket: str, path: str) -> str:
    return f"{base_url.rstrip('/')}{PUBLIC_PATH_PREFIX}/{bucket}/{quote(path)}"


class ObjectStorage(Protocol):
    def download(self, bucket: str, path: str) -> bytes: ...


class LocalObjectStorage:
    """Filesystem-backed buckets under ``root``: one directory per bucket."""

    def __init__(self, root: Path, public_base_url: str = ""):
        self.root = Path(root)
        self.public_base_url = public_base_url

    def _resolve(self, bucket: str, path: str) -> Path:
        try:
            bucket_root = (self.root / bucket).resolve()
            target = (bucket_root / path).resolve()
        except (OSError, ValueError) as exc:
            raise StorageError(f"invalid object path {bucket}/{path!r}: {exc}") from exc
        if bucket_root != target and bucket_root not in target.parents:
            raise StorageError(f"path escapes bucket: {bucket}/{path}")
        return target

    def upload(self, bucket: str, path: str, data: bytes) -> str:
        target = self._resolve(bucket, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return build_public_url(self.public_base_url, bucket, path)

    def download(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        try:
            return target.read_bytes()
        except OSError as exc:
            raise StorageError(f"Unable to download document {bucket}/{path}: {exc}") from exc


class HttpObjectStorage:
    """Reads objects through the storage service's public endpoint."""

    def __init__(self, public_base_url: str, timeout_sec: int = 30):
        self.public_base_url = public_base_url
        self.timeout_sec = timeout_sec

    def download(self, bucket: str, path: str) -> bytes:
        url = build_public_url(self.public_base_url, bucket, path)
        try:
            response = requests.get(url, timeout=self.timeout_sec)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise StorageError(f"Unable to download document {bucket}/{path}: {exc}") from exc
        return response.content


def build_storage(settings: Settings | None = None) -> ObjectStorage:
    settings = settings or get_settings()
    if settings.storage_backend == "http":
        return HttpObjectStorage(settings.storage_public_base_url)
    return LocalObjectStorage(settings.storage_dir, settings.storage_public_base_url)
