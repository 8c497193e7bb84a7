"""
Blob store clients.

SupabaseStorage talks to the Supabase Storage REST API with requests.
LocalStorage keeps the same bucket/path layout on disk, for development
and for running jobs without network access.
"""

import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import quote

import requests

from stitcher.core import config
from stitcher.core.errors import StorageError


class BlobStore(ABC):
    """Minimal blob store interface used by the pipeline."""

    @abstractmethod
    def download(self, bucket: str, path: str) -> bytes:
        """Return the blob's bytes. Raises StorageError when it cannot be read."""

    @abstractmethod
    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = True,
    ) -> None:
        """Store ``data`` at ``path``. Raises StorageError on failure."""

    @abstractmethod
    def remove(self, bucket: str, paths: Iterable[str]) -> None:
        """Delete blobs; missing paths are ignored."""

    @abstractmethod
    def public_url(self, bucket: str, path: str) -> str:
        """Public reference for a stored blob."""

    def close(self) -> None:
        """Release connections held by the client."""


class SupabaseStorage(BlobStore):
    """
    Supabase Storage over HTTP.

    Uses the service key for both the ``apikey`` header and bearer auth.
    """

    def __init__(
        self,
        url: str = None,
        service_key: str = None,
        timeout: float = None,
        session: Optional[requests.Session] = None,
    ):
        self.url = (url or config.SUPABASE_URL).rstrip("/")
        self.service_key = service_key or config.SUPABASE_SERVICE_KEY
        self.timeout = timeout if timeout is not None else config.STORAGE_TIMEOUT

        if not self.url:
            raise StorageError("SUPABASE_URL is not configured")
        if not self.service_key:
            raise StorageError("SUPABASE_SERVICE_KEY is not configured")

        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": self.service_key,
                "Authorization": f"Bearer {self.service_key}",
            }
        )

    def _object_url(self, bucket: str, path: str) -> str:
        return f"{self.url}/storage/v1/object/{quote(bucket)}/{quote(path)}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise StorageError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 400:
            raise StorageError(
                f"{method} {url} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    def download(self, bucket: str, path: str) -> bytes:
        response = self._request("GET", self._object_url(bucket, path))
        return response.content

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = True,
    ) -> None:
        self._request(
            "POST",
            self._object_url(bucket, path),
            data=data,
            headers={
                "Content-Type": content_type,
                "x-upsert": "true" if upsert else "false",
            },
        )

    def remove(self, bucket: str, paths: Iterable[str]) -> None:
        prefixes = list(paths)
        if not prefixes:
            return
        self._request(
            "DELETE",
            f"{self.url}/storage/v1/object/{quote(bucket)}",
            json={"prefixes": prefixes},
        )

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{quote(bucket)}/{quote(path)}"

    def close(self) -> None:
        self.session.close()


class LocalStorage(BlobStore):
    """Filesystem-backed store: ``<root>/<bucket>/<path>``."""

    def __init__(self, root: str = None):
        self.root = Path(root or config.STORAGE_ROOT)

    def _resolve(self, bucket: str, path: str) -> Path:
        base = (self.root / bucket).resolve()
        target = (base / path).resolve()
        if base not in target.parents:
            raise StorageError(f"Path escapes bucket: {path!r}")
        return target

    def download(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        try:
            return target.read_bytes()
        except FileNotFoundError:
            raise StorageError(f"Object not found: {bucket}/{path}", status_code=404)
        except OSError as e:
            raise StorageError(f"Could not read {bucket}/{path}: {e}") from e

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = True,
    ) -> None:
        target = self._resolve(bucket, path)
        if target.exists() and not upsert:
            raise StorageError(f"Object already exists: {bucket}/{path}", status_code=409)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Could not write {bucket}/{path}: {e}") from e

    def remove(self, bucket: str, paths: Iterable[str]) -> None:
        for path in paths:
            target = self._resolve(bucket, path)
            if target.is_dir():
                shutil.rmtree(target, ignore_errors=True)
            elif target.exists():
                os.remove(target)

    def public_url(self, bucket: str, path: str) -> str:
        return self._resolve(bucket, path).as_uri()


def get_storage(backend: str = None) -> BlobStore:
    """Create the configured blob store."""
    backend = (backend or config.STORAGE_BACKEND).strip().lower()
    if backend == "local":
        return LocalStorage()
    if backend == "supabase":
        return SupabaseStorage()
    raise StorageError(f"Unknown STORAGE_BACKEND: {backend}")
