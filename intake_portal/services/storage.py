"""Object store for uploaded documents.

ObjectStore is the narrow interface the rest of the app uses. LocalObjectStore
keeps blobs under STORAGE_DIR and hands out short-lived signed download URLs
(a JWT carrying the key, file name and MIME type), served by the /api/storage route.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Protocol

import jwt

from intake_portal.config import get_settings
from intake_portal.database import utcnow

logger = logging.getLogger(__name__)

DOWNLOAD_TOKEN_TYPE = "download"


class StorageError(Exception):
    pass


class ObjectStore(Protocol):
    def put(self, key: str, data: bytes, content_type: str) -> None: ...

    def get(self, key: str) -> bytes: ...

    def delete(self, key: str) -> None: ...

    def signed_url(
        self, key: str, expires_in: int | None = None, filename: str | None = None, content_type: str | None = None
    ) -> str: ...


class LocalObjectStore:
    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    def put(self, key: str, data: bytes, content_type: str) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to store {key}") from e

    def get(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {key}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"Failed to delete {key}") from e

    def signed_url(
        self, key: str, expires_in: int | None = None, filename: str | None = None, content_type: str | None = None
    ) -> str:
        settings = get_settings()
        seconds = expires_in or settings.storage_url_expire_seconds
        payload = {
            "key": key,
            "type": DOWNLOAD_TOKEN_TYPE,
            "exp": utcnow() + timedelta(seconds=seconds),
        }
        if filename:
            payload["filename"] = filename
        if content_type:
            payload["content_type"] = content_type
        token = jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
        return f"{settings.app_base_url.rstrip('/')}/api/storage/download?token={token}"


def decode_download_token(token: str) -> dict | None:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        return None
    if payload.get("type") != DOWNLOAD_TOKEN_TYPE or not payload.get("key"):
        return None
    return payload


_store: ObjectStore | None = None


def get_object_store() -> ObjectStore:
    global _store
    if _store is None:
        _store = LocalObjectStore(get_settings().storage_dir)
    return _store
