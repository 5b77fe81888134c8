# backend/projects/services/storage.py
"""
Object store for signature images and signed PDFs.

Everything goes through Django's ``default_storage``: S3 (django-storages) when
``USE_S3`` is on, the local filesystem otherwise. Because assets live outside the
database, multi-step writes pair each upload with a compensating delete (AssetSaga).
"""
from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from typing import List, Optional

from django.conf import settings
from django.core import signing
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db import transaction
from django.urls import reverse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredFile:
    content: bytes
    content_type: str
    length: int


def _file_signer() -> signing.TimestampSigner:
    return signing.TimestampSigner(salt=settings.SIGNED_FILE_URL_SALT)


class ObjectStore:
    """Thin wrapper over a Django storage backend, keyed by ``category/owner/filename``."""

    def __init__(self, storage=None):
        self.storage = storage or default_storage

    def upload(self, content: bytes, filename: str, category: str, owner_id, content_type: str) -> str:
        name = f"{category}/{owner_id}/{filename}"
        payload = ContentFile(content, name=filename)
        # S3Boto3Storage reads this when setting the object's ContentType.
        payload.content_type = content_type
        saved = self.storage.save(name, payload)
        logger.info("Stored asset %s (%d bytes)", saved, len(content))
        return saved

    def download(self, path: str) -> StoredFile:
        with self.storage.open(path, "rb") as fh:
            data = fh.read()
        content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
        return StoredFile(content=data, content_type=content_type, length=len(data))

    def delete(self, path: str) -> None:
        self.storage.delete(path)

    def issue_download_url(self, path: str, minutes: int) -> str:
        """
        Time-limited download URL. S3 presigns natively; other backends get a
        signed link served by ``files/<signed>/``.
        """
        if getattr(settings, "USE_S3", False):
            return self.storage.url(path, expire=minutes * 60)

        signed = _file_signer().sign_object({"path": path})
        route = reverse("projects:signed-file", kwargs={"signed": signed})
        return f"{settings.SITE_URL}{route}"


def resolve_signed_path(signed: str, max_age_minutes: Optional[int] = None) -> str:
    """
    Reverse of ``issue_download_url`` for the local backend.
    Raises ``signing.SignatureExpired`` / ``signing.BadSignature``.
    """
    if max_age_minutes is None:
        max_age_minutes = settings.SIGNED_PDF_URL_MINUTES
    data = _file_signer().unsign_object(signed, max_age=max_age_minutes * 60)
    path = data.get("path") if isinstance(data, dict) else None
    if not path:
        raise signing.BadSignature("Signed payload carries no path.")
    return path


class AssetSaga:
    """
    Keeps the object store consistent with a database transaction.

        with AssetSaga() as saga:
            with transaction.atomic():
                path = saga.upload(...)
                saga.delete_after_commit(old_path)

    Uploads made inside the block are deleted if the block raises. Deletes are deferred
    to ``transaction.on_commit`` so a rolled-back transaction never loses a live asset.
    Compensation and deferred-delete failures are logged and left for manual cleanup.
    """

    def __init__(self, store: Optional[ObjectStore] = None):
        self.store = store or ObjectStore()
        self.uploaded: List[str] = []

    def __enter__(self) -> "AssetSaga":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.compensate()
        return False

    def upload(self, content: bytes, filename: str, category: str, owner_id, content_type: str) -> str:
        path = self.store.upload(content, filename, category, owner_id, content_type)
        self.uploaded.append(path)
        return path

    def compensate(self) -> None:
        for path in reversed(self.uploaded):
            try:
                self.store.delete(path)
                logger.info("Compensated upload %s after rollback", path)
            except Exception:
                logger.exception("Failed to delete orphaned asset %s after rollback", path)
        self.uploaded = []

    def delete_after_commit(self, path: str) -> None:
        if not path:
            return
        transaction.on_commit(lambda: delete_quietly(path, store=self.store))


def delete_quietly(path: str, store: Optional[ObjectStore] = None) -> bool:
    """Best-effort delete; returns False (and logs) on failure."""
    store = store or ObjectStore()
    try:
        store.delete(path)
        return True
    except Exception:
        logger.exception("Failed to delete asset %s", path)
        return False
