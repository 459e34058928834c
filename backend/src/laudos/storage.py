"""S3-compatible storage client for Laudos.

Process documents, photos, report files and questionnaire attachments all
live in one bucket, namespaced as ``<ownerId>/<processId>/...``.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from io import BytesIO
from typing import BinaryIO
from uuid import uuid4

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import get_settings

logger = logging.getLogger(__name__)


class UploadRejected(ValueError):
    """Raised when a file fails size or MIME type validation."""


@dataclass
class BatchDeleteResult:
    """Outcome of a chunked deletion."""

    removed: int = 0
    warnings: list[str] = field(default_factory=list)


class StorageClient:
    """S3-compatible storage client for process files.

    Supports MinIO for local development and AWS S3 for production.
    """

    def __init__(self, client=None, bucket: str | None = None):
        settings = get_settings()
        self._client = client or boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
            region_name=settings.s3_region,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
            ),
        )
        self._bucket = bucket or settings.s3_bucket
        self._batch_size = settings.storage_delete_batch_size

    def upload_file(
        self,
        data: bytes | BinaryIO,
        key: str,
        content_type: str = "application/octet-stream",
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Upload a file to storage.

        Args:
            data: File content as bytes or file-like object
            key: S3 key (path within bucket)
            content_type: MIME type of the content
            metadata: Optional metadata to attach to the object

        Returns:
            The key the object was stored under
        """
        if isinstance(data, bytes):
            data = BytesIO(data)

        extra_args = {"ContentType": content_type}
        if metadata:
            extra_args["Metadata"] = metadata

        self._client.upload_fileobj(
            data,
            self._bucket,
            key,
            ExtraArgs=extra_args,
        )

        return key

    def download_file(self, key: str) -> bytes:
        """Download a file from storage.

        Args:
            key: S3 key (path within bucket)

        Returns:
            File content as bytes
        """
        buffer = BytesIO()
        self._client.download_fileobj(self._bucket, key, buffer)
        buffer.seek(0)
        return buffer.read()

    def delete_file(self, key: str) -> None:
        """Delete a file from storage.

        Args:
            key: S3 key (path within bucket)
        """
        self._client.delete_object(Bucket=self._bucket, Key=key)

    def delete_files(self, keys: list[str]) -> BatchDeleteResult:
        """Delete many files in fixed-size batches.

        A failing batch is recorded as a warning and the remaining batches
        are still attempted.

        Args:
            keys: S3 keys to remove

        Returns:
            Count of removed keys and the per-batch warnings
        """
        result = BatchDeleteResult()

        for start in range(0, len(keys), self._batch_size):
            batch = keys[start:start + self._batch_size]
            try:
                response = self._client.delete_objects(
                    Bucket=self._bucket,
                    Delete={
                        "Objects": [{"Key": key} for key in batch],
                        "Quiet": True,
                    },
                )
            except (ClientError, BotoCoreError) as e:
                logger.warning(f"Batch delete of {len(batch)} keys failed: {e}")
                result.warnings.append(f"Falha ao remover arquivos ({len(batch)}): {e}")
                continue

            errors = response.get("Errors", [])
            if errors:
                first = errors[0]
                result.warnings.append(
                    f"Falha ao remover arquivos ({len(errors)}): "
                    f"{first.get('Key')}: {first.get('Message') or first.get('Code')}"
                )
            result.removed += len(batch) - len(errors)

        return result

    def list_files(self, prefix: str = "") -> list[str]:
        """List every file under a prefix, following pagination.

        Args:
            prefix: Key prefix to filter by

        Returns:
            List of S3 keys
        """
        keys: list[str] = []
        paginator = self._client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
            for obj in page.get("Contents", []):
                keys.append(obj["Key"])
        return keys

    def generate_presigned_url(
        self, key: str, expiration: int | None = None, method: str = "get_object"
    ) -> str:
        """Generate a presigned URL for temporary access.

        Args:
            key: S3 key (path within bucket)
            expiration: URL expiration time in seconds
            method: S3 operation ('get_object' or 'put_object')

        Returns:
            Presigned URL
        """
        if expiration is None:
            expiration = get_settings().signed_url_expiration
        return self._client.generate_presigned_url(
            method,
            Params={"Bucket": self._bucket, "Key": key},
            ExpiresIn=expiration,
        )


def validate_upload(filename: str, content_type: str, size: int) -> None:
    """Check an upload against the configured size and MIME limits.

    Raises:
        UploadRejected: If the file is empty, too large or of a disallowed type
    """
    settings = get_settings()
    if size <= 0:
        raise UploadRejected(f"Arquivo vazio: {filename}")
    if size > settings.upload_max_bytes:
        limit_mb = settings.upload_max_bytes / (1024 * 1024)
        raise UploadRejected(
            f"Arquivo {filename} excede o tamanho máximo de {limit_mb:.0f} MB"
        )
    if content_type not in settings.upload_allowed_types_list:
        raise UploadRejected(f"Tipo de arquivo não permitido: {content_type}")


def process_prefix(owner_id: str, process_id: str) -> str:
    """Storage prefix owning every object of a process."""
    return f"{owner_id}/{process_id}/"


def _safe_filename(filename: str) -> str:
    """Strip accents and path-hostile characters from a filename."""
    normalized = unicodedata.normalize("NFKD", filename)
    ascii_name = normalized.encode("ascii", "ignore").decode("ascii")
    ascii_name = re.sub(r"[^A-Za-z0-9._-]+", "_", ascii_name).strip("._")
    return ascii_name or "arquivo"


def generate_process_key(
    owner_id: str,
    process_id: str,
    filename: str,
    category: str = "documents",
) -> str:
    """Generate a storage key for a process file.

    Format: {owner_id}/{process_id}/{category}/{unique}-{filename}

    Args:
        owner_id: Owner user ID
        process_id: Process ID
        filename: Original filename
        category: Sub-folder (documents, photos, reports, attachments)

    Returns:
        S3 key path
    """
    unique = uuid4().hex[:12]
    return f"{process_prefix(owner_id, process_id)}{category}/{unique}-{_safe_filename(filename)}"


# Singleton instance
_storage_client: StorageClient | None = None


def get_storage() -> StorageClient:
    """Get the storage client singleton."""
    global _storage_client
    if _storage_client is None:
        _storage_client = StorageClient()
    return _storage_client
