"""
Object storage abstraction for Firebase Storage, S3-compatible buckets and
in-memory testing.

Every upload returns a URL that is stored on the owning document.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote

import boto3
from botocore.config import Config

FIREBASE_DOWNLOAD_URL = "https://firebasestorage.googleapis.com/v0/b/{bucket}/o/{path}?alt=media&token={token}"
DOWNLOAD_TOKENS_KEY = "firebaseStorageDownloadTokens"
# S3 caps presigned URLs at seven days.
MAX_PRESIGN_SECONDS = 7 * 24 * 3600


class StorageClient(Protocol):
    """Defines the operations the managers need from object storage."""

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        ...

    def list_urls(self, prefix: str) -> list[str]:
        ...

    def delete(self, path: str) -> None:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        self.stored_objects[path] = (data, content_type)
        return self._url(path)

    def list_urls(self, prefix: str) -> list[str]:
        return [self._url(p) for p in sorted(self.stored_objects) if p.startswith(prefix)]

    def delete(self, path: str) -> None:
        self.stored_objects.pop(path, None)


class FirebaseStorageClient:
    """
    Firebase Storage client built on a `google.cloud.storage.Bucket`.

    URLs are Firebase download URLs carrying a download token in the object
    metadata, the same form the mobile SDKs hand out.
    """

    def __init__(self, bucket):
        self._bucket = bucket

    def _download_url(self, blob) -> str:
        metadata = blob.metadata or {}
        token = metadata.get(DOWNLOAD_TOKENS_KEY)
        if not token:
            token = uuid.uuid4().hex
            blob.metadata = {**metadata, DOWNLOAD_TOKENS_KEY: token}
            blob.patch()
        # Several comma-separated tokens may exist; any one of them works.
        token = token.split(",")[0]
        return FIREBASE_DOWNLOAD_URL.format(
            bucket=self._bucket.name, path=quote(blob.name, safe=""), token=token
        )

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        blob = self._bucket.blob(path)
        blob.metadata = {DOWNLOAD_TOKENS_KEY: uuid.uuid4().hex}
        blob.upload_from_string(data, content_type=content_type)
        return self._download_url(blob)

    def list_urls(self, prefix: str) -> list[str]:
        return [
            self._download_url(blob)
            for blob in self._bucket.list_blobs(prefix=prefix)
            if not blob.name.endswith("/")
        ]

    def delete(self, path: str) -> None:
        self._bucket.blob(path).delete()


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client.

    With `public_base_url` set, objects are addressed by plain URLs under it;
    otherwise by presigned GET URLs.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str | None = None

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def _url(self, path: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{path}"
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": path},
            ExpiresIn=MAX_PRESIGN_SECONDS,
        )

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        self._client.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=data,
            ContentType=content_type,
        )
        return self._url(path)

    def list_urls(self, prefix: str) -> list[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        urls = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            for item in page.get("Contents", []):
                if not item["Key"].endswith("/"):
                    urls.append(self._url(item["Key"]))
        return urls

    def delete(self, path: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=path)
