"""
Dependency wiring for managers and the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

import firebase_admin
from fastapi import Depends, Header, HTTPException
from firebase_admin import credentials, firestore, storage

from backend.auth import AuthClient, AuthError, AuthUser, FirebaseAuthClient, InMemoryAuthClient
from backend.auth_manager import AuthManager
from backend.bag_manager import CoffeeBagManager
from backend.brew_manager import CoffeeBrewManager
from backend.config import get_settings
from backend.messaging import FirebasePushSender, InMemoryPushSender, PushSender
from backend.notification_manager import NotificationManager
from backend.storage import (
    FirebaseStorageClient,
    InMemoryStorageClient,
    S3StorageClient,
    StorageClient,
)
from backend.store import DocumentStore, FirestoreDocumentStore, InMemoryDocumentStore
from backend.user_manager import UserManager

_firebase_app: firebase_admin.App | None = None
_document_store: DocumentStore | None = None
_storage_client: StorageClient | None = None
_auth_client: AuthClient | None = None
_push_sender: PushSender | None = None


def _use_in_memory() -> bool:
    settings = get_settings()
    return settings.use_in_memory_backends or not settings.firebase_project_id


def get_firebase_app() -> firebase_admin.App:
    """
    Return the default Firebase app, initializing it from settings once.
    """
    global _firebase_app
    if _firebase_app:
        return _firebase_app

    try:
        _firebase_app = firebase_admin.get_app()
    except ValueError:
        settings = get_settings()
        cred = (
            credentials.Certificate(settings.google_application_credentials)
            if settings.google_application_credentials
            else None
        )
        options = {"projectId": settings.firebase_project_id}
        if settings.firebase_storage_bucket:
            options["storageBucket"] = settings.firebase_storage_bucket
        _firebase_app = firebase_admin.initialize_app(cred, options)
    return _firebase_app


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so in-memory state persists across
    requests.
    """
    global _document_store
    if _document_store:
        return _document_store

    if _use_in_memory():
        _document_store = InMemoryDocumentStore()
    else:
        _document_store = FirestoreDocumentStore(firestore.client(get_firebase_app()))
    return _document_store


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _storage_client = InMemoryStorageClient()
    elif settings.s3_bucket:
        _storage_client = S3StorageClient(
            bucket=settings.s3_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.s3_public_base_url,
        )
    elif settings.firebase_storage_bucket and not _use_in_memory():
        _storage_client = FirebaseStorageClient(storage.bucket(app=get_firebase_app()))
    else:
        _storage_client = InMemoryStorageClient()
    return _storage_client


def get_auth_client() -> AuthClient:
    global _auth_client
    if _auth_client:
        return _auth_client

    settings = get_settings()
    if _use_in_memory() or not settings.firebase_web_api_key:
        _auth_client = InMemoryAuthClient()
    else:
        get_firebase_app()
        _auth_client = FirebaseAuthClient(settings.firebase_web_api_key)
    return _auth_client


def get_push_sender() -> PushSender:
    global _push_sender
    if _push_sender:
        return _push_sender

    if _use_in_memory():
        _push_sender = InMemoryPushSender()
    else:
        _push_sender = FirebasePushSender(get_firebase_app())
    return _push_sender


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    auth_client: AuthClient = Depends(get_auth_client),
) -> AuthUser:
    """Resolve the `Authorization: Bearer <id token>` header to a user."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        return auth_client.verify_token(authorization[len("bearer ") :].strip())
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))


def get_auth_manager(
    user: AuthUser = Depends(get_current_user),
    auth_client: AuthClient = Depends(get_auth_client),
) -> AuthManager:
    return AuthManager(auth_client, user=user)


def get_brew_manager(
    store: DocumentStore = Depends(get_document_store),
    storage_client: StorageClient = Depends(get_storage_client),
) -> CoffeeBrewManager:
    return CoffeeBrewManager(
        store, storage_client, image_quality=get_settings().image_jpeg_quality
    )


def get_bag_manager(
    store: DocumentStore = Depends(get_document_store),
) -> CoffeeBagManager:
    return CoffeeBagManager(store)


def get_user_manager(
    auth_manager: AuthManager = Depends(get_auth_manager),
    store: DocumentStore = Depends(get_document_store),
    storage_client: StorageClient = Depends(get_storage_client),
) -> UserManager:
    return UserManager(store, auth_manager, storage_client)


def get_notification_manager(
    auth_manager: AuthManager = Depends(get_auth_manager),
    store: DocumentStore = Depends(get_document_store),
    sender: PushSender = Depends(get_push_sender),
) -> NotificationManager:
    return NotificationManager(store, sender, auth_manager)
