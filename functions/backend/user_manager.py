"""
The signed-in user's profile document: favorites, push token, soft delete.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from dacite import DaciteError

from backend.auth_manager import AuthManager
from backend.observable import Observable
from backend.storage import StorageClient
from backend.store import DocumentStore, ListenerRegistration
from shared.documents import from_document, to_document
from shared.firebase_constants import STOCK_PROFILE_PICTURES_FOLDER, USERS_COLLECTION
from shared.types import CoffeeBrew, UserProfile

if TYPE_CHECKING:
    from backend.brew_manager import CoffeeBrewManager

logger = logging.getLogger(__name__)

# Written only by update_push_token, delete_user and the reminder operations.
_SEPARATELY_WRITTEN_FIELDS = ("fcmToken", "isDeleted", "reminder")


class UserManager(Observable):
    """
    Mirrors users/{uid} for the current user into `current_user_profile`.

    Every operation is a no-op while nobody is signed in.
    """

    def __init__(
        self,
        store: DocumentStore,
        auth_manager: AuthManager,
        storage: Optional[StorageClient] = None,
    ):
        self._store = store
        self._auth_manager = auth_manager
        self._storage = storage
        self._listener: Optional[ListenerRegistration] = None
        self.current_user_profile: Optional[UserProfile] = None

    @property
    def current_uid(self) -> Optional[str]:
        return self._auth_manager.current_uid

    def fetch_user_profile(self) -> None:
        uid = self.current_uid
        if not uid:
            return
        try:
            data = self._store.get(USERS_COLLECTION, uid)
            if data is None:
                logger.info("No profile document for %s", uid)
                return
            self.current_user_profile = from_document(UserProfile, data)
        except Exception as e:
            logger.error(f"Error fetching user profile: {e}")

    def needs_onboarding(self) -> bool:
        """True when the signed-in user has not created a profile yet."""
        uid = self.current_uid
        if not uid:
            return False
        return self._store.get(USERS_COLLECTION, uid) is None

    def create_or_update_user(self, profile: UserProfile) -> None:
        uid = self.current_uid
        if not uid:
            return
        updated = replace(profile, updated_at=datetime.now(timezone.utc))
        doc = to_document(updated)
        for field_name in _SEPARATELY_WRITTEN_FIELDS:
            doc.pop(field_name, None)
        try:
            self._store.set(USERS_COLLECTION, uid, doc, merge=True)
        except Exception as e:
            logger.error(f"Error creating/updating user doc: {e}")
            return
        self.fetch_user_profile()

    def is_favorite(self, brew: CoffeeBrew) -> bool:
        if not brew.id or self.current_user_profile is None:
            return False
        return brew.id in self.current_user_profile.favorites

    def toggle_favorite(self, brew: CoffeeBrew) -> Optional[bool]:
        """
        Adds or removes the brew in the user's favorites list.

        The local profile changes first; the write follows and touches only
        the favorites field. Returns whether
        the brew is now a favorite, or None if nothing was toggled.
        """
        uid = self.current_uid
        profile = self.current_user_profile
        if not uid or not brew.id or profile is None:
            return None

        if brew.id in profile.favorites:
            favorites = [f for f in profile.favorites if f != brew.id]
        else:
            favorites = profile.favorites + [brew.id]
        profile = replace(profile, favorites=favorites)
        self.current_user_profile = profile

        try:
            self._store.set(
                USERS_COLLECTION, uid, {"favorites": favorites}, merge=True
            )
        except Exception as e:
            logger.error(f"Failed to update favorites: {e}")
        return brew.id in favorites

    def favorite_brew(
        self, brew: CoffeeBrew, brew_manager: "CoffeeBrewManager"
    ) -> Optional[bool]:
        """
        Toggles the favorite and moves the brew's saveCount by one.

        These are two independent writes; nothing rolls back the first if
        the second fails.
        """
        was_favorite = self.is_favorite(brew)
        now_favorite = self.toggle_favorite(brew)
        if now_favorite is None:
            return None
        brew_manager.update_save_count(brew, -1 if was_favorite else 1)
        return now_favorite

    def update_push_token(self, token: str) -> None:
        uid = self.current_uid
        if not uid:
            return
        try:
            self._store.set(USERS_COLLECTION, uid, {"fcmToken": token}, merge=True)
        except Exception as e:
            logger.error(f"Error saving push token: {e}")
            return
        if self.current_user_profile is not None:
            self.current_user_profile = replace(
                self.current_user_profile, fcm_token=token
            )

    def delete_user(self) -> None:
        """
        Soft-deletes the account by flagging the profile document.

        Raises:
            Exception: Whatever the store raises; callers sign out only after
            a successful delete.
        """
        uid = self.current_uid
        if not uid:
            return
        now = datetime.now(timezone.utc)
        self._store.set(
            USERS_COLLECTION,
            uid,
            {"isDeleted": True, "updatedAt": now},
            merge=True,
        )
        if self.current_user_profile is not None:
            self.current_user_profile = replace(
                self.current_user_profile, is_deleted=True, updated_at=now
            )

    def fetch_stock_profile_picture_urls(self) -> List[str]:
        if self._storage is None:
            return []
        try:
            return self._storage.list_urls(f"{STOCK_PROFILE_PICTURES_FOLDER}/")
        except Exception as e:
            logger.error(f"Error listing stock profile pictures: {e}")
            return []

    def start_listening_for_profile(self) -> None:
        uid = self.current_uid
        if not uid:
            return
        self.stop_listening_for_profile()

        def on_snapshot(data: Optional[dict]) -> None:
            if data is None:
                return
            try:
                self.current_user_profile = from_document(UserProfile, data)
            except DaciteError as e:
                logger.error(f"Error decoding user profile: {e}")

        self._listener = self._store.watch_document(USERS_COLLECTION, uid, on_snapshot)

    def stop_listening_for_profile(self) -> None:
        if self._listener is not None:
            self._listener.remove()
            self._listener = None
