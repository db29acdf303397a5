"""
Coffee brews: fetching, favorites counting, form submission and the live
brew feed.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, List, Optional

from dacite import DaciteError

from backend.auth import AuthUser
from backend.images import JPEG_CONTENT_TYPE, encode_jpeg
from backend.observable import Observable
from backend.storage import StorageClient
from backend.store import DocumentItem, DocumentStore, ListenerRegistration
from shared.brew_utils import (
    format_brew_time,
    format_coffee_amount,
    format_water_amount,
    parse_amount,
)
from shared.constants import MAX_IN_QUERY_VALUES, UNKNOWN_CREATOR_NAME
from shared.documents import from_document, to_document
from shared.firebase_constants import (
    COFFEE_BREWS_COLLECTION,
    USER_UPLOADS_FOLDER,
    USERS_COLLECTION,
)
from shared.types import BrewMethod, CoffeeBag, CoffeeBrew, GrindSize, UserProfile

if TYPE_CHECKING:
    from backend.bag_manager import CoffeeBagManager

logger = logging.getLogger(__name__)


def _from_label(choices, label: str, default):
    for choice in choices:
        if choice.label == label:
            return choice
    return default


@dataclass
class BrewForm:
    """The values a user enters when logging or editing a brew."""

    title: str
    method: BrewMethod
    coffee_grams: float
    water_grams: float
    brew_time_seconds: int
    grind_size: GrindSize
    notes: str = ""

    @classmethod
    def from_brew(cls, brew: CoffeeBrew) -> "BrewForm":
        """Prefills the form from a stored brew, falling back to defaults."""
        return cls(
            title=brew.title,
            method=_from_label(BrewMethod, brew.method, BrewMethod.ESPRESSO),
            coffee_grams=parse_amount(brew.coffee_amount, default=18.0),
            water_grams=parse_amount(brew.water_amount, default=30.0),
            brew_time_seconds=int(parse_amount(brew.brew_time, default=30)),
            grind_size=_from_label(GrindSize, brew.grind_size, GrindSize.FINE),
            notes=brew.notes or "",
        )

    def apply_to(self, brew: CoffeeBrew) -> CoffeeBrew:
        """Returns a copy of `brew` with the form's fields written over it."""
        return replace(
            brew,
            title=self.title,
            method=BrewMethod(self.method).label,
            coffee_amount=format_coffee_amount(self.coffee_grams),
            water_amount=format_water_amount(self.water_grams),
            brew_time=format_brew_time(self.brew_time_seconds),
            grind_size=GrindSize(self.grind_size).label,
            notes=self.notes,
        )

    def to_brew(self, creator_id: str, creator_name: str) -> CoffeeBrew:
        blank = CoffeeBrew(
            title="",
            method="",
            coffee_amount="",
            water_amount="",
            brew_time="",
            grind_size="",
            creator_id=creator_id,
            creator_name=creator_name,
        )
        return self.apply_to(blank)


class CoffeeBrewManager(Observable):
    """
    Wraps the coffeeBrews collection.

    Read failures are logged and leave `coffee_brews`/`user_brews` as they
    were.
    """

    def __init__(
        self,
        store: DocumentStore,
        storage: Optional[StorageClient] = None,
        image_quality: int = 80,
    ):
        self._store = store
        self._storage = storage
        self._image_quality = image_quality
        self._user_name_cache: dict[str, str] = {}
        self._listener: Optional[ListenerRegistration] = None
        self.coffee_brews: List[CoffeeBrew] = []
        self.user_brews: List[CoffeeBrew] = []

    def _decode(self, items: List[DocumentItem]) -> List[CoffeeBrew]:
        brews = []
        for doc_id, data in items:
            try:
                brews.append(from_document(CoffeeBrew, data, doc_id))
            except DaciteError as e:
                logger.warning("Skipping malformed brew %s: %s", doc_id, e)
        return brews

    def _with_creator_names(self, brews: List[CoffeeBrew]) -> List[CoffeeBrew]:
        return [
            replace(brew, creator_name=self.get_creator_name(brew.creator_id))
            for brew in brews
        ]

    def get_creator_name(self, creator_id: str) -> str:
        """Returns the creator's display name, cached per manager."""
        if creator_id in self._user_name_cache:
            return self._user_name_cache[creator_id]
        try:
            data = self._store.get(USERS_COLLECTION, creator_id)
            if data is not None:
                profile = from_document(UserProfile, data)
                if profile.display_name:
                    self._user_name_cache[creator_id] = profile.display_name
                    return profile.display_name
        except Exception as e:
            logger.error(f"Error fetching user profile for {creator_id}: {e}")
        return UNKNOWN_CREATOR_NAME

    def get_brew(self, brew_id: str) -> Optional[CoffeeBrew]:
        data = self._store.get(COFFEE_BREWS_COLLECTION, brew_id)
        if data is None:
            return None
        return from_document(CoffeeBrew, data, brew_id)

    def fetch_brews(self) -> None:
        try:
            items = self._store.query(
                COFFEE_BREWS_COLLECTION, order_by="createdAt", descending=True
            )
        except Exception as e:
            logger.error(f"Error fetching coffee brews: {e}")
            return
        self.coffee_brews = self._with_creator_names(self._decode(items))

    def fetch_user_brews(self, uid: str) -> None:
        try:
            items = self._store.query(
                COFFEE_BREWS_COLLECTION,
                filters=[("creatorId", "==", uid)],
                order_by="createdAt",
                descending=True,
            )
        except Exception as e:
            logger.error(f"Error fetching user brews: {e}")
            return
        self.user_brews = self._with_creator_names(self._decode(items))

    def fetch_favorite_brews(self, brew_ids: List[str]) -> List[CoffeeBrew]:
        """
        Returns the brews whose ids appear in `brew_ids`. Ids are looked up
        in chunks because Firestore limits the size of "in" filters. Brews
        that no longer exist are left out.
        """
        if not brew_ids:
            return []
        items: List[DocumentItem] = []
        try:
            for start in range(0, len(brew_ids), MAX_IN_QUERY_VALUES):
                chunk = brew_ids[start : start + MAX_IN_QUERY_VALUES]
                items.extend(self._store.get_many(COFFEE_BREWS_COLLECTION, chunk))
        except Exception as e:
            logger.error(f"Error fetching favorite brews: {e}")
            return []
        return self._with_creator_names(self._decode(items))

    def update_save_count(self, brew: CoffeeBrew, increment_value: int) -> None:
        """
        Atomically adds `increment_value` to the brew's saveCount, then
        mirrors the change into the local lists.
        """
        if not brew.id:
            return
        try:
            self._store.increment(
                COFFEE_BREWS_COLLECTION, brew.id, "saveCount", increment_value
            )
        except Exception as e:
            logger.error(f"Error updating saveCount for brew {brew.id}: {e}")
            return

        def bump(brews: List[CoffeeBrew]) -> List[CoffeeBrew]:
            return [
                replace(b, save_count=b.save_count + increment_value)
                if b.id == brew.id
                else b
                for b in brews
            ]

        self.coffee_brews = bump(self.coffee_brews)
        self.user_brews = bump(self.user_brews)

    def add_brew(self, brew: CoffeeBrew) -> Optional[str]:
        try:
            return self._store.add(COFFEE_BREWS_COLLECTION, to_document(brew))
        except Exception as e:
            logger.error(f"Error adding brew: {e}")
            return None

    def update_brew(self, brew: CoffeeBrew) -> None:
        if not brew.id:
            return
        doc = to_document(brew)
        # saveCount only changes through update_save_count.
        doc.pop("saveCount", None)
        try:
            self._store.set(COFFEE_BREWS_COLLECTION, brew.id, doc, merge=True)
        except Exception as e:
            logger.error(f"Error updating brew {brew.id}: {e}")
            return
        self.coffee_brews = [brew if b.id == brew.id else b for b in self.coffee_brews]
        self.user_brews = [brew if b.id == brew.id else b for b in self.user_brews]

    def delete_brew(self, brew: CoffeeBrew) -> None:
        if not brew.id:
            return
        try:
            self._store.delete(COFFEE_BREWS_COLLECTION, brew.id)
        except Exception as e:
            logger.error(f"Error deleting brew {brew.id}: {e}")
            return
        self.coffee_brews = [b for b in self.coffee_brews if b.id != brew.id]
        self.user_brews = [b for b in self.user_brews if b.id != brew.id]

    def upload_brew_image(self, image_bytes: bytes, user_id: str) -> str:
        """
        Stores a brew photo under the user's folder and returns its URL.

        Raises:
            ImageEncodingError: If the bytes are not a readable image.
        """
        if self._storage is None:
            raise RuntimeError("No storage client configured for image uploads")
        jpeg = encode_jpeg(image_bytes, quality=self._image_quality)
        path = f"{USER_UPLOADS_FOLDER}/{user_id}/brews/{uuid.uuid4()}.jpg"
        return self._storage.upload_bytes(path, jpeg, JPEG_CONTENT_TYPE)

    def create_brew(
        self,
        user: AuthUser,
        form: BrewForm,
        *,
        image_bytes: Optional[bytes] = None,
        bag: Optional[CoffeeBag] = None,
        bag_manager: Optional["CoffeeBagManager"] = None,
    ) -> Optional[str]:
        """
        Handles a new-brew form submission.

        When a bag is given it is saved first and linked by id; a failed bag
        save leaves the brew unlinked. A failed image upload aborts the
        submission.
        """
        brew = form.to_brew(creator_id=user.uid, creator_name=user.display_name or "")
        if bag is not None and bag_manager is not None:
            brew.bag_id = bag_manager.add_bag(bag)
        if image_bytes:
            brew.image_url = self.upload_brew_image(image_bytes, user.uid)
        return self.add_brew(brew)

    def start_listening(self) -> None:
        """Keeps `coffee_brews` in sync with the collection, newest first."""
        self.stop_listening()

        def on_snapshot(items: List[DocumentItem]) -> None:
            self.coffee_brews = self._with_creator_names(self._decode(items))

        self._listener = self._store.watch_query(
            COFFEE_BREWS_COLLECTION,
            on_snapshot,
            order_by="createdAt",
            descending=True,
        )

    def stop_listening(self) -> None:
        if self._listener is not None:
            self._listener.remove()
            self._listener = None
