"""
Coffee bags and their live list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from dacite import DaciteError

from backend.observable import Observable
from backend.store import DocumentItem, DocumentStore, ListenerRegistration
from shared.documents import from_document, to_document
from shared.firebase_constants import COFFEE_BAGS_COLLECTION
from shared.types import CoffeeBag, RoastLevel

logger = logging.getLogger(__name__)

# Stored field the bag list is ordered by.
BAG_ORDER_FIELD = "dateAdded"


@dataclass
class BagForm:
    brand_name: str
    roast_level: RoastLevel
    origin: str
    location: str = ""

    def to_bag(self, user_id: str, user_name: str) -> CoffeeBag:
        return CoffeeBag(
            brand_name=self.brand_name,
            roast_level=RoastLevel(self.roast_level).label,
            origin=self.origin,
            location=self.location,
            user_id=user_id,
            user_name=user_name,
        )


class CoffeeBagManager(Observable):
    def __init__(self, store: DocumentStore):
        self._store = store
        self._listener: Optional[ListenerRegistration] = None
        self.bags: List[CoffeeBag] = []

    def _decode(self, items: List[DocumentItem]) -> List[CoffeeBag]:
        bags = []
        for doc_id, data in items:
            try:
                bags.append(from_document(CoffeeBag, data, doc_id))
            except DaciteError as e:
                logger.warning("Skipping malformed bag %s: %s", doc_id, e)
        return bags

    def get_bag(self, bag_id: str) -> Optional[CoffeeBag]:
        data = self._store.get(COFFEE_BAGS_COLLECTION, bag_id)
        if data is None:
            return None
        return from_document(CoffeeBag, data, bag_id)

    def start_listening(self) -> None:
        """Replaces `bags` with every snapshot of the collection, newest first."""
        self.stop_listening()

        def on_snapshot(items: List[DocumentItem]) -> None:
            self.bags = self._decode(items)

        self._listener = self._store.watch_query(
            COFFEE_BAGS_COLLECTION,
            on_snapshot,
            order_by=BAG_ORDER_FIELD,
            descending=True,
        )

    def stop_listening(self) -> None:
        if self._listener is not None:
            self._listener.remove()
            self._listener = None

    def fetch_coffee_bags(self, user_id: Optional[str] = None) -> None:
        filters = [("userId", "==", user_id)] if user_id else []
        try:
            items = self._store.query(
                COFFEE_BAGS_COLLECTION,
                filters=filters,
                order_by=BAG_ORDER_FIELD,
                descending=True,
            )
        except Exception as e:
            logger.error(f"Error fetching coffee bags: {e}")
            return
        self.bags = self._decode(items)

    def add_bag(self, bag: CoffeeBag) -> Optional[str]:
        try:
            return self._store.add(COFFEE_BAGS_COLLECTION, to_document(bag))
        except Exception as e:
            logger.error(f"Error adding bag: {e}")
            return None

    def update_bag(self, bag: CoffeeBag) -> None:
        if not bag.id:
            return
        try:
            self._store.set(COFFEE_BAGS_COLLECTION, bag.id, to_document(bag), merge=True)
        except Exception as e:
            logger.error(f"Error updating bag: {e}")

    def delete_bag(self, bag: CoffeeBag) -> None:
        if not bag.id:
            return
        try:
            self._store.delete(COFFEE_BAGS_COLLECTION, bag.id)
        except Exception as e:
            logger.error(f"Error deleting bag: {e}")
