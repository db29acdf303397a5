"""
Document store abstraction over Cloud Firestore and an in-memory test
implementation.

Documents are plain dicts with camelCase keys. Conversion to and from
record dataclasses happens in `shared.documents`.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from google.api_core import exceptions
from google.cloud.firestore_v1 import FieldFilter, Increment, Query

# (field, operator, value), using Firestore operator strings.
Filter = Tuple[str, str, Any]
DocumentItem = Tuple[str, dict]
QueryCallback = Callable[[List[DocumentItem]], None]
DocumentCallback = Callable[[Optional[dict]], None]


class ListenerRegistration(Protocol):
    def remove(self) -> None:
        ...


class DocumentStore(Protocol):
    """The document operations the managers need from the backend."""

    def add(self, collection: str, data: dict) -> str:
        ...

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        ...

    def update(self, collection: str, doc_id: str, data: dict) -> None:
        ...

    def increment(self, collection: str, doc_id: str, field_name: str, amount: int) -> None:
        ...

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...

    def query(
        self,
        collection: str,
        *,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[DocumentItem]:
        ...

    def get_many(self, collection: str, doc_ids: List[str]) -> List[DocumentItem]:
        ...

    def watch_query(
        self,
        collection: str,
        callback: QueryCallback,
        *,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> ListenerRegistration:
        ...

    def watch_document(
        self, collection: str, doc_id: str, callback: DocumentCallback
    ) -> ListenerRegistration:
        ...


class _WatchRegistration:
    def __init__(self, watch):
        self._watch = watch

    def remove(self) -> None:
        if self._watch is not None:
            self._watch.unsubscribe()
            self._watch = None


class FirestoreDocumentStore:
    """Thin pass-through to a `google.cloud.firestore.Client`."""

    def __init__(self, client):
        self._client = client

    def _build_query(
        self,
        collection: str,
        filters: Iterable[Filter],
        order_by: Optional[str],
        descending: bool,
    ):
        query = self._client.collection(collection)
        for field_name, op, value in filters:
            query = query.where(filter=FieldFilter(field_name, op, value))
        if order_by:
            direction = Query.DESCENDING if descending else Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        return query

    def add(self, collection: str, data: dict) -> str:
        _, doc_ref = self._client.collection(collection).add(data)
        return doc_ref.id

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        self._client.collection(collection).document(doc_id).set(data, merge=merge)

    def update(self, collection: str, doc_id: str, data: dict) -> None:
        self._client.collection(collection).document(doc_id).update(data)

    def increment(self, collection: str, doc_id: str, field_name: str, amount: int) -> None:
        self._client.collection(collection).document(doc_id).update(
            {field_name: Increment(amount)}
        )

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        snapshot = self._client.collection(collection).document(doc_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def delete(self, collection: str, doc_id: str) -> None:
        self._client.collection(collection).document(doc_id).delete()

    def query(
        self,
        collection: str,
        *,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[DocumentItem]:
        query = self._build_query(collection, filters, order_by, descending)
        if limit:
            query = query.limit(limit)
        return [(snapshot.id, snapshot.to_dict()) for snapshot in query.stream()]

    def get_many(self, collection: str, doc_ids: List[str]) -> List[DocumentItem]:
        if not doc_ids:
            return []
        collection_ref = self._client.collection(collection)
        refs = [collection_ref.document(doc_id) for doc_id in doc_ids]
        query = collection_ref.where(filter=FieldFilter("__name__", "in", refs))
        return [(snapshot.id, snapshot.to_dict()) for snapshot in query.stream()]

    def watch_query(
        self,
        collection: str,
        callback: QueryCallback,
        *,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> ListenerRegistration:
        query = self._build_query(collection, filters, order_by, descending)

        def on_snapshot(snapshots, changes, read_time):
            callback([(snapshot.id, snapshot.to_dict()) for snapshot in snapshots])

        return _WatchRegistration(query.on_snapshot(on_snapshot))

    def watch_document(
        self, collection: str, doc_id: str, callback: DocumentCallback
    ) -> ListenerRegistration:
        doc_ref = self._client.collection(collection).document(doc_id)

        def on_snapshot(snapshots, changes, read_time):
            for snapshot in snapshots:
                callback(snapshot.to_dict() if snapshot.exists else None)

        return _WatchRegistration(doc_ref.on_snapshot(on_snapshot))


_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": lambda a, b: a is not None and a < b,
    "<=": lambda a, b: a is not None and a <= b,
    ">": lambda a, b: a is not None and a > b,
    ">=": lambda a, b: a is not None and a >= b,
    "in": lambda a, b: a in b,
    "not-in": lambda a, b: a not in b,
    "array-contains": lambda a, b: isinstance(a, list) and b in a,
}


def _lookup(doc: dict, path: str) -> Any:
    """Resolves a dotted field path such as "reminder.hour"."""
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


@dataclass
class _Watcher:
    collection: str
    callback: Callable
    doc_id: Optional[str] = None
    filters: List[Filter] = field(default_factory=list)
    order_by: Optional[str] = None
    descending: bool = False
    active: bool = True

    def remove(self) -> None:
        self.active = False


class InMemoryDocumentStore:
    """
    Simple in-memory document store for development and tests.

    Listeners are notified synchronously after every write to their
    collection, each time with the full current result set.
    """

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self._watchers: List[_Watcher] = []

    def _docs(self, collection: str) -> Dict[str, dict]:
        return self.collections.setdefault(collection, {})

    def _matches(self, doc: dict, filters: Iterable[Filter]) -> bool:
        for field_name, op, value in filters:
            if op not in _OPERATORS:
                raise ValueError(f"Unsupported operator: {op}")
            if not _OPERATORS[op](_lookup(doc, field_name), value):
                return False
        return True

    def _select(
        self,
        collection: str,
        filters: Iterable[Filter],
        order_by: Optional[str],
        descending: bool,
    ) -> List[DocumentItem]:
        filters = list(filters)
        items = [
            (doc_id, copy.deepcopy(doc))
            for doc_id, doc in self._docs(collection).items()
            if self._matches(doc, filters)
        ]
        if order_by:
            # Firestore drops documents that lack the ordering field.
            items = [item for item in items if _lookup(item[1], order_by) is not None]
            items.sort(key=lambda item: _lookup(item[1], order_by), reverse=descending)
        return items

    def _notify(self, collection: str) -> None:
        for watcher in list(self._watchers):
            if not watcher.active or watcher.collection != collection:
                continue
            if watcher.doc_id is not None:
                watcher.callback(self.get(collection, watcher.doc_id))
            else:
                watcher.callback(
                    self._select(
                        collection,
                        watcher.filters,
                        watcher.order_by,
                        watcher.descending,
                    )
                )
        self._watchers = [w for w in self._watchers if w.active]

    def add(self, collection: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self._docs(collection)[doc_id] = copy.deepcopy(data)
        self._notify(collection)
        return doc_id

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> None:
        docs = self._docs(collection)
        if merge and doc_id in docs:
            docs[doc_id].update(copy.deepcopy(data))
        else:
            docs[doc_id] = copy.deepcopy(data)
        self._notify(collection)

    def update(self, collection: str, doc_id: str, data: dict) -> None:
        docs = self._docs(collection)
        if doc_id not in docs:
            raise exceptions.NotFound(f"No document to update: {collection}/{doc_id}")
        docs[doc_id].update(copy.deepcopy(data))
        self._notify(collection)

    def increment(self, collection: str, doc_id: str, field_name: str, amount: int) -> None:
        docs = self._docs(collection)
        if doc_id not in docs:
            raise exceptions.NotFound(f"No document to update: {collection}/{doc_id}")
        docs[doc_id][field_name] = (docs[doc_id].get(field_name) or 0) + amount
        self._notify(collection)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        doc = self._docs(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def delete(self, collection: str, doc_id: str) -> None:
        self._docs(collection).pop(doc_id, None)
        self._notify(collection)

    def query(
        self,
        collection: str,
        *,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[DocumentItem]:
        items = self._select(collection, filters, order_by, descending)
        return items[:limit] if limit else items

    def get_many(self, collection: str, doc_ids: List[str]) -> List[DocumentItem]:
        docs = self._docs(collection)
        return [
            (doc_id, copy.deepcopy(docs[doc_id]))
            for doc_id in dict.fromkeys(doc_ids)
            if doc_id in docs
        ]

    def watch_query(
        self,
        collection: str,
        callback: QueryCallback,
        *,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> ListenerRegistration:
        watcher = _Watcher(
            collection=collection,
            callback=callback,
            filters=list(filters),
            order_by=order_by,
            descending=descending,
        )
        self._watchers.append(watcher)
        callback(self._select(collection, watcher.filters, order_by, descending))
        return watcher

    def watch_document(
        self, collection: str, doc_id: str, callback: DocumentCallback
    ) -> ListenerRegistration:
        watcher = _Watcher(collection=collection, callback=callback, doc_id=doc_id)
        self._watchers.append(watcher)
        callback(self.get(collection, doc_id))
        return watcher

    def reset(self) -> None:
        """Clear all stored data and listeners (useful in tests)."""
        self.collections.clear()
        self._watchers.clear()
