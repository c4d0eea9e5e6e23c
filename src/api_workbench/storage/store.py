"""Collection store: CRUD for collections and saved requests.

Holds only non-secret fields. Every mutation is applied to a copy of the
snapshot, written to disk, swapped in, and only then announced to
subscribers.
"""

import logging
from collections.abc import Callable

from api_workbench.errors import ValidationError
from api_workbench.storage.base import (
    Collection,
    ItemKind,
    RequestSpec,
    SavedRequest,
    new_id,
    utc_now,
)
from api_workbench.storage.state import StateFile

logger = logging.getLogger(__name__)

COLLECTIONS_KEY = "collections"
REQUESTS_KEY = "requests"


class _Snapshot:
    def __init__(self, collections: list[Collection], requests: dict[str, SavedRequest]):
        self.collections = collections
        self.requests = requests

    def copy(self) -> "_Snapshot":
        return _Snapshot(
            [c.model_copy(deep=True) for c in self.collections],
            {rid: r.model_copy(deep=True) for rid, r in self.requests.items()},
        )

    def find_collection(self, collection_id: str) -> Collection | None:
        return next((c for c in self.collections if c.id == collection_id), None)

    def to_dict(self) -> dict:
        return {
            COLLECTIONS_KEY: [c.to_json_dict() for c in self.collections],
            REQUESTS_KEY: {rid: r.to_json_dict() for rid, r in self.requests.items()},
        }


class CollectionStore:
    """Persistent store for Collection and SavedRequest records."""

    def __init__(self, state: StateFile):
        self.state = state
        self._listeners: list[Callable[[], None]] = []
        self._snapshot = self._load()

    def _load(self) -> _Snapshot:
        data = self.state.read()
        collections = [Collection.model_validate(c) for c in data.get(COLLECTIONS_KEY, [])]
        requests = {
            rid: SavedRequest.model_validate(r)
            for rid, r in data.get(REQUESTS_KEY, {}).items()
        }
        return _Snapshot(collections, requests)

    def reload(self) -> None:
        """Re-read the snapshot from disk and notify subscribers."""
        self._snapshot = self._load()
        self._notify()

    # -------------------------------------------------------------------------
    # Change notification
    # -------------------------------------------------------------------------

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a no-argument callback fired after each successful mutation.

        Returns a function that removes the subscription.
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback()

    def _commit(self, snapshot: _Snapshot) -> None:
        # Raises PersistenceError before anything in memory changes.
        self.state.write(snapshot.to_dict())
        self._snapshot = snapshot
        self._notify()

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create_collection(self, name: str, description: str | None = None) -> Collection:
        now = utc_now()
        collection = Collection(
            id=new_id(),
            name=name,
            description=description,
            request_ids=[],
            created_at=now,
            updated_at=now,
        )
        snapshot = self._snapshot.copy()
        snapshot.collections.append(collection)
        self._commit(snapshot)
        logger.info(f"Created collection {collection.id} ({name!r})")
        return collection.model_copy(deep=True)

    def save_request(self, spec: RequestSpec, collection_id: str) -> str:
        """Store a new request and append it to a collection. Returns its id.

        An unknown ``collection_id`` is reported in the log; the request is
        still stored, just not linked to any collection.
        """
        now = utc_now()
        request = SavedRequest(
            **spec.model_dump(exclude={"id", "created_at", "updated_at"}),
            id=new_id(),
            created_at=now,
            updated_at=now,
        )
        snapshot = self._snapshot.copy()
        snapshot.requests[request.id] = request

        collection = snapshot.find_collection(collection_id)
        if collection:
            collection.request_ids.append(request.id)
            collection.updated_at = now
        else:
            logger.warning(
                f"Collection {collection_id} not found; request {request.id} saved unlinked"
            )

        self._commit(snapshot)
        return request.id

    def delete_collection(self, collection_id: str) -> None:
        """Delete a collection together with every request it lists."""
        snapshot = self._snapshot.copy()
        collection = snapshot.find_collection(collection_id)
        if not collection:
            logger.warning(f"Collection {collection_id} not found; nothing to delete")
            return

        for request_id in collection.request_ids:
            snapshot.requests.pop(request_id, None)
        snapshot.collections = [c for c in snapshot.collections if c.id != collection_id]

        self._commit(snapshot)
        logger.info(f"Deleted collection {collection_id}")

    def delete_request(self, request_id: str) -> None:
        """Delete a request and strip its id from every collection."""
        snapshot = self._snapshot.copy()
        existed = snapshot.requests.pop(request_id, None) is not None

        now = utc_now()
        linked = False
        for collection in snapshot.collections:
            if request_id in collection.request_ids:
                collection.request_ids = [i for i in collection.request_ids if i != request_id]
                collection.updated_at = now
                linked = True

        if not existed and not linked:
            logger.warning(f"Request {request_id} not found; nothing to delete")
            return

        self._commit(snapshot)
        logger.info(f"Deleted request {request_id}")

    def rename_item(self, item_id: str, kind: ItemKind, new_name: str) -> None:
        if kind not in ("collection", "request"):
            raise ValidationError(f"Unknown item kind: {kind!r}")

        snapshot = self._snapshot.copy()
        if kind == "collection":
            item = snapshot.find_collection(item_id)
        else:
            item = snapshot.requests.get(item_id)

        if item is None:
            logger.warning(f"{kind.title()} {item_id} not found; rename skipped")
            return

        item.name = new_name
        item.updated_at = utc_now()
        self._commit(snapshot)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_request(self, request_id: str) -> SavedRequest | None:
        request = self._snapshot.requests.get(request_id)
        return request.model_copy(deep=True) if request else None

    def get_collection(self, collection_id: str) -> Collection | None:
        collection = self._snapshot.find_collection(collection_id)
        return collection.model_copy(deep=True) if collection else None

    def list_collections(self) -> list[Collection]:
        return [c.model_copy(deep=True) for c in self._snapshot.collections]

    def get_collection_request_ids(self, collection_id: str) -> list[str]:
        collection = self._snapshot.find_collection(collection_id)
        return list(collection.request_ids) if collection else []

    def list_requests(self, collection_id: str) -> list[SavedRequest]:
        """Requests of a collection in display order. Dangling ids are skipped."""
        requests = []
        for request_id in self.get_collection_request_ids(collection_id):
            request = self.get_request(request_id)
            if request:
                requests.append(request)
        return requests

    def list_all_requests(self) -> list[SavedRequest]:
        return [r.model_copy(deep=True) for r in self._snapshot.requests.values()]
