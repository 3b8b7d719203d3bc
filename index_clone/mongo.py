"""pymongo implementation of the primitives the cloner consumes.

Any object exposing ``connect``/``close``/``list_collections``/``list_indexes``/
``create_index``/``drop_index`` with these signatures can stand in for
``MongoBackend``; the tests use an in-memory one.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Set

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from index_clone.errors import ConnectError, CreateError, ListError
from index_clone.models import IndexDescriptor

log = logging.getLogger(__name__)

_CREDENTIALS = re.compile(r"(mongodb(?:\+srv)?://)[^@/]+@")


def redact_uri(uri: str) -> str:
    """Hide ``user:password@`` so endpoints can be logged safely."""
    return _CREDENTIALS.sub(r"\1***@", uri)


@dataclass(frozen=True)
class MongoHandle:
    endpoint: str
    db: Database


class MongoBackend:
    def __init__(self, timeout_ms: int = 10_000):
        self.timeout_ms = timeout_ms

    def connect(self, uri: str) -> MongoHandle:
        endpoint = redact_uri(uri)
        client = None
        # pymongo raises plain ValueError for some malformed URIs (bad port)
        try:
            client = MongoClient(
                uri,
                serverSelectionTimeoutMS=self.timeout_ms,
                connectTimeoutMS=self.timeout_ms,
                socketTimeoutMS=self.timeout_ms,
            )
            # MongoClient connects lazily, ping so auth and reachability fail here
            client.admin.command("ping")
            db = client.get_default_database()
        except (PyMongoError, ValueError, TypeError) as e:
            if client is not None:
                client.close()
            raise ConnectError(endpoint, e) from e
        log.debug("connected to %s (database %s)", endpoint, db.name)
        return MongoHandle(endpoint=endpoint, db=db)

    def close(self, handle: MongoHandle) -> None:
        handle.db.client.close()
        log.debug("closed connection to %s", handle.endpoint)

    def list_collections(self, handle: MongoHandle) -> Set[str]:
        try:
            names = handle.db.list_collection_names(filter={"type": {"$ne": "view"}})
        except PyMongoError as e:
            raise ListError(handle.endpoint, original_exception=e) from e
        # views have no indexes, system.* collections are managed by the server itself
        return {n for n in names if not n.startswith("system.")}

    def list_indexes(self, handle: MongoHandle, collection: str) -> List[IndexDescriptor]:
        try:
            specs = list(handle.db[collection].list_indexes())
        except PyMongoError as e:
            raise ListError(handle.endpoint, collection, e) from e
        if not specs:
            # pymongo hides NamespaceNotFound behind an empty cursor
            raise ListError(handle.endpoint, collection, LookupError("collection does not exist"))
        return [IndexDescriptor(name=s["name"], key=dict(s["key"])) for s in specs]

    def create_index(self, handle: MongoHandle, collection: str, index: IndexDescriptor, background: bool) -> None:
        try:
            handle.db[collection].create_index(index.key_items(), name=index.name, background=background)
        except PyMongoError as e:
            raise CreateError(collection, index.name, original_exception=e) from e

    def drop_index(self, handle: MongoHandle, collection: str, index_name: str) -> None:
        try:
            handle.db[collection].drop_index(index_name)
        except PyMongoError as e:
            raise CreateError(
                collection,
                index_name,
                f"failed to drop index '{index_name}' on '{collection}' before overwrite: {e}",
                e,
            ) from e
