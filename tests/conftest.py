from __future__ import annotations

from typing import Dict, List, Optional, Set, Tuple

import pytest

from index_clone.errors import ConnectError, CreateError, ListError
from index_clone.models import IndexDescriptor

SOURCE = "mongodb://source.example:27017/app"
DEST = "mongodb://dest.example:27017/app"


def idx(name: str, /, **key) -> IndexDescriptor:
    return IndexDescriptor(name=name, key=key or {"_id": 1})


def pk() -> IndexDescriptor:
    return IndexDescriptor(name="_id_", key={"_id": 1})


class FakeBackend:
    """In-memory stand-in for MongoBackend; a handle is just the URI."""

    def __init__(
        self,
        databases: Dict[str, Dict[str, List[IndexDescriptor]]],
        unreachable: Optional[Set[str]] = None,
        fail_create: Optional[Set[Tuple[str, str]]] = None,
    ):
        self.databases = databases
        self.unreachable = unreachable or set()
        self.fail_create = fail_create or set()
        self.calls: List[tuple] = []
        self.opened: List[str] = []
        self.closed: List[str] = []

    def connect(self, uri: str) -> str:
        self.calls.append(("connect", uri))
        if uri in self.unreachable:
            raise ConnectError(uri, OSError("connection refused"))
        self.opened.append(uri)
        return uri

    def close(self, handle: str) -> None:
        self.closed.append(handle)

    def list_collections(self, handle: str) -> Set[str]:
        self.calls.append(("list_collections", handle))
        return set(self.databases[handle])

    def list_indexes(self, handle: str, collection: str) -> List[IndexDescriptor]:
        self.calls.append(("list_indexes", handle, collection))
        if collection not in self.databases[handle]:
            raise ListError(handle, collection, LookupError("collection does not exist"))
        return list(self.databases[handle][collection])

    def create_index(self, handle: str, collection: str, index: IndexDescriptor, background: bool) -> None:
        self.calls.append(("create_index", handle, collection, index.name, background))
        if (collection, index.name) in self.fail_create:
            raise CreateError(collection, index.name, original_exception=RuntimeError("boom"))
        indexes = self.databases[handle][collection]
        for existing in indexes:
            if existing.name == index.name:
                if existing.key_items() != index.key_items():
                    raise CreateError(collection, index.name, original_exception=RuntimeError("IndexKeySpecsConflict"))
                return
        indexes.append(index)

    def drop_index(self, handle: str, collection: str, index_name: str) -> None:
        self.calls.append(("drop_index", handle, collection, index_name))
        indexes = self.databases[handle][collection]
        indexes[:] = [i for i in indexes if i.name != index_name]

    def created(self) -> List[Tuple[str, str]]:
        return [(c[2], c[3]) for c in self.calls if c[0] == "create_index"]


@pytest.fixture
def orders_backend() -> FakeBackend:
    return FakeBackend({
        SOURCE: {"orders": [pk(), idx("email_1", email=1)]},
        DEST: {"orders": [pk()]},
    })
