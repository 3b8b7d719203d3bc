from __future__ import annotations

from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field

PRIMARY_KEY_INDEX = "_id_"


class IndexDescriptor(BaseModel):
    """One index as reported by ``listIndexes`` on the source."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(description="index name, unique within its collection")
    key: Dict[str, Any] = Field(description="ordered field -> direction/type mapping")

    @property
    def is_primary(self) -> bool:
        return self.name == PRIMARY_KEY_INDEX

    def key_items(self) -> List[Tuple[str, Any]]:
        # pymongo wants an ordered list of pairs, dict order is the key order
        return list(self.key.items())


class IndexFailure(BaseModel):
    index: str
    error: str


class CollectionSummary(BaseModel):
    collection: str
    index_names: List[str] = Field(default_factory=list, description="every source index, _id_ included")
    created: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    dropped: List[str] = Field(default_factory=list, description="destination indexes replaced on overwrite")
    failed: List[IndexFailure] = Field(default_factory=list)

    @property
    def index_count(self) -> int:
        return len(self.index_names)


class CloneSummary(BaseModel):
    source_collections: int = 0
    dest_collections: int = 0
    entries: List[CollectionSummary] = Field(default_factory=list)

    @property
    def collections(self) -> List[str]:
        return [e.collection for e in self.entries]

    @property
    def created_count(self) -> int:
        return sum(len(e.created) for e in self.entries)

    @property
    def failed_count(self) -> int:
        return sum(len(e.failed) for e in self.entries)

    @property
    def ok(self) -> bool:
        return self.failed_count == 0
