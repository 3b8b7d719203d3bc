"""Collection/index reconciliation between a source and a destination database."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import ExitStack
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from index_clone.config import CloneConfig, ConflictPolicy, FailurePolicy
from index_clone.errors import CreateError, DeadlineExceeded
from index_clone.models import CloneSummary, CollectionSummary, IndexDescriptor, IndexFailure

log = logging.getLogger(__name__)


def shared_collections(source: Iterable[str], dest: Iterable[str]) -> List[str]:
    """Collections present on both sides, in ascending lexicographic order."""
    return sorted(set(source) & set(dest))


class CloneObserver:
    """Progress hooks called by ``IndexCloner``. Every hook is a no-op here."""

    def on_collections_resolved(self, shared: List[str], source_count: int, dest_count: int) -> None:
        pass

    def on_collection_start(self, collection: str, indexes: List[IndexDescriptor]) -> None:
        pass

    def on_index_created(self, collection: str, index: IndexDescriptor) -> None:
        pass

    def on_index_skipped(self, collection: str, index: IndexDescriptor, reason: str) -> None:
        pass

    def on_index_failed(self, collection: str, index: IndexDescriptor, error: CreateError) -> None:
        pass

    def on_collection_done(self, entry: CollectionSummary) -> None:
        pass

    def on_run_complete(self, summary: CloneSummary) -> None:
        pass


class IndexCloner:
    """Replays every non-primary source index on the destination.

    Connections are opened once per endpoint and closed on every exit path.
    Only the connect and collection listing steps run concurrently (one task per
    endpoint); all index work is sequential, so with ``fail_fast`` nothing after
    the first failed index is ever attempted.
    """

    def __init__(
        self,
        config: CloneConfig,
        backend: Any,
        observer: Optional[CloneObserver] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.backend = backend
        self.observer = observer or CloneObserver()
        self.clock = clock
        self.summary = CloneSummary()
        self._started: Optional[float] = None

    # --------------------------- run ---------------------------

    def run(self) -> CloneSummary:
        self._started = self.clock()
        self.summary = CloneSummary()

        with ExitStack() as stack:
            source, dest = self._open_endpoints(stack)

            self._check_deadline("listing collections")
            source_names, dest_names = self._both(self.backend.list_collections, source, dest)
            shared = shared_collections(source_names, dest_names)
            self.summary.source_collections = len(source_names)
            self.summary.dest_collections = len(dest_names)
            log.info(
                "%d collection(s) on source, %d on destination, %d shared",
                len(source_names), len(dest_names), len(shared),
            )
            self.observer.on_collections_resolved(shared, len(source_names), len(dest_names))

            for collection in shared:
                entry = CollectionSummary(collection=collection)
                self.summary.entries.append(entry)
                self._clone_collection(source, dest, entry)
                self.observer.on_collection_done(entry)

        self.observer.on_run_complete(self.summary)
        return self.summary

    def _open_endpoints(self, stack: ExitStack) -> Tuple[Any, Any]:
        self._check_deadline("connecting")
        futures = self._submit_both(self.backend.connect, self.config.source_uri, self.config.dest_uri)
        # register every handle that did open before surfacing a failure
        for fut in futures:
            if fut.exception() is None:
                stack.callback(self.backend.close, fut.result())
        return futures[0].result(), futures[1].result()

    def _both(self, fn: Callable[[Any], Any], source: Any, dest: Any) -> Tuple[Any, Any]:
        futures = self._submit_both(fn, source, dest)
        return futures[0].result(), futures[1].result()

    @staticmethod
    def _submit_both(fn: Callable[[Any], Any], source: Any, dest: Any) -> List[Future]:
        with ThreadPoolExecutor(max_workers=2) as ex:
            futures = [ex.submit(fn, source), ex.submit(fn, dest)]
        # leaving the executor joins both tasks
        return futures

    # --------------------------- per collection ---------------------------

    def _clone_collection(self, source: Any, dest: Any, entry: CollectionSummary) -> None:
        collection = entry.collection
        self._check_deadline(f"listing indexes of '{collection}'")
        indexes = self.backend.list_indexes(source, collection)

        existing: Dict[str, IndexDescriptor] = {}
        if self.config.conflict_policy != ConflictPolicy.ERROR:
            self._check_deadline(f"listing destination indexes of '{collection}'")
            existing = {i.name: i for i in self.backend.list_indexes(dest, collection)}

        self.observer.on_collection_start(collection, indexes)
        for index in indexes:
            entry.index_names.append(index.name)
            if index.is_primary:
                # created by the server together with the collection
                continue
            self._clone_index(dest, entry, index, existing.get(index.name))

    def _clone_index(
        self,
        dest: Any,
        entry: CollectionSummary,
        index: IndexDescriptor,
        current: Optional[IndexDescriptor],
    ) -> None:
        collection = entry.collection
        replace = False
        if current is not None:
            if self.config.conflict_policy == ConflictPolicy.SKIP:
                self._skip(entry, index, "already exists on destination")
                return
            if self.config.conflict_policy == ConflictPolicy.OVERWRITE:
                if current.key_items() == index.key_items():
                    self._skip(entry, index, "identical index exists on destination")
                    return
                replace = True

        try:
            self._check_deadline(f"creating index '{index.name}' on '{collection}'")
            if replace:
                log.info("dropping %s.%s (key %s) to replace it", collection, index.name, current.key)
                self.backend.drop_index(dest, collection, index.name)
                entry.dropped.append(index.name)
            log.debug("creating %s.%s key=%s background=%s", collection, index.name, index.key, self.config.background)
            try:
                self.backend.create_index(dest, collection, index, self.config.background)
            except CreateError:
                if replace:
                    self._restore(dest, entry, current)
                raise
        except CreateError as e:
            self.observer.on_index_failed(collection, index, e)
            if self.config.failure_policy == FailurePolicy.FAIL_FAST:
                raise
            log.warning("continuing after failure: %s", e.message)
            entry.failed.append(IndexFailure(index=index.name, error=e.message))
            return

        entry.created.append(index.name)
        self.observer.on_index_created(collection, index)

    def _restore(self, dest: Any, entry: CollectionSummary, dropped: IndexDescriptor) -> None:
        """Put back the destination index an overwrite dropped before its create failed."""
        try:
            self.backend.create_index(dest, entry.collection, dropped, self.config.background)
        except CreateError as e:
            log.error("%s.%s was dropped and could not be restored: %s", entry.collection, dropped.name, e.message)
            return
        entry.dropped.remove(dropped.name)
        log.warning("restored %s.%s with its previous key %s", entry.collection, dropped.name, dropped.key)

    def _skip(self, entry: CollectionSummary, index: IndexDescriptor, reason: str) -> None:
        entry.skipped.append(index.name)
        log.debug("skipping %s.%s: %s", entry.collection, index.name, reason)
        self.observer.on_index_skipped(entry.collection, index, reason)

    def _check_deadline(self, step: str) -> None:
        deadline = self.config.deadline_seconds
        if deadline is None or self._started is None:
            return
        if self.clock() - self._started > deadline:
            raise DeadlineExceeded(deadline, step)
