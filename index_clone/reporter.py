from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO

from tqdm import tqdm

from index_clone.engine import CloneObserver
from index_clone.errors import CloneError, CreateError
from index_clone.models import CloneSummary, CollectionSummary, IndexDescriptor

TABLE_HEADERS = ("Collection", "No. of indexes", "Indexes")


def _table_line(cells: Sequence[str], widths: Sequence[int]) -> str:
    return "| " + " | ".join(c.ljust(w) for c, w in zip(cells, widths)) + " |"


def render_table(summary: CloneSummary) -> str:
    """Box table of the summary; index names are stacked inside one cell."""
    rows: List[List[List[str]]] = [
        [[e.collection], [str(e.index_count)], list(e.index_names) or [""]]
        for e in summary.entries
    ]
    widths = [len(h) for h in TABLE_HEADERS]
    for row in rows:
        for col, lines in enumerate(row):
            widths[col] = max(widths[col], *(len(s) for s in lines))

    sep = "+" + "+".join("-" * (w + 2) for w in widths) + "+"
    out = [sep, _table_line(TABLE_HEADERS, widths), sep]
    for row in rows:
        height = max(len(lines) for lines in row)
        for i in range(height):
            out.append(_table_line([lines[i] if i < len(lines) else "" for lines in row], widths))
        out.append(sep)
    return "\n".join(out)


def summary_payload(summary: CloneSummary, error: Optional[CloneError] = None) -> Dict[str, Any]:
    payload = summary.model_dump()
    payload["ok"] = summary.ok and error is None
    payload["created_count"] = summary.created_count
    payload["failed_count"] = summary.failed_count
    payload["error"] = error.to_dict() if error is not None else None
    return payload


def write_json(path: Path, summary: CloneSummary, error: Optional[CloneError] = None) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary_payload(summary, error), ensure_ascii=False, indent=2), encoding="utf-8")


class TerminalReporter(CloneObserver):
    """Progress bar plus one line per index operation, then the summary table."""

    def __init__(self, out: Optional[TextIO] = None, progress: bool = True):
        self.out = out or sys.stdout
        self.progress = progress
        self._bar: Optional[tqdm] = None

    def on_collections_resolved(self, shared: List[str], source_count: int, dest_count: int) -> None:
        self._write(f"[INFO] Got {len(shared)} collection(s) matching in both databases "
                    f"(source {source_count}, destination {dest_count})")
        self._bar = tqdm(total=len(shared), desc="Collections", unit="col", disable=not self.progress)

    def on_collection_start(self, collection: str, indexes: List[IndexDescriptor]) -> None:
        self._write(f"[COLLECTION] {collection}: {len(indexes)} index(es) on source")

    def on_index_created(self, collection: str, index: IndexDescriptor) -> None:
        self._write(f"[OK] created index {index.name} in collection {collection}")

    def on_index_skipped(self, collection: str, index: IndexDescriptor, reason: str) -> None:
        self._write(f"[SKIP] index {index.name} in collection {collection}: {reason}")

    def on_index_failed(self, collection: str, index: IndexDescriptor, error: CreateError) -> None:
        self._write(f"[FAIL] index {index.name} in collection {collection}: {error.message}")

    def on_collection_done(self, entry: CollectionSummary) -> None:
        if self._bar is not None:
            self._bar.update(1)

    def on_run_complete(self, summary: CloneSummary) -> None:
        self.close()
        if summary.ok:
            self._write(f"[DONE] Created all {len(summary.entries)} collections' indexes successfully "
                        f"({summary.created_count} index(es) created)")
        else:
            self._write(f"[DONE] Finished with {summary.failed_count} failed index(es) "
                        f"({summary.created_count} created)")
        print(render_table(summary), file=self.out)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None

    def _write(self, line: str) -> None:
        # tqdm.write keeps the bar intact below the message
        tqdm.write(line, file=self.out)
