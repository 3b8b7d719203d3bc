import io
import json

from conftest import idx
from index_clone.errors import CreateError
from index_clone.models import CloneSummary, CollectionSummary, IndexFailure
from index_clone.reporter import TerminalReporter, render_table, write_json


def make_summary() -> CloneSummary:
    return CloneSummary(
        source_collections=3,
        dest_collections=2,
        entries=[
            CollectionSummary(collection="orders", index_names=["_id_", "email_1"], created=["email_1"]),
            CollectionSummary(collection="users", index_names=["_id_"]),
        ],
    )


def test_render_table_stacks_index_names() -> None:
    table = render_table(make_summary())

    assert table.splitlines() == [
        "+------------+----------------+---------+",
        "| Collection | No. of indexes | Indexes |",
        "+------------+----------------+---------+",
        "| orders     | 2              | _id_    |",
        "|            |                | email_1 |",
        "+------------+----------------+---------+",
        "| users      | 1              | _id_    |",
        "+------------+----------------+---------+",
    ]


def test_render_table_for_empty_summary_has_only_headers() -> None:
    lines = render_table(CloneSummary()).splitlines()

    assert len(lines) == 3
    assert "Collection" in lines[1]


def test_terminal_reporter_writes_progress_and_table() -> None:
    out = io.StringIO()
    reporter = TerminalReporter(out=out, progress=False)
    summary = make_summary()

    reporter.on_collections_resolved(["orders", "users"], 3, 2)
    reporter.on_collection_start("orders", [idx("_id_"), idx("email_1", email=1)])
    reporter.on_index_created("orders", idx("email_1", email=1))
    reporter.on_index_skipped("orders", idx("name_1", name=1), "already exists on destination")
    reporter.on_index_failed("orders", idx("age_1", age=1), CreateError("orders", "age_1", "conflict"))
    reporter.on_collection_done(summary.entries[0])
    reporter.on_run_complete(summary)

    text = out.getvalue()
    assert "Got 2 collection(s) matching in both databases" in text
    assert "[OK] created index email_1 in collection orders" in text
    assert "[SKIP] index name_1 in collection orders: already exists on destination" in text
    assert "[FAIL] index age_1 in collection orders: conflict" in text
    assert "Created all 2 collections' indexes successfully" in text
    assert "| orders     | 2              | _id_    |" in text


def test_write_json_includes_failures_and_error(tmp_path) -> None:
    summary = make_summary()
    summary.entries[1].failed.append(IndexFailure(index="x_1", error="boom"))
    path = tmp_path / "out" / "report.json"

    write_json(path, summary, CreateError("users", "x_1", "boom"))

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["ok"] is False
    assert data["created_count"] == 1
    assert data["failed_count"] == 1
    assert data["entries"][0]["index_names"] == ["_id_", "email_1"]
    assert data["error"] == {"kind": "create_error", "message": "boom", "collection": "users", "index": "x_1"}
