"""Clone MongoDB indexes from one database to another (same server or not).

Only collections present in both databases are processed. The ``_id_`` index is
reported but never created, the server builds it with the collection.
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from index_clone import __version__
from index_clone.config import CloneConfig, ConflictPolicy, FailurePolicy
from index_clone.engine import IndexCloner
from index_clone.errors import EXIT_CREATE, EXIT_OK, CloneError, UnexpectedError
from index_clone.mongo import MongoBackend
from index_clone.reporter import TerminalReporter, write_json

log = logging.getLogger("index_clone")


def setup_logger(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(asctime)s - %(message)s",
    )
    # pymongo is chatty at DEBUG
    logging.getLogger("pymongo").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="mongo-index-clone", description=__doc__)
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument(
        "-f", "--from", dest="source_uri", metavar="URI",
        default=os.getenv("INDEX_CLONE_FROM"),
        help="Mongo URI to copy indexes from (ex. mongodb://localhost:27017/my_database)",
    )
    ap.add_argument(
        "-t", "--to", dest="dest_uri", metavar="URI",
        default=os.getenv("INDEX_CLONE_TO"),
        help="Mongo URI to copy indexes to (ex. mongodb://localhost:27017/my_other_database)",
    )
    ap.add_argument(
        "-b", "--background", action=argparse.BooleanOptionalAction, default=True,
        help="create indexes in background",
    )
    ap.add_argument(
        "--on-conflict", choices=[p.value for p in ConflictPolicy], default=ConflictPolicy.ERROR.value,
        help="destination already has an index with the same name: "
             "error = let the server decide, skip = leave it, overwrite = drop and recreate "
             "when the key differs, restoring the old index if the create fails (default: %(default)s)",
    )
    ap.add_argument(
        "--on-failure", choices=[p.value for p in FailurePolicy], default=FailurePolicy.FAIL_FAST.value,
        help="stop at the first failed index or keep going (default: %(default)s)",
    )
    ap.add_argument("--timeout-ms", type=int, default=10_000, help="per network call timeout (default: %(default)s)")
    ap.add_argument("--deadline", type=float, default=None, help="overall run deadline in seconds")
    ap.add_argument("--report-json", type=Path, default=None, help="also write the summary (or error) as JSON")
    ap.add_argument("--no-progress", action="store_true", help="disable the progress bar")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap


def parse_config(ap: argparse.ArgumentParser, args: argparse.Namespace) -> CloneConfig:
    if not args.source_uri:
        ap.error("--from is required (or set INDEX_CLONE_FROM)")
    if not args.dest_uri:
        ap.error("--to is required (or set INDEX_CLONE_TO)")
    try:
        return CloneConfig(
            source_uri=args.source_uri,
            dest_uri=args.dest_uri,
            background=args.background,
            conflict_policy=ConflictPolicy(args.on_conflict),
            failure_policy=FailurePolicy(args.on_failure),
            timeout_ms=args.timeout_ms,
            deadline_seconds=args.deadline,
        )
    except ValidationError as e:
        problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        ap.error(problems)


def main(argv: Sequence[str] | None = None, backend=None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    setup_logger(args.verbose)
    config = parse_config(ap, args)

    reporter = TerminalReporter(progress=not args.no_progress)
    cloner = IndexCloner(config, backend or MongoBackend(config.timeout_ms), reporter)
    error: CloneError | None = None
    try:
        summary = cloner.run()
    except CloneError as e:
        error = e
        log.error("%s: %s", e.kind, e.message)
        summary = cloner.summary
    except Exception as e:
        log.exception("unexpected failure")
        error = UnexpectedError(e)
        summary = cloner.summary
    finally:
        reporter.close()

    if args.report_json is not None:
        write_json(args.report_json, summary, error)

    if error is not None:
        return error.exit_code
    return EXIT_OK if summary.ok else EXIT_CREATE
