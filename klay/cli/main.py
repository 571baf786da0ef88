"""Standalone CLI for building and querying a klay knowledge base.

Usage::

    python -m klay.cli ingest --file /path/to/notes.md --source-id notes

    python -m klay.cli search --query "vector similarity" --top-k 3

    python -m klay.cli lineage --unit notes

    python -m klay.cli deprecate --unit notes --reason "superseded"

Every command uses the backend configured through ``config/config.yaml``
and the environment.  With ``BACKEND=in_memory`` nothing survives the
process, so ``embedded`` or ``remote`` is the useful choice here.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import uuid
from pathlib import Path

from klay.composition import Backend, KlayContainer, build_container
from klay.config.loader import load_settings
from klay.models.pipeline import ExecutePipelineInput
from klay.models.source import SourceType
from klay.utils.errors import ConfigurationError, PipelineError
from klay.utils.logging import configure_logging

_SUFFIX_TO_TYPE: dict[str, SourceType] = {
    ".pdf": SourceType.PDF,
    ".html": SourceType.WEB,
    ".htm": SourceType.WEB,
    ".json": SourceType.JSON,
    ".md": SourceType.MARKDOWN,
    ".markdown": SourceType.MARKDOWN,
    ".csv": SourceType.CSV,
    ".txt": SourceType.PLAIN_TEXT,
}


def source_type_for(path: str) -> SourceType:
    """Guess the source type from a file suffix; unknown suffixes are plain text."""
    return _SUFFIX_TO_TYPE.get(Path(path).suffix.lower(), SourceType.PLAIN_TEXT)


async def _handle_ingest(args: argparse.Namespace, container: KlayContainer) -> int:
    """Run the full pipeline for one file."""
    path = Path(args.file)
    source_type = SourceType(args.type) if args.type else source_type_for(args.file)
    unit_id = args.unit_id or args.source_id
    print(f"Ingesting {path} as {source_type.value} (source: {args.source_id})")

    result = await container.pipeline.execute(
        ExecutePipelineInput(
            source_id=args.source_id,
            source_name=args.name or path.name,
            uri=str(path.resolve()),
            source_type=source_type,
            extraction_job_id=f"job-{uuid.uuid4().hex[:12]}",
            projection_id=f"proj-{uuid.uuid4().hex[:12]}",
            semantic_unit_id=unit_id,
            tags=list(args.tag or []),
        )
    )
    if result.is_fail():
        error = result.error
        print(f"Error: {error.message}", file=sys.stderr)
        if isinstance(error, PipelineError):
            done = ", ".join(s.value for s in error.completed_steps) or "none"
            print(f"  Completed steps: {done}", file=sys.stderr)
        return 1

    value = result.value
    print("\nIngestion complete:")
    print(f"  Unit ID:        {value.unit_id}")
    print(f"  Characters:     {value.extracted_text_length}")
    print(f"  Chunks created: {value.chunks_count}")
    print(f"  Dimensions:     {value.dimensions}")
    print(f"  Model:          {value.model}")
    print(f"  Content hash:   {value.content_hash[:16]}")
    return 0


async def _handle_search(args: argparse.Namespace, container: KlayContainer) -> int:
    result = await container.retrieval.query(
        args.query, top_k=args.top_k, min_score=args.min_score
    )
    if result.is_fail():
        print(f"Error: {result.error.message}", file=sys.stderr)
        return 1

    items = result.value.items
    if not items:
        print("No results.")
        return 0
    for rank, item in enumerate(items, start=1):
        snippet = " ".join(item.content.split())[:100]
        print(f"{rank:>2}. [{item.score:.3f}] {item.semantic_unit_id} v{item.version}")
        print(f"    {snippet}")
    return 0


async def _handle_lineage(args: argparse.Namespace, container: KlayContainer) -> int:
    unit = await container.knowledge.get_unit(args.unit)
    if unit.is_fail():
        print(f"Error: {unit.error.message}", file=sys.stderr)
        return 1
    lineage = await container.knowledge.get_lineage(args.unit)
    if lineage.is_fail():
        print(f"Error: {lineage.error.message}", file=sys.stderr)
        return 1

    current = unit.value
    print(f"Unit {current.id}  version {current.current_version}  status {current.status.value}")
    print("=" * 40)
    for t in lineage.value.transformations:
        reason = f"  ({t.reason})" if t.reason else ""
        print(
            f"  v{t.input_version} -> v{t.output_version}  "
            f"{t.type.value:<14} {t.occurred_at:%Y-%m-%d %H:%M:%S}{reason}"
        )
    return 0


async def _handle_deprecate(args: argparse.Namespace, container: KlayContainer) -> int:
    outcome = await container.knowledge.deprecate_unit(args.unit, args.reason)
    if outcome.is_fail():
        print(f"Error: {outcome.error.message}", file=sys.stderr)
        return 1
    print(f"Deprecated {args.unit} at version {outcome.value.current_version}")
    return 0


_HANDLERS = {
    "ingest": _handle_ingest,
    "search": _handle_search,
    "lineage": _handle_lineage,
    "deprecate": _handle_deprecate,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="klay",
        description="Build and query a klay knowledge base.",
    )
    parser.add_argument(
        "--config", default="config/config.yaml", help="Path to the YAML config file"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    ingest = subparsers.add_parser("ingest", help="Ingest, project and catalog one file")
    ingest.add_argument("--file", required=True, help="Path to the document")
    ingest.add_argument("--source-id", required=True, help="Unique source id")
    ingest.add_argument("--unit-id", help="Semantic unit id (defaults to the source id)")
    ingest.add_argument("--name", help="Display name (defaults to the file name)")
    ingest.add_argument(
        "--type",
        choices=[t.value for t in SourceType],
        help="Source type (guessed from the file suffix when omitted)",
    )
    ingest.add_argument("--tag", action="append", help="Tag to attach; repeatable")

    search = subparsers.add_parser("search", help="Semantic search over ingested content")
    search.add_argument("--query", required=True, help="Query text")
    search.add_argument("--top-k", type=int, default=5, help="Maximum results")
    search.add_argument("--min-score", type=float, default=0.0, help="Minimum cosine score")

    lineage = subparsers.add_parser("lineage", help="Show a unit's version history")
    lineage.add_argument("--unit", required=True, help="Semantic unit id")

    deprecate = subparsers.add_parser("deprecate", help="Deprecate an active unit")
    deprecate.add_argument("--unit", required=True, help="Semantic unit id")
    deprecate.add_argument("--reason", required=True, help="Why the unit is deprecated")
    return parser


async def _run(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    configure_logging(settings.log_level)
    try:
        container = await build_container(settings)
    except ConfigurationError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    if container.backend is Backend.IN_MEMORY:
        print("Note: in_memory backend; nothing is kept after this command.", file=sys.stderr)
    return await _HANDLERS[args.command](args, container)


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
