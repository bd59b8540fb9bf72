"""CLI entry point for docindex."""

import argparse
import concurrent.futures
import logging
import sys
import threading
from typing import Callable, Literal, Optional, cast

from docindex.app import Services, build_services
from docindex.config import Settings, load_settings
from docindex.errors import DocIndexError
from docindex.models import IndexReport

logger = logging.getLogger(__name__)


def format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def snippet(text: str, limit: int = 200) -> str:
    short = text[:limit].replace("\n", " ")
    return short + "..." if len(text) > limit else short


def run_cancellable(job: Callable[[threading.Event], IndexReport]) -> IndexReport:
    """Run an indexing job in the background; Ctrl+C requests cancellation.

    Files already being processed finish or stop at their next checkpoint;
    nothing half-written is persisted.
    """
    cancel = threading.Event()
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(job, cancel)
        while True:
            try:
                return future.result(timeout=0.2)
            except concurrent.futures.TimeoutError:
                continue
            except KeyboardInterrupt:
                logger.info("Cancelling, waiting for running files to stop...")
                cancel.set()
                return future.result()


def index(services: Services, folder: str, force: bool = False) -> int:
    """Index (or with ``force``, reindex) every supported file under a folder."""
    report = run_cancellable(
        lambda cancel: services.indexer.index_folder(
            folder, status=logger.debug, cancel=cancel, force=force
        )
    )
    for outcome in report.outcomes:
        if outcome.message and outcome.status.value in ("failed", "encrypted", "partial"):
            logger.info(f"  [{outcome.status.value}] {outcome.path}: {outcome.message}")

    logger.info("")
    logger.info(report.summary())
    if report.fatal_error:
        logger.error(f"Stopped: {report.fatal_error}")
        return 1
    return 0


def search(services: Services, query: str, limit: int) -> int:
    results = services.search.search(query, k=limit)
    if not results:
        print(f"No results found for: {query}")
        return 0

    for i, r in enumerate(results, 1):
        print(f"{i}. [{r.score:.3f}] {r.file.path}")
        print(f"   {snippet(r.chunk_text)}")
        print()
    return 0


def ask(services: Services, question: str, limit: int) -> int:
    answer = services.answerer.ask(question, k=limit)
    print(answer.text)
    if answer.sources:
        print()
        print("Sources:")
        seen = set()
        for source in answer.sources:
            if source.file.path not in seen:
                seen.add(source.file.path)
                print(f"  {source.file.path}")
    return 0


def files(services: Services, prefix: str = "") -> int:
    records = services.store.list_files(prefix)
    if not records:
        print(f"No files found matching '{prefix}'")
        return 0

    for record in records:
        chunks = services.store.count_embeddings(record.id)
        marker = "" if record.extracted_text.strip() else "[no text]"
        print(f"{record.path:<60} {format_size(record.size):>10} {chunks:>5} chunks {marker}")
    print()
    print(f"Total: {len(records)} files")
    return 0


def prune(services: Services, folder: Optional[str] = None) -> int:
    removed = services.indexer.prune_missing(under=folder)
    logger.info(f"Removed {removed} entries for files that no longer exist")
    return 0


def serve(services: Services, transport: str = "stdio") -> int:
    """Start the MCP server over the index."""
    # Import here to avoid loading MCP unless needed
    from docindex.server import create_mcp_server

    logger.info(f"Serving {services.settings.storage.database} via {transport}")
    mcp = create_mcp_server(services)
    mcp.run(transport=cast(Literal["stdio", "sse", "streamable-http"], transport))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docindex",
        description="docindex - semantic search over your local documents",
    )
    parser.add_argument("-c", "--config", help="YAML config file (default: ./docindex.yaml)")
    parser.add_argument("--db", help="Index database path (overrides config)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # index / reindex commands
    index_parser = subparsers.add_parser("index", help="Index new and changed files in a folder")
    index_parser.add_argument("folder", help="Folder to index recursively")
    reindex_parser = subparsers.add_parser(
        "reindex", help="Re-extract and re-embed every file in a folder"
    )
    reindex_parser.add_argument("folder", help="Folder to reindex recursively")

    # search command
    search_parser = subparsers.add_parser("search", help="Semantic search over indexed chunks")
    search_parser.add_argument("query", help="Natural language query")
    search_parser.add_argument(
        "-k", "--limit", type=int, default=5, help="Number of results (default: 5)"
    )

    # ask command
    ask_parser = subparsers.add_parser("ask", help="Answer a question from indexed documents")
    ask_parser.add_argument("question", help="Question to answer")
    ask_parser.add_argument(
        "-k", "--limit", type=int, default=5, help="Chunks to ground the answer on (default: 5)"
    )

    # files command
    files_parser = subparsers.add_parser("files", help="List indexed files")
    files_parser.add_argument("prefix", nargs="?", default="", help="Only paths starting with this")

    # prune command
    prune_parser = subparsers.add_parser("prune", help="Drop entries for deleted files")
    prune_parser.add_argument("folder", nargs="?", help="Limit pruning to this folder")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start MCP server over the index")
    serve_parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    return parser


def dispatch(services: Services, args: argparse.Namespace) -> int:
    if args.command == "index":
        return index(services, args.folder)
    elif args.command == "reindex":
        return index(services, args.folder, force=True)
    elif args.command == "search":
        return search(services, args.query, args.limit)
    elif args.command == "ask":
        return ask(services, args.question, args.limit)
    elif args.command == "files":
        return files(services, args.prefix)
    elif args.command == "prune":
        return prune(services, args.folder)
    elif args.command == "serve":
        return serve(services, args.transport)
    raise ValueError(f"Unknown command: {args.command}")


def load(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.config)
    if args.db:
        settings.storage.database = args.db
    return settings


def main(argv: Optional[list[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )

    try:
        services = build_services(load(args))
    except DocIndexError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    try:
        code = dispatch(services, args)
    except DocIndexError as e:
        logger.error(f"Error: {e}")
        code = 1
    finally:
        services.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
