"""Command-line interface for managing document sets."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Awaitable, Callable

import anyio
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from docset_store.config import Settings
from docset_store.loaders import load_chunks_jsonl
from docset_store.storage import (
    ChromaStorage,
    StorageConnectionError,
    StorageError,
    parse_filters,
)
from docset_store.storage.base import DocumentSet, StorageService

type Handler = Callable[[StorageService, argparse.Namespace, Console], Awaitable[int]]


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Manage document sets stored in ChromaDB."
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit results as JSON to stdout.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("health", help="Check that ChromaDB is reachable.")
    subparsers.add_parser("list-sets", help="List all document sets.")

    create_parser = subparsers.add_parser("create-set", help="Create a document set.")
    create_parser.add_argument("name", type=str, help="Document set name.")
    create_parser.add_argument(
        "--description",
        type=str,
        default=None,
        help="Optional description stored with the set.",
    )

    show_parser = subparsers.add_parser("show-set", help="Show one document set.")
    show_parser.add_argument("name", type=str, help="Document set name.")

    delete_parser = subparsers.add_parser(
        "delete-set", help="Delete a document set and all of its chunks."
    )
    delete_parser.add_argument("name", type=str, help="Document set name.")

    docs_parser = subparsers.add_parser(
        "list-docs", help="List the logical documents in a set."
    )
    docs_parser.add_argument("name", type=str, help="Document set name.")

    ingest_parser = subparsers.add_parser(
        "ingest", help="Add chunk records from a JSONL file."
    )
    ingest_parser.add_argument("name", type=str, help="Document set name.")
    ingest_parser.add_argument(
        "--input",
        type=Path,
        required=True,
        help="JSONL file with id, content, embedding and metadata per line.",
    )

    search_parser = subparsers.add_parser(
        "search", help="Search a set with a query embedding."
    )
    search_parser.add_argument("name", type=str, help="Document set name.")
    embedding_group = search_parser.add_mutually_exclusive_group(required=True)
    embedding_group.add_argument(
        "--embedding",
        type=str,
        help="Query embedding as a JSON array.",
    )
    embedding_group.add_argument(
        "--embedding-file",
        type=Path,
        help="Path to a JSON file holding the query embedding.",
    )
    search_parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum number of results.",
    )
    search_parser.add_argument(
        "--filters",
        type=str,
        default=None,
        help='Metadata filters as JSON, e.g. \'{"document_type": ["a", "b"]}\'.',
    )

    delete_chunk_parser = subparsers.add_parser(
        "delete-chunk", help="Delete a single chunk record."
    )
    delete_chunk_parser.add_argument("name", type=str, help="Document set name.")
    delete_chunk_parser.add_argument("chunk_id", type=str, help="Chunk record id.")

    return parser.parse_args(argv)


def _load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as exc:
        print("Configuration error:")
        for error in exc.errors():
            field = error.get("loc", ("unknown",))[0]
            msg = error.get("msg", "Invalid value")
            print(f"  {field}: {msg}")
        raise


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, default=str))


def _set_payload(document_set: DocumentSet) -> dict[str, Any]:
    payload = asdict(document_set)
    payload["created_at"] = document_set.created_at.isoformat()
    return payload


def _sets_table(document_sets: list[DocumentSet]) -> Table:
    table = Table(title="Document sets")
    table.add_column("Name")
    table.add_column("Description")
    table.add_column("Created")
    table.add_column("Chunks", justify="right")
    for document_set in document_sets:
        table.add_row(
            document_set.name,
            document_set.description,
            document_set.created_at.isoformat(timespec="seconds"),
            str(document_set.document_count),
        )
    return table


def _load_embedding(args: argparse.Namespace) -> list[float]:
    if args.embedding_file is not None:
        raw = json.loads(args.embedding_file.read_text(encoding="utf-8"))
    else:
        raw = json.loads(args.embedding)
    if not isinstance(raw, list) or not raw:
        raise ValueError("Query embedding must be a non-empty JSON array.")
    if not all(
        isinstance(value, (int, float)) and not isinstance(value, bool) for value in raw
    ):
        raise ValueError("Query embedding must contain only numbers.")
    return [float(value) for value in raw]


async def _health(
    storage: StorageService, args: argparse.Namespace, console: Console
) -> int:
    healthy = await storage.health_check()
    if args.json:
        _print_json({"healthy": healthy})
    elif healthy:
        console.print("[green]ChromaDB is reachable.[/green]")
    else:
        console.print("[red]ChromaDB is not reachable.[/red]")
    return 0 if healthy else 1


async def _list_sets(
    storage: StorageService, args: argparse.Namespace, console: Console
) -> int:
    document_sets = await storage.list_document_sets()
    if args.json:
        _print_json([_set_payload(item) for item in document_sets])
    else:
        console.print(_sets_table(document_sets))
    return 0


async def _create_set(
    storage: StorageService, args: argparse.Namespace, console: Console
) -> int:
    document_set = await storage.create_document_set(args.name, args.description)
    if args.json:
        _print_json(_set_payload(document_set))
    else:
        console.print(f"Created document set [bold]{document_set.name}[/bold]")
    return 0


async def _show_set(
    storage: StorageService, args: argparse.Namespace, console: Console
) -> int:
    document_set = await storage.get_document_set(args.name)
    if document_set is None:
        if args.json:
            _print_json(None)
        else:
            console.print(f"[yellow]Document set '{args.name}' not found.[/yellow]")
        return 1
    if args.json:
        _print_json(_set_payload(document_set))
    else:
        console.print(_sets_table([document_set]))
    return 0


async def _delete_set(
    storage: StorageService, args: argparse.Namespace, console: Console
) -> int:
    await storage.delete_document_set(args.name)
    if args.json:
        _print_json({"deleted": args.name})
    else:
        console.print(f"Deleted document set [bold]{args.name}[/bold]")
    return 0


async def _list_docs(
    storage: StorageService, args: argparse.Namespace, console: Console
) -> int:
    documents = await storage.list_documents(args.name)
    if args.json:
        _print_json([asdict(document) for document in documents])
        return 0

    table = Table(title=f"Documents in {args.name}")
    table.add_column("Document id")
    table.add_column("Source file")
    table.add_column("MIME type")
    table.add_column("Size", justify="right")
    table.add_column("Created")
    for document in documents:
        table.add_row(
            document.id,
            document.source_file,
            document.mime_type,
            str(document.size_bytes),
            document.created_at,
        )
    console.print(table)
    return 0


async def _ingest(
    storage: StorageService, args: argparse.Namespace, console: Console
) -> int:
    chunks = load_chunks_jsonl(args.input)
    await storage.add_documents(args.name, chunks)
    if args.json:
        _print_json({"set": args.name, "added": len(chunks)})
    else:
        console.print(f"Added {len(chunks)} chunk records to [bold]{args.name}[/bold]")
    return 0


async def _search(
    storage: StorageService, args: argparse.Namespace, console: Console
) -> int:
    embedding = _load_embedding(args)
    filters = parse_filters(json.loads(args.filters)) if args.filters else None
    results = await storage.search_documents(
        args.name, embedding, limit=args.limit, filters=filters
    )
    if args.json:
        _print_json([asdict(result) for result in results])
        return 0

    if not results:
        console.print("No results.")
        return 0
    for rank, result in enumerate(results, start=1):
        source = result.metadata.get("source_file", "")
        console.print(
            f"[bold]{rank}.[/bold] {result.id} "
            f"[dim](similarity {result.similarity:.3f}, {source})[/dim]"
        )
        console.print(f"   {result.content[:200]}")
    return 0


async def _delete_chunk(
    storage: StorageService, args: argparse.Namespace, console: Console
) -> int:
    await storage.delete_document(args.name, args.chunk_id)
    if args.json:
        _print_json({"deleted": args.chunk_id, "set": args.name})
    else:
        console.print(f"Deleted chunk [bold]{args.chunk_id}[/bold] from {args.name}")
    return 0


_HANDLERS: dict[str, Handler] = {
    "health": _health,
    "list-sets": _list_sets,
    "create-set": _create_set,
    "show-set": _show_set,
    "delete-set": _delete_set,
    "list-docs": _list_docs,
    "ingest": _ingest,
    "search": _search,
    "delete-chunk": _delete_chunk,
}


async def _run_command(args: argparse.Namespace) -> int:
    try:
        settings = _load_settings()
    except ValidationError:
        return 1
    _configure_logging(settings.log_level)

    console = Console()
    handler = _HANDLERS[args.command]
    try:
        async with ChromaStorage(settings) as storage:
            return await handler(storage, args, console)
    except StorageConnectionError as exc:
        console.print(f"[red]Failed to connect to ChromaDB:[/red] {exc.detail}")
        console.print(
            f"\n[dim]Check your ChromaDB connection settings:[/dim]\n"
            f"  Host: {settings.chroma_host}\n"
            f"  Port: {settings.chroma_port}"
        )
        return 1
    except StorageError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        return 1
    except (ValueError, OSError) as exc:
        console.print(f"[red]Invalid input:[/red] {exc}")
        return 1


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    return anyio.run(_run_command, args)


if __name__ == "__main__":
    raise SystemExit(main())
