"""CLI for the project collection and one-off idea runs."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from ..config.runtime import get_settings
from ..domain.project import ProjectRecord
from ..observability import configure_logging
from ..ports.lifecycle import aclose_all
from ..safety.json_parser import ParseError, ParseLimits, safe_parse
from .errors import handle_error


def load_projects_from_file(path: Path) -> list[ProjectRecord]:
    """Load project records from a JSON array file. Exits on a missing or malformed file."""
    if not path.exists():
        print(f"Error: projects file not found: {path}", file=sys.stderr)
        sys.exit(1)
    try:
        raw = safe_parse(path.read_text(encoding="utf-8"), limits=ParseLimits.from_settings(get_settings()))
    except ParseError as e:
        print(f"Error: {path}: {e}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(raw, list):
        print("Error: JSON file must contain a list of project objects.", file=sys.stderr)
        sys.exit(1)
    records: list[ProjectRecord] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            print(f"Error: invalid project at index {i}: expected an object", file=sys.stderr)
            sys.exit(1)
        records.append(ProjectRecord.from_payload(item))
    return records


async def _create(dimension: int | None) -> None:
    from ..wiring import build_index_service

    service = build_index_service()
    try:
        result = await service.ensure_collection(dimension)
    finally:
        await aclose_all(service)
    if result["created"]:
        print(f"Created collection: {result['name']} (dimension {result['dimension']})")
    else:
        print(f"Collection already exists: {result['name']}")


async def _info() -> None:
    from ..wiring import build_index_service

    service = build_index_service()
    try:
        info = await service.collection_info()
    finally:
        await aclose_all(service)
    print(f"Collection: {info['name']}")
    print(f"Status: {info['status']}")
    print(f"Points count: {info['points_count']}")
    print(f"Indexed vectors count: {info['indexed_vectors_count']}")


async def _seed(path: Path) -> None:
    from ..wiring import build_index_service

    records = load_projects_from_file(path)
    print(f"Adding {len(records)} projects from {path}...")
    service = build_index_service()
    try:
        count = await service.upsert_projects(records)
    finally:
        await aclose_all(service)
    print(f"Successfully added {count} projects.")


async def _generate(prize: str) -> int:
    from ..wiring import build_endpoints

    endpoints = build_endpoints()
    try:
        response = await endpoints.generate.handle({"prize": prize}, client_id="cli")
    finally:
        await aclose_all(endpoints)
    print(json.dumps(response.body, ensure_ascii=False, indent=2))
    return 0 if response.status == 200 else 1


async def _search(idea: str, limit: int | None) -> int:
    from ..wiring import build_endpoints

    endpoints = build_endpoints()
    try:
        response = await endpoints.search.handle({"idea": idea, "limit": limit}, client_id="cli")
    finally:
        await aclose_all(endpoints)
    print(json.dumps(response.body, ensure_ascii=False, indent=2))
    return 0 if response.status == 200 else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="ideasynth", description="Idea synthesis over a Qdrant project showcase")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    create_parser = subparsers.add_parser("create", help="Create the Qdrant collection")
    create_parser.add_argument(
        "--dimension",
        type=int,
        default=None,
        help="Embedding dimension (default: EMBEDDING_DIMENSION, 768)",
    )

    subparsers.add_parser("info", help="Show collection information")

    seed_parser = subparsers.add_parser("seed", help="Embed projects from a JSON file and add them to the collection")
    seed_parser.add_argument("--file", type=Path, required=True, help="Path to a JSON array of project objects")

    generate_parser = subparsers.add_parser("generate", help="Generate an idea for a prize description")
    generate_parser.add_argument("--prize", required=True, help="Prize or topic description")

    search_parser = subparsers.add_parser("search", help="List past projects similar to an idea")
    search_parser.add_argument("--idea", required=True, help="Idea text")
    search_parser.add_argument("--limit", type=int, default=None, help="Maximum projects (1-50)")

    serve_parser = subparsers.add_parser("serve", help="Run the MCP server over stdio")
    serve_parser.add_argument("--mode", choices=["engine", "studio"], default=None, help="Server surface")

    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        if args.command == "create":
            asyncio.run(_create(args.dimension))
        elif args.command == "info":
            asyncio.run(_info())
        elif args.command == "seed":
            asyncio.run(_seed(args.file))
        elif args.command == "generate":
            return asyncio.run(_generate(args.prize))
        elif args.command == "search":
            return asyncio.run(_search(args.idea, args.limit))
        elif args.command == "serve":
            from .mcp.server import run_server

            run_server(args.mode or settings.mcp_mode.value, settings)
        else:
            parser.print_help()
    except Exception as exc:
        response = handle_error(exc, {"command": args.command}, debug=settings.expose_error_details, locale=settings.locale)
        print(json.dumps(response.body, ensure_ascii=False, indent=2), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
