"""
`project-finder` command line interface.

Commands
--------
project-finder index --projects projects.yaml         -- sync the vector index
project-finder index --projects projects.json --fallback-only
project-finder search "<query>"                       -- search the restored index
project-finder search "<query>" --projects FILE       -- refresh from FILE, then search
project-finder search "<query>" --limit 10 --threshold 0.6 --json
project-finder search "*"                             -- list projects, score 0
project-finder list                                   -- every indexed project
project-finder clear                                  -- wipe the vector index
project-finder variants <KEY> "<Name>"                -- show derived spellings
project-finder config                                 -- print effective settings

A projects file is a JSON or YAML list of ``{key, name}`` mappings, or a
mapping with a ``projects`` list.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

import yaml

from .cli_display import format_matches, setup_logger
from .clients import EmbeddingConfigError, create_embedding_client
from .config import Config
from .finder import DEFAULT_FIND_LIMIT, WILDCARD, ProjectFinder
from .resolver import ProjectResolver
from .transliterate import en_to_ru_variants
from .variants import Project, coerce_projects, derive_variants
from .vector_store import create_vector_store

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class CLIError(Exception):
    """User-facing error; printed and mapped to exit status 1."""


def load_projects(path: str) -> list[Project]:
    """Read a JSON or YAML projects file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            # YAML is a superset of JSON
            data = yaml.safe_load(f)
    except OSError as e:
        raise CLIError(f"Cannot read projects file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise CLIError(f"Invalid projects file {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("projects")
    if not isinstance(data, list):
        raise CLIError(f"{path}: expected a list of {{key, name}} entries")
    try:
        return coerce_projects(item for item in data if isinstance(item, dict))
    except ValueError as e:
        raise CLIError(f"{path}: {e}") from e


async def _no_embeddings(texts: list[str]) -> list[None]:
    return [None] * len(texts)


def _build_resolver(config: Config) -> ProjectResolver:
    try:
        embed_fn = create_embedding_client(config)
    except EmbeddingConfigError as e:
        raise CLIError(str(e)) from e
    store = create_vector_store(config.VECTOR_STORE, config.VECTOR_STORE_PATH)
    return ProjectResolver(
        store,
        embed_fn or _no_embeddings,
        cache_ttl=config.CACHE_TTL_SECONDS,
        batch_token_limit=config.BATCH_TOKEN_LIMIT,
        show_progress=config.SHOW_PROGRESS,
    )


def _print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


# ---------------------------------------------------------------------------
# Sub-command handlers
# ---------------------------------------------------------------------------

async def _cmd_index(args: argparse.Namespace, config: Config) -> None:
    projects = load_projects(args.projects)
    fallback_only = args.fallback_only or not config.semantic_enabled
    if fallback_only and not args.fallback_only:
        print("Embedding provider is 'none'; updating the in-memory cache only.")
    resolver = _build_resolver(config)
    try:
        if fallback_only:
            await resolver.update_cache_only_for_fallback(projects)
            print(f"Cached {resolver.project_count} project(s) for exact/substring search.")
            return
        update = await resolver.update_projects_cache(projects)
        print(f"Indexed {len(projects)} project(s): "
              f"{len(update.reindexed)} re-indexed, {len(update.deleted)} deleted, "
              f"{update.records} row(s) written.")
        if update.skipped_variants:
            print(f"  {update.skipped_variants} variant(s) could not be embedded.")
    finally:
        await resolver.close()


async def _cmd_search(args: argparse.Namespace, config: Config) -> None:
    source = None
    if args.projects:
        projects = load_projects(args.projects)

        async def source():
            return projects

    if args.query.strip() == WILDCARD:
        limit = args.limit or DEFAULT_FIND_LIMIT
    else:
        limit = args.limit or config.SEARCH_LIMIT
    threshold = args.threshold if args.threshold is not None else config.SEARCH_THRESHOLD

    resolver = _build_resolver(config)
    try:
        finder = ProjectFinder(
            resolver, source,
            update_interval=config.UPDATE_INTERVAL_SECONDS,
            semantic_enabled=config.semantic_enabled,
        )
        result = await finder.find(args.query, limit, threshold)
        matches = result.matches
    finally:
        await resolver.close()

    if args.json:
        _print_json([m.to_dict() for m in matches])
    else:
        print(format_matches(matches, args.query))


async def _cmd_list(args: argparse.Namespace, config: Config) -> None:
    resolver = _build_resolver(config)
    try:
        projects = await resolver.get_all_projects()
    finally:
        await resolver.close()
    if args.json:
        _print_json([{"key": p.key, "name": p.name} for p in projects])
        return
    if not projects:
        print("  (index is empty; run `project-finder index --projects FILE`)")
        return
    for p in projects:
        print(f"  {p.key:<12}  {p.name}")


async def _cmd_clear(args: argparse.Namespace, config: Config) -> None:
    resolver = _build_resolver(config)
    try:
        await resolver.clear()
    finally:
        await resolver.close()
    print("Project index cleared.")


def _cmd_variants(args: argparse.Namespace) -> None:
    record = derive_variants(args.key, args.name)
    print(f"key:  {record.key}")
    print(f"name: {record.name}")
    for field_name in (
        "key_lowercase", "name_lowercase",
        "transliterated_key_lowercase", "transliterated_key_uppercase",
        "transliterated_name_lowercase", "transliterated_name_uppercase",
    ):
        print(f"  {field_name:<31} {getattr(record, field_name)}")
    print("search texts: " + ", ".join(record.search_texts()))
    print("cyrillic spellings of key: " + ", ".join(en_to_ru_variants(record.key)))


def _cmd_config(args: argparse.Namespace, config: Config) -> None:
    print(yaml.safe_dump(config.to_dict(), sort_keys=False, allow_unicode=True), end="")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="project-finder",
        description="Resolve fuzzy or transliterated queries to project keys.",
    )
    parser.add_argument("--config", help="Path to a .project_finder.yaml file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log debug output to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    index_p = sub.add_parser("index", help="Sync the vector index with a projects file")
    index_p.add_argument("--projects", required=True, help="JSON/YAML list of {key, name}")
    index_p.add_argument("--fallback-only", action="store_true",
                         help="Only rebuild the in-memory cache; skip embeddings")

    search_p = sub.add_parser("search", help="Search for a project")
    search_p.add_argument("query",
                          help="Project key, name or part of it; '*' lists projects "
                               "(50 unless --limit)")
    search_p.add_argument("--projects", help="Refresh from this projects file first")
    search_p.add_argument("--limit", type=int, default=None, help="Maximum results")
    search_p.add_argument("--threshold", type=float, default=None,
                          help="Maximum cosine distance for vector matches")
    search_p.add_argument("--json", action="store_true", help="Print JSON")

    list_p = sub.add_parser("list", help="List every indexed project")
    list_p.add_argument("--json", action="store_true", help="Print JSON")

    sub.add_parser("clear", help="Remove every project from the index")

    variants_p = sub.add_parser("variants", help="Show derived spellings for a project")
    variants_p.add_argument("key")
    variants_p.add_argument("name")

    sub.add_parser("config", help="Print the effective configuration")
    return parser


_ASYNC_COMMANDS = {
    "index": _cmd_index,
    "search": _cmd_search,
    "list": _cmd_list,
    "clear": _cmd_clear,
}


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "variants":
        _cmd_variants(args)
        return 0

    config = Config.load(args.config)
    if args.command == "config":
        _cmd_config(args, config)
        return 0

    setup_logger(config.LOG_DIR, verbose=args.verbose)
    try:
        asyncio.run(_ASYNC_COMMANDS[args.command](args, config))
    except CLIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
