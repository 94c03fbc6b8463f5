#!/usr/bin/env python3
"""
CatMatch management CLI.

Usage:
    python manage.py serve                 Run the API server
    python manage.py migrate               Apply pending database migrations
    python manage.py migrate --status      Show applied/pending migrations
    python manage.py migrate --verify      Check schema integrity
    python manage.py load-catalog FILE     Load a catalog fixture (JSON)
"""

import argparse
import asyncio
import sys
from pathlib import Path


def cmd_serve(args: argparse.Namespace) -> None:
    """Run uvicorn in the foreground."""
    import uvicorn

    from catmatch.config import get_settings

    settings = get_settings()
    host = args.host or settings.api.host
    port = args.port or settings.api.port

    print(f"Starting server on {host}:{port}...")
    # Background processing lives in the server process: always one worker
    uvicorn.run(
        "catmatch.api.main:app",
        host=host,
        port=port,
        reload=args.reload,
    )


def cmd_migrate(args: argparse.Namespace) -> None:
    """Apply migrations, or report their status."""
    from catmatch.infrastructure.storage.sqlite.migrations import (
        get_migration_status,
        initialize_database,
        verify_schema_integrity,
    )

    async def run() -> int:
        if args.status:
            status = await get_migration_status(args.db_path)
            print(f"Database exists: {status.exists}")
            print(f"Current version: {status.current_version or 'N/A'}")
            print(f"Pending migrations: {', '.join(status.pending) or 'none'}")
            if status.modified:
                print(f"Modified after apply: {', '.join(status.modified)}")
            return 0

        if args.verify:
            checks = await verify_schema_integrity(args.db_path)
            for check in checks:
                print(f"[{'PASS' if check.passed else 'FAIL'}] {check.name} {check.detail}".rstrip())
            return 0 if all(c.passed for c in checks) else 1

        results = await initialize_database(args.db_path, create_backup_before=not args.no_backup)
        if not results:
            print("Database is up to date.")
        for result in results:
            status = "SUCCESS" if result.success else "FAILED"
            print(f"[{status}] v{result.version}: {result.name} ({result.execution_time_ms}ms)")
            if result.error:
                print(f"         Error: {result.error}")
        return 0 if all(r.success for r in results) else 1

    sys.exit(asyncio.run(run()))


def cmd_load_catalog(args: argparse.Namespace) -> None:
    """Load categories, subcategories and entries from a JSON fixture."""
    from catmatch.application.use_cases import LoadCatalogUseCase
    from catmatch.core.exceptions import CatMatchError
    from catmatch.infrastructure.storage.sqlite import close_pool
    from catmatch.infrastructure.storage.sqlite.migrations import run_migrations

    if not args.file.exists():
        print(f"File not found: {args.file}")
        sys.exit(1)

    async def run() -> int:
        await run_migrations()
        try:
            result = await LoadCatalogUseCase().execute_file(args.file)
        except CatMatchError as e:
            print(f"Catalog not loaded: {e.message}")
            return 1
        finally:
            await close_pool()
        print(
            f"Loaded {result.categories} categories, {result.subcategories} subcategories, "
            f"{result.entries} entries."
        )
        return 0

    sys.exit(asyncio.run(run()))


def main() -> None:
    parser = argparse.ArgumentParser(
        description="CatMatch management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # serve
    p_serve = sub.add_parser("serve", help="Run the API server")
    p_serve.add_argument("--host", default=None, help="Bind host (default from settings)")
    p_serve.add_argument("--port", type=int, default=None, help="Bind port (default from settings)")
    p_serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    p_serve.set_defaults(func=cmd_serve)

    # migrate
    p_migrate = sub.add_parser("migrate", help="Apply database migrations")
    p_migrate.add_argument("--db-path", type=Path, default=None, help="Database path")
    p_migrate.add_argument("--status", action="store_true", help="Show migration status")
    p_migrate.add_argument("--verify", action="store_true", help="Verify schema integrity")
    p_migrate.add_argument("--no-backup", action="store_true", help="Skip backup before migrating")
    p_migrate.set_defaults(func=cmd_migrate)

    # load-catalog
    p_load = sub.add_parser("load-catalog", help="Load a catalog fixture")
    p_load.add_argument("file", type=Path, help="JSON file with categories, subcategories, entries")
    p_load.set_defaults(func=cmd_load_catalog)

    args = parser.parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
