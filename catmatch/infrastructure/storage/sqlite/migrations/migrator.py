"""
Versioned SQL migrations.

Each vNNN_<name>.sql file next to this module is applied once, in version
order. schema_migrations records the version with a checksum of the file;
a file edited after it was applied is reported, never re-run.
"""

import hashlib
import re
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite

from catmatch.config import get_logger, get_settings

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent
MIGRATION_FILE_PATTERN = re.compile(r"^v(?P<version>\d{3,})_(?P<name>\w+)\.sql$")

REQUIRED_TABLES = (
    "categories",
    "subcategories",
    "catalog_entries",
    "uploads",
    "line_items",
    "match_candidates",
    "audit_log",
    "schema_migrations",
)


@dataclass(frozen=True)
class MigrationInfo:
    """A migration script on disk."""

    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        match = MIGRATION_FILE_PATTERN.match(path.name)
        if match is None:
            raise ValueError(f"Invalid migration filename: {path.name}")
        return cls(
            version=match["version"],
            name=match["name"],
            path=path,
            checksum=hashlib.sha256(path.read_bytes()).hexdigest()[:16],
        )


@dataclass
class MigrationResult:
    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


@dataclass
class MigrationStatus:
    """Where a database stands relative to the bundled migrations."""

    exists: bool
    applied: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)

    @property
    def current_version(self) -> str | None:
        return self.applied[-1] if self.applied else None


@dataclass
class SchemaCheck:
    name: str
    passed: bool
    detail: str = ""


def discover_migrations(directory: Path | None = None) -> list[MigrationInfo]:
    """Migration scripts sorted by version; misnamed .sql files are skipped."""
    migrations = []
    for path in (directory or MIGRATIONS_DIR).glob("*.sql"):
        try:
            migrations.append(MigrationInfo.from_file(path))
        except ValueError:
            logger.warning("migration_file_ignored", path=str(path))
    return sorted(migrations, key=lambda m: int(m.version))


async def applied_checksums(conn: aiosqlite.Connection) -> dict[str, str]:
    cursor = await conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'schema_migrations'"
    )
    if await cursor.fetchone() is None:
        return {}
    cursor = await conn.execute("SELECT version, checksum FROM schema_migrations")
    return {row[0]: row[1] for row in await cursor.fetchall()}


async def apply_migration(conn: aiosqlite.Connection, migration: MigrationInfo) -> MigrationResult:
    """Run one script and record it in schema_migrations."""
    started = time.perf_counter()
    try:
        await conn.executescript(migration.path.read_text(encoding="utf-8"))
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        await conn.execute(
            """
            INSERT INTO schema_migrations (version, name, checksum, execution_time_ms)
            VALUES (?, ?, ?, ?)
            """,
            (migration.version, migration.name, migration.checksum, elapsed_ms),
        )
        await conn.commit()
    except aiosqlite.Error as e:
        await conn.rollback()
        logger.error("migration_failed", version=migration.version, error=str(e))
        return MigrationResult(
            migration.version,
            migration.name,
            success=False,
            execution_time_ms=int((time.perf_counter() - started) * 1000),
            error=str(e),
        )

    logger.info(
        "migration_applied",
        version=migration.version,
        name=migration.name,
        execution_time_ms=elapsed_ms,
    )
    return MigrationResult(migration.version, migration.name, True, elapsed_ms)


async def backup_database(conn: aiosqlite.Connection, db_path: Path) -> Path:
    """Snapshot the live database with SQLite's online backup API."""
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    backup_path = db_path.with_name(f"{db_path.stem}.pre-migrate-{stamp}{db_path.suffix}")
    async with aiosqlite.connect(backup_path) as target:
        await conn.backup(target)
    logger.info("database_backup_created", backup_path=str(backup_path))
    return backup_path


async def initialize_database(
    db_path: Path | None = None,
    create_backup_before: bool = True,
    migrations_dir: Path | None = None,
) -> list[MigrationResult]:
    """
    Apply pending migrations, stopping at the first failure.

    An existing database is backed up first when create_backup_before is
    set; the backup is removed again if every migration succeeds and kept
    for manual recovery otherwise.
    """
    db_path = db_path or get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    migrations = discover_migrations(migrations_dir)

    results: list[MigrationResult] = []
    backup_path: Path | None = None

    async with aiosqlite.connect(db_path) as conn:
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA foreign_keys=ON")

        applied = await applied_checksums(conn)
        for migration in migrations:
            if migration.version in applied and applied[migration.version] != migration.checksum:
                logger.warning("applied_migration_modified", version=migration.version)
        pending = [m for m in migrations if m.version not in applied]
        if not pending:
            logger.debug("database_up_to_date", db_path=str(db_path))
            return results

        if create_backup_before and applied:
            backup_path = await backup_database(conn, db_path)

        for migration in pending:
            result = await apply_migration(conn, migration)
            results.append(result)
            if not result.success:
                break

    if backup_path is not None:
        if all(r.success for r in results):
            backup_path.unlink()
        else:
            logger.error("migration_backup_kept", backup_path=str(backup_path))

    logger.info(
        "database_migrated",
        db_path=str(db_path),
        applied=[r.version for r in results if r.success],
    )
    return results


run_migrations = initialize_database


async def get_migration_status(
    db_path: Path | None = None,
    migrations_dir: Path | None = None,
) -> MigrationStatus:
    db_path = db_path or get_settings().storage.db_path
    migrations = discover_migrations(migrations_dir)

    if not db_path.exists():
        return MigrationStatus(exists=False, pending=[m.version for m in migrations])

    async with aiosqlite.connect(db_path) as conn:
        applied = await applied_checksums(conn)

    return MigrationStatus(
        exists=True,
        applied=sorted(applied, key=int),
        pending=[m.version for m in migrations if m.version not in applied],
        modified=[
            m.version
            for m in migrations
            if m.version in applied and applied[m.version] != m.checksum
        ],
    )


async def verify_schema_integrity(db_path: Path | None = None) -> list[SchemaCheck]:
    """Run SQLite's integrity and foreign key checks and look for missing tables."""
    db_path = db_path or get_settings().storage.db_path

    async with aiosqlite.connect(db_path) as conn:
        cursor = await conn.execute("PRAGMA integrity_check")
        integrity = (await cursor.fetchone())[0]

        cursor = await conn.execute("PRAGMA foreign_key_check")
        orphans = await cursor.fetchall()

        cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        tables = {row[0] for row in await cursor.fetchall()}

    missing = [t for t in REQUIRED_TABLES if t not in tables]
    return [
        SchemaCheck("integrity", integrity == "ok", integrity),
        SchemaCheck(
            "foreign_keys",
            not orphans,
            f"{len(orphans)} rows reference missing parents" if orphans else "",
        ),
        SchemaCheck("required_tables", not missing, ", ".join(missing)),
    ]
