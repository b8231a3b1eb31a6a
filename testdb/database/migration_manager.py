"""
testdb Migration Manager

Applies pending SQL migrations to the working connection and records the
applied versions. Migration files are named ``NNN_name.sql`` and may use the
``{table_prefix}`` placeholder for table names.
"""

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from testdb.database.connection_manager import DatabaseConnectionError, DatabaseConnectionManager

DEFAULT_MIGRATIONS_DIR = Path(__file__).parent / "migrations"

_STATEMENT_END = re.compile(r";\s*(?:\n|$)")


class MigrationError(Exception):
    """Raised when a migration cannot be loaded or applied."""
    pass


class MigrationManager:
    """Applies migrations from one or more directories in version order."""

    def __init__(
        self,
        database_manager: DatabaseConnectionManager,
        migrations_dirs: Optional[Iterable[Path]] = None
    ):
        self._db = database_manager
        self.migrations_dirs = [Path(d) for d in (migrations_dirs or [DEFAULT_MIGRATIONS_DIR])]
        self.logger = logging.getLogger(__name__)

    @property
    def migrations_table(self) -> str:
        return f"{self._db.table_prefix}migrations"

    def render(self, sql: str) -> str:
        """Substitute the table prefix into migration SQL."""
        return sql.replace("{table_prefix}", self._db.table_prefix)

    @staticmethod
    def split_statements(sql: str) -> List[str]:
        """Split a migration file into individual statements."""
        lines = [line for line in sql.splitlines() if not line.strip().startswith("--")]
        statements = _STATEMENT_END.split("\n".join(lines))
        return [statement.strip() for statement in statements if statement.strip()]

    async def initialize_migrations_table(self):
        """Create the migrations table if it doesn't exist."""
        await self._db.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.migrations_table} (
                version INTEGER PRIMARY KEY,
                name VARCHAR(255) NOT NULL,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    async def get_applied_migrations(self) -> List[int]:
        """Get list of already applied migration versions."""
        rows = await self._db.fetch(
            f"SELECT version FROM {self.migrations_table} ORDER BY version"
        )
        return [row['version'] for row in rows]

    def get_available_migrations(self) -> List[Tuple[int, str, Path]]:
        """
        Get available migration files across all directories.

        Raises:
            MigrationError: If two files share a version number
        """
        migrations = []
        seen: Dict[int, Path] = {}

        for migrations_dir in self.migrations_dirs:
            if not migrations_dir.exists():
                continue

            for file_path in migrations_dir.glob("*.sql"):
                if file_path.name.startswith((".", "__")):
                    continue

                # e.g. 001_initial_schema.sql
                try:
                    version_str = file_path.name.split('_')[0]
                    version = int(version_str)
                    name = file_path.stem.replace(f"{version_str}_", "", 1)
                except (ValueError, IndexError):
                    self.logger.warning(f"Invalid migration filename format: {file_path.name}")
                    continue

                if version in seen:
                    raise MigrationError(
                        f"Duplicate migration version {version}: {seen[version]} and {file_path}"
                    )
                seen[version] = file_path
                migrations.append((version, name, file_path))

        return sorted(migrations, key=lambda x: x[0])

    async def apply_migration(self, version: int, name: str, file_path: Path):
        """
        Apply a single migration inside a transaction.

        Raises:
            MigrationError: If any statement fails
        """
        sql_content = file_path.read_text(encoding='utf-8')
        statements = self.split_statements(self.render(sql_content))
        if not statements:
            self.logger.warning(f"Migration {version} ({name}) is empty, skipping")

        try:
            async with self._db.transaction() as conn:
                for statement in statements:
                    await conn.execute(statement)
                await conn.execute(
                    f"INSERT INTO {self.migrations_table} (version, name) VALUES ($1, $2)",
                    version, name
                )
        except Exception as e:
            self.logger.error(f"Failed to apply migration {version} ({name}): {e}")
            raise MigrationError(f"Migration {version} ({name}) failed: {e}") from e

        self.logger.info(f"Applied migration {version}: {name}")

    async def run_pending_migrations(self) -> int:
        """
        Run all pending migrations.

        Returns:
            Number of migrations applied

        Raises:
            MigrationError: If any migration fails; later migrations are not attempted
        """
        try:
            await self.initialize_migrations_table()
            applied_versions = set(await self.get_applied_migrations())
        except DatabaseConnectionError as e:
            raise MigrationError(f"Cannot read migration state: {e}") from e

        available_migrations = self.get_available_migrations()
        self.logger.debug(
            f"Found {len(applied_versions)} applied and {len(available_migrations)} available migrations"
        )

        applied_count = 0
        for version, name, file_path in available_migrations:
            if version in applied_versions:
                self.logger.debug(f"Migration {version} already applied, skipping")
                continue
            await self.apply_migration(version, name, file_path)
            applied_count += 1

        self.logger.info(f"Successfully applied {applied_count} migrations")
        return applied_count

    async def get_migration_status(self) -> Dict:
        """Get current migration status."""
        applied_versions = await self.get_applied_migrations()
        available_migrations = self.get_available_migrations()
        pending = [m for m in available_migrations if m[0] not in applied_versions]

        return {
            'applied_count': len(applied_versions),
            'available_count': len(available_migrations),
            'pending_count': len(pending),
            'applied_versions': applied_versions,
            'pending_migrations': [(v, n) for v, n, _ in pending]
        }
