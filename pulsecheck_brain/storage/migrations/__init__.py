"""
Database migrations for the escalation store.

SQL files named NNN_description.sql are applied in order. Each file runs
in its own transaction together with its schema_migrations row, so a
failed migration leaves no partial schema and is retried next startup.
"""

import logging
from pathlib import Path

logger = logging.getLogger("pulsecheck.storage.migrations")

MIGRATIONS_DIR = Path(__file__).parent

REQUIRED_TABLES = ("escalation_conditions", "escalation_records", "conversations")


def list_migrations() -> list[tuple[int, Path]]:
    """Return (version, path) for every migration file, ordered by version."""
    migrations = []
    for path in MIGRATIONS_DIR.glob("*.sql"):
        prefix = path.stem.split("_", 1)[0]
        if not prefix.isdigit():
            logger.warning("Skipping migration without numeric prefix: %s", path.name)
            continue
        migrations.append((int(prefix), path))
    return sorted(migrations)


async def run_migrations(pool) -> int:
    """
    Apply pending migrations.

    Returns:
        Number of migrations applied
    """
    await pool.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY,
            name VARCHAR(255) NOT NULL,
            applied_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    rows = await pool.fetch("SELECT version FROM schema_migrations")
    applied = {row["version"] for row in rows}
    pending = [(v, p) for v, p in list_migrations() if v not in applied]

    if not pending:
        logger.debug("Escalation schema up to date (%d migrations)", len(applied))
        return 0

    for version, path in pending:
        logger.info("Applying migration %s", path.name)
        try:
            async with pool.transaction() as conn:
                await conn.execute(path.read_text())
                await conn.execute(
                    "INSERT INTO schema_migrations (version, name) VALUES ($1, $2)",
                    version, path.stem,
                )
        except Exception as e:
            logger.error("Migration %s failed: %s", path.name, e)
            raise

    logger.info("Applied %d migration(s)", len(pending))
    return len(pending)


async def check_schema_exists(pool) -> bool:
    """True if every escalation table exists."""
    count = await pool.fetchval(
        """
        SELECT COUNT(*) FROM information_schema.tables
        WHERE table_name = ANY($1::text[])
        """,
        list(REQUIRED_TABLES),
    )
    return count == len(REQUIRED_TABLES)
