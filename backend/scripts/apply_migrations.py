"""Apply pending SQL migrations from backend/migrations in filename order.

Usage: python scripts/apply_migrations.py [--dry-run]
"""

import argparse
import asyncio
import sys
from pathlib import Path

from forum.infra.postgres import Database
from forum.settings import settings

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"

LEDGER_DDL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
	filename TEXT PRIMARY KEY,
	applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""


def pending_files(applied: set[str], directory: Path = MIGRATIONS_DIR) -> list[Path]:
	return [path for path in sorted(directory.glob("*.sql")) if path.name not in applied]


async def main(dry_run: bool = False) -> int:
	database = Database.from_settings(settings)
	await database.init()
	try:
		async with database.acquire() as conn:
			await conn.execute(LEDGER_DDL)
			rows = await conn.fetch("SELECT filename FROM schema_migrations")
		todo = pending_files({row["filename"] for row in rows})
		if not todo:
			print("No pending migrations.")
			return 0
		for path in todo:
			print(f"Applying {path.name}...")
			if dry_run:
				continue
			async with database.transaction() as conn:
				await conn.execute(path.read_text(encoding="utf-8"))
				await conn.execute("INSERT INTO schema_migrations (filename) VALUES ($1)", path.name)
			print(f"Finished {path.name}")
		return 0
	finally:
		await database.close()


if __name__ == "__main__":
	parser = argparse.ArgumentParser(description=__doc__)
	parser.add_argument("--dry-run", action="store_true")
	args = parser.parse_args()
	if sys.platform == "win32":
		asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
	sys.exit(asyncio.run(main(args.dry_run)))
