"""Recompute topic reply counters and last-post links.

Usage: python scripts/reconcile_topics.py [TOPIC_ID ...]
"""

import asyncio
import sys
from uuid import UUID

from forum.domain.maintenance_service import MaintenanceService
from forum.domain.repo import ForumRepository
from forum.infra.postgres import Database
from forum.settings import settings


async def main(raw_ids: list[str]) -> int:
	topic_ids = [UUID(value) for value in raw_ids] or None
	database = Database.from_settings(settings)
	await database.init()
	try:
		report = await MaintenanceService(ForumRepository(database)).reconcile_topics(topic_ids)
	finally:
		await database.close()
	print(f"Checked {report.checked} topics, repaired {report.repaired}.")
	for topic_id in report.repaired_topic_ids:
		print(f"  repaired {topic_id}")
	return 0


if __name__ == "__main__":
	if sys.platform == "win32":
		asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
	sys.exit(asyncio.run(main(sys.argv[1:])))
