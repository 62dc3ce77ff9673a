"""Repair tooling for denormalized topic counters."""

from __future__ import annotations

from uuid import UUID

from forum.domain import repo as repo_module
from forum.obs import logging as obs_logging
from forum.obs import metrics as obs_metrics
from forum.schemas import dto

logger = obs_logging.get_logger("forum.maintenance")


class MaintenanceService:
	def __init__(self, repository: repo_module.ForumRepository) -> None:
		self.repo = repository

	async def reconcile_topics(self, topic_ids: list[UUID] | None = None) -> dto.ReconcileResponse:
		"""Recount replies and relink the last post for each topic, reporting which ones drifted."""
		ids = topic_ids if topic_ids is not None else await self.repo.list_topic_ids()
		repaired: list[UUID] = []
		for topic_id in ids:
			outcome = await self.repo.reconcile_topic(topic_id)
			if outcome is None:
				continue
			before, after = outcome
			if (before.reply_count, before.last_post_id, before.last_post_at) != (
				after.reply_count,
				after.last_post_id,
				after.last_post_at,
			):
				repaired.append(topic_id)
				logger.info(
					"topic_reconciled",
					extra={
						"topic": str(topic_id),
						"reply_count_before": before.reply_count,
						"reply_count_after": after.reply_count,
					},
				)
		obs_metrics.inc_reconcile_repair(len(repaired))
		return dto.ReconcileResponse(
			message="Reconciliation complete",
			checked=len(ids),
			repaired=len(repaired),
			repaired_topic_ids=repaired,
		)
