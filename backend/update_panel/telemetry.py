"""
Bot telemetry: poll counting and last-seen version per bot.

``bot_id`` comes straight from the polling client and is not
authenticated; any caller can report under any id. The numbers are
advisory only.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from update_panel.release_models import BotRecord, PollSummary, StatsModel, utcnow
from update_panel.store import Store
from update_panel.versioning import compare_versions, prefix_version

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "unknown"


@dataclass
class PollOutcome:
    summary: PollSummary
    notify_obsolete: bool = False
    reported_version: Optional[str] = None


def summarize(stats: StatsModel, latest: Optional[str]) -> PollSummary:
    total = len(stats.bots)
    up_to_date = sum(1 for record in stats.bots.values() if latest and record.bot_version == latest)
    return PollSummary(total_bots=total, up_to_date=up_to_date, outdated=max(0, total - up_to_date))


def is_outdated(reported: str, latest: Optional[str]) -> bool:
    if not latest or reported == UNKNOWN_VERSION:
        return False
    return compare_versions(reported, latest) < 0


class BotTelemetry:
    def __init__(self, store: Store):
        self.store = store

    async def record_poll(
        self,
        bot_id: Optional[str],
        reported_version: Optional[str],
        latest: Optional[str],
    ) -> PollOutcome:
        """Count a poll and upsert the caller's record.

        ``notify_obsolete`` is True at most once per (bot, latest) pair: the
        record remembers the ``latest`` it was last alerted for.
        """
        stats = await self.store.load_stats()
        stats.downloads += 1

        notify = False
        version = None
        if bot_id:
            version = prefix_version(reported_version) if reported_version and reported_version.strip() else UNKNOWN_VERSION
            previous = stats.bots.get(bot_id)
            record = BotRecord(
                bot_version=version,
                last_check=utcnow(),
                last_notified_for_version=previous.last_notified_for_version if previous else None,
            )
            if is_outdated(version, latest) and record.last_notified_for_version != latest:
                record.last_notified_for_version = latest
                notify = True
            stats.bots[bot_id] = record

        await self.store.save_stats(stats)

        if notify:
            logger.info(f"Bot {bot_id} is outdated ({version} < {latest})")
        return PollOutcome(summary=summarize(stats, latest), notify_obsolete=notify, reported_version=version)

    async def summary(self, latest: Optional[str]) -> PollSummary:
        return summarize(await self.store.load_stats(), latest)

    async def downloads(self) -> int:
        return (await self.store.load_stats()).downloads
