"""
Best-effort Discord webhook notifications.

Calls are fire-and-forget: ``dispatch`` schedules them as detached tasks
the request never awaits. Failures are logged and dropped, never retried.
"""

import asyncio
import logging
from typing import Any, Coroutine, Dict, Optional, Set

import aiohttp

from update_panel.release_models import ReleaseModel

logger = logging.getLogger(__name__)

_COLOR_RELEASE = 0x2ECC71
_COLOR_REVERT = 0xF1C40F
_COLOR_OBSOLETE = 0xE74C3C


class WebhookNotifier:
    def __init__(self, webhook_url: Optional[str], timeout: float = 5.0):
        self.webhook_url = webhook_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self._tasks: Set[asyncio.Task] = set()

    # ---------- Scheduling ----------

    def dispatch(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Run ``coro`` in the background, keeping a reference until it ends."""
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Notification task failed: {exc!r}")

    # ---------- Messages ----------

    async def notify_release(self, release: ReleaseModel) -> bool:
        return await self._post({
            "content": f"📦 New bot release **{release.version}** published",
            "embeds": [{
                "title": release.version,
                "description": release.notes or "No release notes.",
                "color": _COLOR_RELEASE,
                "timestamp": release.created_at.isoformat(),
            }],
        })

    async def notify_revert(self, release: ReleaseModel) -> bool:
        return await self._post({
            "content": f"⏪ Latest version reverted to **{release.version}**",
            "embeds": [{
                "title": release.version,
                "description": release.notes or "No release notes.",
                "color": _COLOR_REVERT,
            }],
        })

    async def notify_obsolete(self, bot_id: str, reported_version: str, latest: str) -> bool:
        return await self._post({
            "content": f"⚠️ Bot `{bot_id}` is running **{reported_version}**, latest is **{latest}**",
            "embeds": [{
                "title": "Outdated bot",
                "fields": [
                    {"name": "Bot", "value": bot_id, "inline": True},
                    {"name": "Running", "value": reported_version, "inline": True},
                    {"name": "Latest", "value": latest, "inline": True},
                ],
                "color": _COLOR_OBSOLETE,
            }],
        })

    # ---------- Transport ----------

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def _post(self, payload: Dict[str, Any]) -> bool:
        """POST ``payload`` to the webhook. Returns False on any failure."""
        if not self.webhook_url:
            logger.debug("No WEBHOOK_URL configured, skipping notification")
            return False
        try:
            session = await self._get_session()
            async with session.post(self.webhook_url, json=payload) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    logger.warning(f"Webhook returned HTTP {resp.status}: {body[:200]}")
                    return False
            return True
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Webhook notification failed: {type(e).__name__}: {e}")
            return False

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
