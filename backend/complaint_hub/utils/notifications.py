"""
Slack notifications for the maintenance desk.
"""

import asyncio
import logging
from typing import Optional, Set

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from complaint_hub.core.config import settings
from complaint_hub.core.metrics import record_external_api_retry

logger = logging.getLogger(__name__)


def _record_slack_retry(retry_state):
    """Tenacity before_sleep callback to track Slack retries."""
    record_external_api_retry("slack")


class NotificationService:
    """Best-effort notifications; failures are logged, never raised."""

    @staticmethod
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.TransportError)),
        before_sleep=_record_slack_retry,
        reraise=True,
    )
    async def _post_slack(payload: dict) -> None:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                settings.SLACK_WEBHOOK_URL,
                json=payload,
                timeout=10.0,
            )
            response.raise_for_status()

    @staticmethod
    async def send_slack(message: str, channel: Optional[str] = None):
        """
        Send Slack notification.

        Args:
            message: Message to send
            channel: Optional channel override
        """
        if not settings.SLACK_WEBHOOK_URL:
            logger.debug("Slack webhook URL not configured")
            return

        payload = {"text": message}
        if channel:
            payload["channel"] = channel

        try:
            await NotificationService._post_slack(payload)
            logger.info("Slack notification sent")
        except httpx.HTTPError as e:
            logger.error(f"Failed to send Slack notification: {e}")

    @staticmethod
    async def notify_worker_assigned(complaint: dict, worker_type: Optional[str]):
        """Tell the desk a complaint has been handed to a worker."""
        location = ", ".join(
            part
            for part in (
                complaint.get("hostel_name"),
                complaint.get("block"),
                complaint.get("room_number"),
            )
            if part
        )
        message = (
            f"🔧 *Complaint assigned*\n"
            f"Title: {complaint.get('title')}\n"
            f"Worker: {worker_type or 'unspecified'}\n"
            f"Priority: {complaint.get('priority')}"
        )
        if location:
            message += f"\nLocation: {location}"

        await NotificationService.send_slack(message)

    @staticmethod
    async def notify_awaiting_confirmation(complaint: dict):
        """Ask the warden to confirm work reported as done."""
        message = (
            f"✅ *Awaiting confirmation*\n"
            f"Title: {complaint.get('title')}\n"
            f"Complaint: {complaint.get('id')}"
        )

        await NotificationService.send_slack(message)


class BackgroundNotifier:
    """
    Schedules notifications as tracked tasks.

    Callers get control back immediately; slow or failing webhooks only
    affect the task. Pending tasks are drained on shutdown.
    """

    def __init__(self, notifier=NotificationService):
        self.notifier = notifier
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def _schedule(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Notification task failed", exc_info=task.exception())

    def notify_worker_assigned(self, complaint: dict, worker_type: Optional[str]) -> asyncio.Task:
        return self._schedule(self.notifier.notify_worker_assigned(complaint, worker_type))

    def notify_awaiting_confirmation(self, complaint: dict) -> asyncio.Task:
        return self._schedule(self.notifier.notify_awaiting_confirmation(complaint))

    async def close(self, timeout: float = 5.0) -> None:
        """Wait up to ``timeout`` seconds for pending notifications, then cancel the rest."""
        tasks = set(self._tasks)
        if not tasks:
            return
        _, still_running = await asyncio.wait(tasks, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning("Cancelled %d undelivered notification(s)", len(still_running))
            await asyncio.wait(still_running)


background_notifier = BackgroundNotifier()
