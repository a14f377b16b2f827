"""
View synchronization for connected viewers.

A viewer holds one change-feed subscription. Whenever an event touches a row
inside the viewer's scope (before or after the change), the viewer's whole
filtered result set is fetched again and handed out as a new snapshot.
Snapshots favour correctness over bandwidth; there is no ordering guarantee
between different viewers.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Awaitable, Callable, List

from complaint_hub.core.security import Actor
from complaint_hub.services.change_feed import ChangeEvent, ChangeFeed, Subscription
from complaint_hub.services.scope import ViewerScope

logger = logging.getLogger(__name__)

Fetch = Callable[[], Awaitable[List[Any]]]

COMPLAINTS_TABLE = "complaints"


class ViewSession:
    """One viewer's subscription and re-fetch loop."""

    def __init__(
        self,
        actor: Actor,
        scope: ViewerScope,
        subscription: Subscription,
        fetch: Fetch,
    ):
        self.actor = actor
        self.scope = scope
        self.subscription = subscription
        self.fetch = fetch

    def concerns(self, event: ChangeEvent) -> bool:
        if event.resync:
            return True
        return self.scope.matches(event.new) or self.scope.matches(event.old)

    async def snapshots(self) -> AsyncIterator[List[Any]]:
        """Initial snapshot, then one fresh snapshot per matching change."""
        yield await self.fetch()
        async for event in self.subscription:
            if not self.concerns(event):
                continue
            logger.debug(
                "Refreshing view for %s after %s", self.actor.user_id, event.operation
            )
            yield await self.fetch()

    async def close(self) -> None:
        await self.subscription.close()

    async def __aenter__(self) -> "ViewSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class ViewSynchronizer:
    """Opens scoped view sessions on a change feed."""

    def __init__(self, feed: ChangeFeed, table: str = COMPLAINTS_TABLE):
        self.feed = feed
        self.table = table

    async def open(self, actor: Actor, fetch: Fetch) -> ViewSession:
        """
        Subscribe ``actor`` to changes in their scope.

        The caller must close the returned session when the viewer leaves.
        """
        subscription = await self.feed.subscribe(self.table)
        scope = ViewerScope.for_actor(actor)
        logger.info("Viewer %s subscribed to %s", actor.user_id, self.table)
        return ViewSession(actor, scope, subscription, fetch)
