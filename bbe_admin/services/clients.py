import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from bbe_admin.core.logging import log_cache, log_error, log_success
from bbe_admin.integrations.admin_api import AdminApiClient, AdminApiError
from bbe_admin.schemas.clients import ClientStats, ClientSummary, NewClient

logger = logging.getLogger(__name__)


class ClientDeleteError(AdminApiError):
    def __init__(self, error: AdminApiError, deleted: list[str]):
        super().__init__(error.user_message, error.detail)
        self.deleted = deleted


class ClientDirectory:
    """
    Shared view of the remote client list.

    The list is cached for ``cache_seconds``; a failed refresh keeps the
    previous rows and records a message so the pages still render.
    """

    def __init__(
        self,
        api: AdminApiClient,
        cache_seconds: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.api = api
        self.cache_seconds = cache_seconds
        self._clock = clock
        self.clients: list[ClientSummary] = []
        self.error: Optional[str] = None
        self.last_fetch: Optional[float] = None
        self.last_fetched_at: Optional[datetime] = None
        # cuid -> "online" | "offline" | "unknown", filled by the site probe
        self.reachability: dict[str, str] = {}

    def is_fresh(self) -> bool:
        return self.last_fetch is not None and (self._clock() - self.last_fetch) < self.cache_seconds

    def invalidate(self) -> None:
        self.last_fetch = None

    async def load(self, force: bool = False) -> list[ClientSummary]:
        if not force and self.is_fresh():
            log_cache(logger, f"client list fresh ({len(self.clients)} rows)")
            return self.clients

        try:
            records = await self.api.list_clients()
        except AdminApiError as e:
            log_error(logger, f"Error fetching clients: {e}")
            self.error = e.user_message
            return self.clients

        self.clients = [ClientSummary.from_record(r) for r in records if isinstance(r, dict)]
        self.last_fetch = self._clock()
        self.last_fetched_at = datetime.now(timezone.utc)
        self.error = None
        log_success(logger, f"loaded {len(self.clients)} clients")
        return self.clients

    def stats(self) -> ClientStats:
        return ClientStats.from_summaries(self.clients)

    def recent_activity(self, limit: int = 5, now: Optional[datetime] = None) -> list[dict[str, Any]]:
        now = now or datetime.now(timezone.utc)
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        ordered = sorted(self.clients, key=lambda c: c.updated_at or oldest, reverse=True)
        return [
            {
                "id": c.id,
                "cuid": c.cuid,
                "action": "Client activated" if c.status == "Active" else "Status updated",
                "client": c.name,
                "timestamp": relative_time(c.updated_at, now),
            }
            for c in ordered[:limit]
        ]

    async def create(self, new_client: NewClient) -> dict[str, Any]:
        created = await self.api.create_client(new_client.to_wire())
        log_success(logger, f"client created: {new_client.name}")
        self.invalidate()
        return created

    async def delete_many(self, cuids: list[str]) -> list[str]:
        """
        Delete sequentially, stopping at the first failure.

        Returns the deleted cuids. A failure raises ClientDeleteError carrying
        the cuids that went through before it.
        """
        deleted: list[str] = []
        try:
            for cuid in cuids:
                await self.api.delete_client(cuid)
                deleted.append(cuid)
        except AdminApiError as e:
            raise ClientDeleteError(e, deleted) from e
        finally:
            if deleted:
                removed = set(deleted)
                self.clients = [c for c in self.clients if c.cuid not in removed]
                self.invalidate()
        return deleted


def relative_time(then: Optional[datetime], now: datetime) -> str:
    if then is None:
        return "Recently"
    diff_seconds = (now - then).total_seconds()
    diff_days = int(diff_seconds // 86400)
    diff_hours = int(diff_seconds // 3600)
    if diff_days > 0:
        return f"{diff_days} day{'s' if diff_days > 1 else ''} ago"
    if diff_hours > 0:
        return f"{diff_hours} hour{'s' if diff_hours > 1 else ''} ago"
    return "Recently"
