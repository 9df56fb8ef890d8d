from datetime import datetime, timedelta, timezone

import httpx
import pytest

from bbe_admin.integrations.admin_api import AdminApiStatusError
from bbe_admin.schemas.clients import NewClient
from bbe_admin.services.clients import ClientDeleteError, ClientDirectory, relative_time


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_load_maps_records(directory):
    clients = await directory.load()
    by_cuid = {c.cuid: c for c in clients}

    assert by_cuid["c1"].status == "Active"
    assert by_cuid["c1"].integration_type == "Guesty"
    assert by_cuid["c1"].last_active == "2024-05-03"
    assert by_cuid["c1"].production_url == "alpine.example.com"
    assert by_cuid["c2"].status == "Pending"
    assert by_cuid["c2"].integration_type == "Lodgify"
    assert by_cuid["c3"].integration_type == "Hostaway"
    # Unknown status and integration codes
    assert by_cuid["c4"].status == "Inactive"
    assert by_cuid["c4"].integration_type == "Unknown"
    assert by_cuid["c4"].last_active == ""


@pytest.mark.asyncio
async def test_load_uses_cache_within_window(admin_api, admin_backend):
    clock = FakeClock()
    directory = ClientDirectory(admin_api, cache_seconds=300, clock=clock)

    await directory.load()
    clock.now += 299
    await directory.load()
    assert len(admin_backend.requests) == 1

    clock.now += 2
    await directory.load()
    assert len(admin_backend.requests) == 2

    await directory.load(force=True)
    assert len(admin_backend.requests) == 3


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_rows(directory, admin_backend):
    await directory.load()
    admin_backend.fail_with = httpx.ConnectError("refused")

    clients = await directory.load(force=True)

    assert len(clients) == 4
    assert directory.error == "Cannot connect to API server. Please check the server is running."


@pytest.mark.asyncio
async def test_stats(directory):
    await directory.load()
    stats = directory.stats()
    assert stats.total_clients == 4
    assert stats.active_clients == 1
    assert stats.pending_clients == 1
    assert stats.development_clients == 1
    assert stats.inactive_clients == 1
    assert stats.percentage(stats.active_clients) == 25.0


@pytest.mark.asyncio
async def test_recent_activity(directory):
    await directory.load()
    now = datetime(2024, 5, 3, 10, 0, tzinfo=timezone.utc)

    recent = directory.recent_activity(limit=3, now=now)

    assert [r["cuid"] for r in recent] == ["c1", "c2", "c3"]
    assert recent[0]["action"] == "Client activated"
    assert recent[0]["timestamp"] == "2 hours ago"
    assert recent[1]["action"] == "Status updated"
    assert recent[1]["timestamp"] == "1 day ago"


def test_relative_time():
    now = datetime(2024, 5, 10, tzinfo=timezone.utc)
    assert relative_time(now - timedelta(days=3), now) == "3 days ago"
    assert relative_time(now - timedelta(hours=1, minutes=5), now) == "1 hour ago"
    assert relative_time(now - timedelta(minutes=20), now) == "Recently"
    assert relative_time(None, now) == "Recently"


@pytest.mark.asyncio
async def test_create_sends_integration_credentials(directory, admin_backend):
    await directory.load()
    await directory.create(NewClient(name="Lake Cabins", email="lake@example.com", integration="lodgify", api_key="k-1"))

    created = admin_backend.records["c5"]
    assert created["integrationId"] == 2
    assert created["apikey"] == "k-1"
    assert "clientID" not in created
    assert not directory.is_fresh()


@pytest.mark.asyncio
async def test_delete_many_stops_at_first_failure(directory, admin_backend):
    await directory.load()

    with pytest.raises(ClientDeleteError) as exc_info:
        await directory.delete_many(["c1", "missing", "c2"])

    assert exc_info.value.user_message == "Client not found"
    assert exc_info.value.deleted == ["c1"]
    assert isinstance(exc_info.value.__cause__, AdminApiStatusError)
    assert "c1" not in admin_backend.records
    assert "c2" in admin_backend.records
    cached = [c.cuid for c in directory.clients]
    assert "c1" not in cached
    assert "c2" in cached


@pytest.mark.asyncio
async def test_delete_many_reports_deletes_outside_the_cache(directory, admin_backend):
    # Nothing loaded, so the count cannot come from the cached rows
    with pytest.raises(ClientDeleteError) as exc_info:
        await directory.delete_many(["c2", "c3", "missing"])

    assert exc_info.value.deleted == ["c2", "c3"]
    assert set(admin_backend.records) == {"c1", "c4"}


@pytest.mark.asyncio
async def test_delete_many_returns_deleted_cuids(directory, admin_backend):
    assert await directory.delete_many(["c2", "c3"]) == ["c2", "c3"]
    assert set(admin_backend.records) == {"c1", "c4"}
