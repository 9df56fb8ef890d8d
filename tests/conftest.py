import copy
import json
import secrets
import time
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from bbe_admin.core.services import get_admin_api, get_blob_storage, get_directory
from bbe_admin.integrations.admin_api import AdminApiClient
from bbe_admin.integrations.blob_storage import BlobStorageClient
from bbe_admin.main import app as fastapi_app
from bbe_admin.routers.auth import SESSION_COOKIE_NAME, SESSION_STORE
from bbe_admin.services.clients import ClientDirectory

ADMIN_URL = "http://admin.test"
BLOB_URL = "https://blob.test"


def make_record(cuid, name, status="Production", integration_id=1, updated_at="2024-05-01T10:00:00Z", **prefs):
    return {
        "id": cuid.replace("c", "id-"),
        "cuid": cuid,
        "name": name,
        "email": f"{name.lower().replace(' ', '.')}@example.com",
        "status": status,
        "integrationId": integration_id,
        "updatedAt": updated_at,
        "ApiKey": "",
        "clientID": f"client-{cuid}",
        "clientSecret": "s3cret",
        "preferences": {
            "primaryColor": "12, 34, 56",
            "secondaryColor": "255, 255, 255",
            "currencies": ["USD"],
            "language": "en",
            "maxGuests": 6,
            **prefs,
        },
    }


@pytest.fixture
def records():
    return [
        make_record("c1", "Alpine Chalets", "Production", 1, "2024-05-03T08:00:00Z", productionUrl="alpine.example.com"),
        make_record("c2", "Beach Houses", "Testing", 2, "2024-05-02T08:00:00Z"),
        make_record("c3", "City Lofts", "Development", 3, "2024-04-20T08:00:00Z"),
        make_record("c4", "Desert Domes", "Archived", 9, None),
    ]


class FakeAdminBackend:
    """In-memory stand-in for the admin-data endpoint."""

    def __init__(self, records):
        self.records = {r["cuid"]: copy.deepcopy(r) for r in records}
        self.requests: list[httpx.Request] = []
        self.fail_with: httpx.Response | Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.fail_with, Exception):
            raise self.fail_with
        if self.fail_with is not None:
            return self.fail_with

        cuid = request.url.params.get("clientCuid")
        if request.method == "GET":
            if cuid is None:
                return httpx.Response(200, json=list(self.records.values()))
            if cuid not in self.records:
                return httpx.Response(404, json={"error": "Client not found"})
            return httpx.Response(200, json=self.records[cuid])

        if request.method == "PUT":
            body = json.loads(request.content)
            record = self.records[body["clientCuid"]]
            record.update({k: v for k, v in body["data"].items() if k != "preferences"})
            record["preferences"] = body["data"]["preferences"]
            record["updatedAt"] = "2024-06-01T00:00:00Z"
            return httpx.Response(200, json=record)

        if request.method == "POST":
            body = json.loads(request.content)
            new_cuid = f"c{len(self.records) + 1}"
            self.records[new_cuid] = {"cuid": new_cuid, "id": new_cuid, "status": "Development", **body}
            return httpx.Response(201, json=self.records[new_cuid])

        if request.method == "DELETE":
            if cuid not in self.records:
                return httpx.Response(404, json={"error": "Client not found"})
            del self.records[cuid]
            return httpx.Response(200, json={"success": True})

        return httpx.Response(405)


class FakeBlobBackend:
    def __init__(self):
        self.uploads: list[httpx.Request] = []
        self.deleted: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST" and request.url.path == "/delete":
            self.deleted.extend(json.loads(request.content)["urls"])
            return httpx.Response(200, json={})
        if request.method == "PUT":
            self.uploads.append(request)
            pathname = request.url.path.lstrip("/")
            url = f"https://store.public.blob.vercel-storage.com/{pathname}"
            return httpx.Response(
                200,
                json={
                    "url": url,
                    "downloadUrl": f"{url}?download=1",
                    "pathname": pathname,
                    "contentType": request.headers.get("x-content-type"),
                    "contentDisposition": f'inline; filename="{pathname}"',
                },
            )
        return httpx.Response(404)


@pytest.fixture
def admin_backend(records):
    return FakeAdminBackend(records)


@pytest.fixture
def admin_api(admin_backend):
    return AdminApiClient(ADMIN_URL, transport=httpx.MockTransport(admin_backend.handler))


@pytest.fixture
def blob_backend():
    return FakeBlobBackend()


@pytest.fixture
def blob_storage(blob_backend):
    return BlobStorageClient(
        "rw-token", base_url=BLOB_URL, transport=httpx.MockTransport(blob_backend.handler)
    )


@pytest.fixture
def directory(admin_api):
    return ClientDirectory(admin_api)


@pytest_asyncio.fixture(scope="function")
async def client(admin_api, directory, blob_storage) -> AsyncGenerator[AsyncClient, None]:
    fastapi_app.dependency_overrides[get_admin_api] = lambda: admin_api
    fastapi_app.dependency_overrides[get_directory] = lambda: directory
    fastapi_app.dependency_overrides[get_blob_storage] = lambda: blob_storage

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()
    SESSION_STORE.clear()


@pytest.fixture
def session(client):
    """Log the test client in by planting a session token."""
    token = secrets.token_urlsafe(16)
    SESSION_STORE[token] = {
        "email": "staff@example.com", "issued_at": time.time(), "editors": {}, "flashes": [],
    }
    client.cookies.set(SESSION_COOKIE_NAME, token)
    return SESSION_STORE[token]
