import httpx
import pytest

from bbe_admin.services.site_probe import OFFLINE, ONLINE, UNKNOWN, SiteProbe, site_url


def probe_for(handler):
    return SiteProbe(timeout=1.0, transport=httpx.MockTransport(handler))


def test_site_url_adds_scheme():
    assert site_url("alpine.example.com") == "https://alpine.example.com"
    assert site_url("http://alpine.example.com") == "http://alpine.example.com"
    assert site_url("  ") == ""
    assert site_url(None) == ""


@pytest.mark.asyncio
async def test_probe_head_ok():
    methods = []

    def handler(request):
        methods.append(request.method)
        return httpx.Response(200)

    assert await probe_for(handler).probe("alpine.example.com") == ONLINE
    assert methods == ["HEAD"]


@pytest.mark.asyncio
async def test_probe_falls_back_to_get():
    methods = []

    def handler(request):
        methods.append(request.method)
        return httpx.Response(405 if request.method == "HEAD" else 200)

    assert await probe_for(handler).probe("https://alpine.example.com") == ONLINE
    assert methods == ["HEAD", "GET"]


@pytest.mark.asyncio
async def test_probe_server_error_is_offline():
    assert await probe_for(lambda request: httpx.Response(503)).probe("x.example.com") == OFFLINE


@pytest.mark.asyncio
async def test_probe_unreachable_is_offline():
    def handler(request):
        raise httpx.ConnectError("no route", request=request)

    assert await probe_for(handler).probe("x.example.com") == OFFLINE


@pytest.mark.asyncio
async def test_probe_without_url_is_unknown():
    def handler(request):
        raise AssertionError("no request expected")

    assert await probe_for(handler).probe("") == UNKNOWN


@pytest.mark.asyncio
async def test_probe_all_records_reachability(directory):
    await directory.load()

    results = await probe_for(lambda request: httpx.Response(200)).probe_all(directory)

    assert results["c1"] == ONLINE
    assert results["c2"] == UNKNOWN
    assert directory.reachability is results
