import asyncio
import logging
from typing import Optional

import httpx

from bbe_admin.services.clients import ClientDirectory

logger = logging.getLogger(__name__)

ONLINE = "online"
OFFLINE = "offline"
UNKNOWN = "unknown"


def site_url(raw: Optional[str]) -> str:
    url = (raw or "").strip()
    if not url:
        return ""
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"
    return url


class SiteProbe:
    """Cosmetic reachability check for client production sites."""

    def __init__(self, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self._transport = transport

    async def probe(self, raw_url: Optional[str]) -> str:
        url = site_url(raw_url)
        if not url:
            return UNKNOWN

        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport, follow_redirects=True
        ) as client:
            try:
                resp = await client.head(url)
                if resp.status_code in (405, 501):
                    # Some hosts refuse HEAD
                    resp = await client.get(url)
            except httpx.HTTPError as e:
                logger.debug(f"Probe failed for {url}: {e}")
                return OFFLINE

        return ONLINE if resp.status_code < 500 else OFFLINE

    async def probe_all(self, directory: ClientDirectory) -> dict[str, str]:
        clients = list(directory.clients)
        results = await asyncio.gather(*(self.probe(c.production_url) for c in clients))
        directory.reachability = {c.cuid: result for c, result in zip(clients, results)}
        online = sum(1 for r in results if r == ONLINE)
        logger.info(f"Site probe finished: {online}/{len(clients)} online")
        return directory.reachability


async def probe_loop(directory: ClientDirectory, probe: SiteProbe, interval: int):
    logger.info(f"Starting site probe loop (every {interval}s)")
    while True:
        try:
            await directory.load()
            await probe.probe_all(directory)
            await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.info("Site probe loop stopped")
            raise
        except Exception as e:
            logger.error(f"Error in site probe loop: {e}")
            await asyncio.sleep(interval)
