from functools import lru_cache

from bbe_admin.core.config import settings
from bbe_admin.integrations.admin_api import AdminApiClient
from bbe_admin.integrations.blob_storage import BlobStorageClient
from bbe_admin.services.clients import ClientDirectory
from bbe_admin.services.site_probe import SiteProbe


@lru_cache()
def get_admin_api() -> AdminApiClient:
    return AdminApiClient(
        settings.ADMIN_API_URL,
        list_timeout=settings.ADMIN_API_LIST_TIMEOUT,
        detail_timeout=settings.ADMIN_API_DETAIL_TIMEOUT,
    )


@lru_cache()
def get_directory() -> ClientDirectory:
    return ClientDirectory(get_admin_api(), cache_seconds=settings.CLIENT_LIST_CACHE_SECONDS)


@lru_cache()
def get_blob_storage() -> BlobStorageClient:
    return BlobStorageClient(settings.BLOB_READ_WRITE_TOKEN, base_url=settings.BLOB_API_URL)


@lru_cache()
def get_site_probe() -> SiteProbe:
    return SiteProbe(timeout=settings.PROBE_TIMEOUT)
