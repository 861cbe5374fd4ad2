import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from required_plugins.core.config import settings
from required_plugins.core.http_utils import get_httpx_async_client

logger = logging.getLogger(__name__)


class PackageInfoError(Exception):
    """The package API could not be queried. Aborts the whole install batch."""


@dataclass
class PackageInfo:
    slug: str
    name: Optional[str] = None
    version: Optional[str] = None
    download_link: Optional[str] = None


class PackageInfoService:
    """Looks up plugin download links in the public plugin repository."""

    def __init__(self, api_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.api_url = api_url or settings.PACKAGE_API_URL
        self._client = client

    async def fetch(self, slug: str) -> PackageInfo:
        params = {
            "action": "plugin_information",
            "request[slug]": slug,
            "request[fields][sections]": "0",
        }
        try:
            if self._client is not None:
                response = await self._client.get(self.api_url, params=params)
            else:
                async with get_httpx_async_client(base_url=self.api_url) as client:
                    response = await client.get(self.api_url, params=params)
        except httpx.HTTPError as e:
            logger.error(f"Package API request for '{slug}' failed: {e}")
            raise PackageInfoError(f"Package API request failed: {e}") from e

        # Unknown slugs come back as 404 with an error payload
        if response.status_code == 404:
            logger.info(f"Package API has no entry for '{slug}'")
            return PackageInfo(slug=slug)

        if response.status_code >= 400:
            logger.error(f"Package API returned HTTP {response.status_code} for '{slug}'")
            raise PackageInfoError(f"Package API returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Package API returned invalid JSON for '{slug}': {e}")
            raise PackageInfoError("Package API returned an invalid response") from e

        if not isinstance(data, dict) or data.get("error"):
            return PackageInfo(slug=slug)

        return PackageInfo(
            slug=slug,
            name=data.get("name"),
            version=data.get("version"),
            download_link=data.get("download_link") or None,
        )
