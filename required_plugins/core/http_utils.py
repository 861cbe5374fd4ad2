import logging
import os

import httpx

logger = logging.getLogger(__name__)


def get_httpx_timeout() -> httpx.Timeout:
    """Timeout for package API lookups and package downloads."""
    return httpx.Timeout(60.0, connect=10.0)


def is_local_url(url: str) -> bool:
    """Checks if the URL is local (localhost, 127.0.0.1, host.docker.internal)."""
    if not url:
        return False
    if "localhost" in url or "127.0.0.1" in url or "host.docker.internal" in url:
        return True
    return False


def get_httpx_async_client(base_url: str = None) -> httpx.AsyncClient:
    """
    Returns an httpx.AsyncClient with the standard timeout.
    Local targets bypass any configured proxy.
    """
    proxy = None
    trust_env = True

    if base_url and is_local_url(base_url):
        logger.debug(f"Local URL detected ({base_url}). Disabling proxy (trust_env=False).")
        trust_env = False
    elif os.getenv("HTTP_PROXY") or os.getenv("HTTPS_PROXY"):
        pass  # trust_env will handle it
    elif os.getenv("PLUGINS_PROXY_URL"):
        p = os.getenv("PLUGINS_PROXY_URL")
        if p.startswith("http://") or p.startswith("https://"):
            proxy = p
            logger.info(f"Creating httpx.AsyncClient using PLUGINS_PROXY_URL: {p}")
        else:
            logger.warning(f"PLUGINS_PROXY_URL is set but is not an http(s) URL: {p}")

    return httpx.AsyncClient(timeout=get_httpx_timeout(), trust_env=trust_env, proxy=proxy, follow_redirects=True)
