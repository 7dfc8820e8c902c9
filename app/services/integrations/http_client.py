"""
HTTP client helper for the Graph API.

All outbound HTTP calls get explicit timeouts so a slow Graph API can't stall a
webhook handler or a scheduler tick.
"""

import httpx

USER_AGENT = "vendor-engagement-bot/1.0"


def get_httpx_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        10.0,  # Default for all operations
        connect=5.0,
        read=10.0,
        write=5.0,
        pool=5.0,
    )


def create_httpx_client() -> httpx.AsyncClient:
    """httpx.AsyncClient with standard timeouts; use as `async with`."""
    return httpx.AsyncClient(timeout=get_httpx_timeout(), headers={"User-Agent": USER_AGENT})
