from __future__ import annotations

from typing import Optional
import httpx

_client: Optional[httpx.AsyncClient] = None


async def open_http_client(timeout: float = 10.0) -> httpx.AsyncClient:
    """Create the shared AsyncClient used to fetch remote attachments."""
    global _client
    if _client is None:
        _client = httpx.AsyncClient(timeout=timeout, follow_redirects=False)
    return _client


def get_http_client() -> httpx.AsyncClient:
    """Return the shared client. Must have been opened at startup."""
    if _client is None:
        raise RuntimeError(
            "HTTP client not opened yet. Call open_http_client() at startup."
        )
    return _client


async def close_http_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
