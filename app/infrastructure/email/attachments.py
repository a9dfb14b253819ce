from __future__ import annotations

import asyncio
import base64
import binascii

import httpx

from app.domain.entities import Attachment

DEFAULT_MAX_BYTES = 10 * 1024 * 1024


class AttachmentTooLarge(Exception):
    def __init__(self, url: str, limit: int) -> None:
        super().__init__(f"attachment at {url} exceeds {limit} bytes")
        self.url = url
        self.limit = limit


def decode_inline_content(content: str) -> bytes:
    """Inline content is base64 by convention; anything else is sent as UTF-8 text."""
    try:
        return base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError):
        return content.encode("utf-8")


class AttachmentFetcher:
    """
    Resolves every attachment of a message to bytes, fetching `href` ones
    concurrently. Redirects are not followed (any 3xx fails the fetch) and a
    body larger than `max_bytes` is abandoned mid-stream.
    """

    def __init__(self, client: httpx.AsyncClient, *, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        self._client = client
        self._max_bytes = max_bytes

    async def _fetch(self, url: str) -> bytes:
        async with self._client.stream("GET", url, follow_redirects=False) as resp:
            resp.raise_for_status()
            chunks: list[bytes] = []
            size = 0
            async for chunk in resp.aiter_bytes():
                size += len(chunk)
                if size > self._max_bytes:
                    raise AttachmentTooLarge(url, self._max_bytes)
                chunks.append(chunk)
        return b"".join(chunks)

    async def _resolve(self, attachment: Attachment) -> bytes:
        if attachment.content is not None:
            return decode_inline_content(attachment.content)
        return await self._fetch(attachment.href or "")

    async def resolve_all(self, attachments: tuple[Attachment, ...]) -> list[bytes]:
        # first failure propagates; the message is never sent with a missing part
        return list(await asyncio.gather(*(self._resolve(a) for a in attachments)))
