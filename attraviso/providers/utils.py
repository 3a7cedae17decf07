"""
Shared utilities for provider modules.
"""
import aiohttp
from typing import Optional
from contextlib import asynccontextmanager


USER_AGENT = "Attraviso/1.0 (+https://github.com/attraviso/attraviso)"


@asynccontextmanager
async def get_session(session: Optional[aiohttp.ClientSession] = None):
    """Context manager for aiohttp session handling.

    If session is provided, yields it.
    If not, creates a new session and closes it after use.
    """
    if session is not None:
        yield session
    else:
        async with aiohttp.ClientSession(headers={"User-Agent": USER_AGENT}) as new_session:
            yield new_session


class BodyTooLarge(Exception):
    """Raised by read_limited when a response body exceeds its ceiling."""

    def __init__(self, limit: int):
        super().__init__(f"response body exceeds {limit} bytes")
        self.limit = limit


async def read_limited(resp, max_bytes: int, chunk_size: int = 64 * 1024) -> bytes:
    """Read a response body, refusing to buffer more than max_bytes.

    The declared Content-Length is checked first so an honest oversized
    response is rejected before any body byte is read.
    """
    declared = resp.headers.get("Content-Length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise BodyTooLarge(max_bytes)

    buf = bytearray()
    async for chunk in resp.content.iter_chunked(chunk_size):
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise BodyTooLarge(max_bytes)
    return bytes(buf)
