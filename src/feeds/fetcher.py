"""Network retrieval of feed documents."""

import asyncio
import logging

import aiohttp

logger = logging.getLogger(__name__)

USER_AGENT = "uvp/1.0"

# Seconds before a single feed fetch is abandoned
DEFAULT_FETCH_TIMEOUT = 3.0


class FetchError(Exception):
    """A feed document could not be retrieved."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


def create_session(timeout: float) -> aiohttp.ClientSession:
    """Create a client session whose requests give up after `timeout` seconds."""
    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=timeout),
        headers={"User-Agent": USER_AGENT},
    )


async def fetch_feed(session: aiohttp.ClientSession, url: str) -> bytes:
    """Download one feed document.

    Args:
        session: aiohttp session carrying the timeout
        url: Feed URL

    Returns:
        The raw document body

    Raises:
        FetchError: On timeout, connection failure or a non-success status
    """
    try:
        async with session.get(url) as response:
            if response.status >= 400:
                raise FetchError(url, f"HTTP {response.status}")
            body = await response.read()
    except asyncio.TimeoutError as e:
        raise FetchError(url, "timed out") from e
    except aiohttp.ClientError as e:
        raise FetchError(url, str(e) or type(e).__name__) from e

    logger.info(f"Fetched from url: {url}")
    return body
