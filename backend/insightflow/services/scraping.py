"""
Company web page scraping.

``ScrapingService.extract_text_from_url`` turns a page (HTML, plain text
or PDF) into at most 5000 characters of normalised text for the
summarisation prompts. Only public http(s) hosts are fetched; loopback,
private and link-local addresses are refused. Extracted text is cached
per URL for 15 minutes.

Host names are resolved before each request, and redirects are followed
one hop at a time so every hop goes through the same address check.
"""

import asyncio
import ipaddress
import logging
import re
import socket
import time
from collections import OrderedDict
from typing import List, Optional, Tuple, Union
from urllib.parse import urlsplit

import httpx
import trafilatura

from insightflow.services.document_loader import extract_pdf_text

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,application/pdf,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces."""
    return re.sub(r"\s+", " ", text).strip()


class UnsafeURLError(ValueError):
    """A URL, or a redirect hop, points at a host that must not be fetched."""


def _is_public(address: IPAddress) -> bool:
    return not (address.is_loopback or address.is_private or address.is_link_local
                or address.is_unspecified or address.is_multicast or address.is_reserved)


def check_url_safety(url: str) -> Optional[str]:
    """
    Reason ``url`` must not be fetched, or None when it is acceptable.

    Literal IP addresses must be public; host names are resolved later by
    ``check_resolved_host``.
    """
    try:
        parts = urlsplit(url)
        host = parts.hostname
    except ValueError:
        return "Malformed URL"

    if parts.scheme not in ("http", "https"):
        return f"Unsupported scheme '{parts.scheme}'"
    if not host:
        return "URL has no host"
    if host.lower() == "localhost" or host.lower().endswith(".localhost"):
        return "Local hosts are not allowed"

    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return None
    if not _is_public(address):
        return f"Address {address} is not public"
    return None


async def resolve_addresses(host: str) -> List[IPAddress]:
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    # Drop IPv6 scope ids ("fe80::1%eth0")
    return [ipaddress.ip_address(info[4][0].split("%")[0]) for info in infos]


async def check_resolved_host(host: str) -> Optional[str]:
    """
    Reason ``host`` must not be fetched once resolved, or None when every
    address it resolves to is public.
    """
    try:
        addresses = await resolve_addresses(host)
    except (OSError, ValueError) as e:
        return f"Could not resolve {host}: {e}"
    for address in addresses:
        if not _is_public(address):
            return f"{host} resolves to non-public address {address}"
    return None


class ScrapingService:
    """
    Fetches pages and extracts their main text.

    Attributes:
        timeout: Per-request timeout in seconds
        max_size: Largest response accepted, in bytes
        cache_ttl: Seconds an extracted text stays cached
        cache_size: Most URLs kept in the cache
        transport: httpx transport override (tests)
    """

    MAX_TEXT_LENGTH = 5000
    MIN_TEXT_LENGTH = 100
    MAX_REDIRECTS = 5

    def __init__(
        self,
        timeout: float = 15.0,
        max_size: int = 10 * 1024 * 1024,
        cache_ttl: float = 900.0,
        cache_size: int = 256,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.max_size = max_size
        self.cache_ttl = cache_ttl
        self.cache_size = cache_size
        self.transport = transport
        self._cache: "OrderedDict[str, Tuple[float, str]]" = OrderedDict()

    def validate_url(self, url: str) -> Optional[str]:
        return check_url_safety(url)

    async def extract_text_from_url(self, url: str) -> Optional[str]:
        """
        Readable text of ``url``.

        Returns:
            Normalised text truncated to ``MAX_TEXT_LENGTH``, or None when
            the URL is refused, the request fails, the body is too large or
            fewer than ``MIN_TEXT_LENGTH`` characters are left
        """
        cached = self._cache_get(url)
        if cached is not None:
            return cached

        refusal = self.validate_url(url)
        if refusal:
            logger.warning("Refusing to scrape URL", extra={"url": url, "reason": refusal})
            return None

        try:
            response = await self._fetch(url)
        except UnsafeURLError as e:
            logger.warning("Refusing to scrape URL", extra={"url": url, "reason": str(e)})
            return None
        except httpx.HTTPStatusError as e:
            logger.warning("Scrape got error status", extra={"url": url, "status_code": e.response.status_code})
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Scrape failed: {type(e).__name__}", extra={"url": url, "error": str(e)})
            return None

        if response is None:
            return None

        raw = self._extract_text(response, url)
        text = normalize_whitespace(raw or "")[:self.MAX_TEXT_LENGTH]
        if len(text) < self.MIN_TEXT_LENGTH:
            logger.info("Too little readable text", extra={"url": url, "text_length": len(text)})
            return None

        self._cache_put(url, text)
        logger.info("Scraped URL", extra={"url": url, "text_length": len(text)})
        return text

    async def _fetch(self, url: str) -> Optional[httpx.Response]:
        """
        GET ``url``, following redirects by hand.

        Raises:
            UnsafeURLError: If a hop resolves to a non-public address
            httpx.HTTPError: On transport errors, error statuses or too many
                redirects
        """
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=False, transport=self.transport) as client:
            for _ in range(self.MAX_REDIRECTS + 1):
                await self._ensure_public(url)
                response = await client.get(url, headers=BROWSER_HEADERS)
                if not response.is_redirect or response.next_request is None:
                    break
                url = str(response.next_request.url)
                logger.debug("Following redirect", extra={"url": url})
            else:
                raise httpx.TooManyRedirects("Exceeded maximum allowed redirects", request=response.request)
        response.raise_for_status()

        declared = response.headers.get("content-length", "")
        size = int(declared) if declared.isdigit() else len(response.content)
        if size > self.max_size:
            logger.warning("Response too large", extra={"url": url, "size": size, "max_size": self.max_size})
            return None
        return response

    async def _ensure_public(self, url: str) -> None:
        refusal = check_url_safety(url)
        if refusal is None:
            refusal = await check_resolved_host(urlsplit(url).hostname)
        if refusal:
            raise UnsafeURLError(f"{url}: {refusal}")

    def _extract_text(self, response: httpx.Response, url: str) -> Optional[str]:
        content_type = response.headers.get("content-type", "").lower()
        if "application/pdf" in content_type or url.lower().endswith(".pdf"):
            return extract_pdf_text(response.content)
        if "text/plain" in content_type:
            return response.text
        return trafilatura.extract(
            response.text,
            url=url,
            include_comments=False,
            include_tables=False,
            favor_precision=True,
        )

    def _cache_get(self, url: str) -> Optional[str]:
        entry = self._cache.get(url)
        if entry is None:
            return None
        stored_at, text = entry
        if time.monotonic() - stored_at > self.cache_ttl:
            del self._cache[url]
            return None
        self._cache.move_to_end(url)
        return text

    def _cache_put(self, url: str, text: str) -> None:
        self._cache[url] = (time.monotonic(), text)
        self._cache.move_to_end(url)
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)
