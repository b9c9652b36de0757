"""SSRF-safe async HTTP client with rate limiting and tenacity retries."""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from glorynews.errors import NetworkError, ParseError, SSRFError
from glorynews.scraping.ratelimit import TokenBucketRateLimiter

logger = logging.getLogger(__name__)

# RFC-1918 + loopback + link-local private ranges
_PRIVATE_NETWORKS = [
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
]

_BLOCKED_HOSTS = {"localhost", "metadata.google.internal"}

_RETRY_STATUSES = {429, 500, 502, 503, 504}


def _is_private_ip(ip_str: str) -> bool:
    """Return True if *ip_str* falls within any private/loopback range."""
    try:
        addr = ipaddress.ip_address(ip_str)
        return any(addr in net for net in _PRIVATE_NETWORKS)
    except ValueError:
        return False


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRY_STATUSES
    return False


class SafeHTTPClient:
    """httpx.AsyncClient wrapper with SSRF protection, rate limiting and retries.

    Parameters
    ----------
    timeout:
        Default per-request timeout in seconds; ``get`` accepts an override.
    max_retries:
        Maximum attempts per request (first try included).
    min_wait / max_wait / jitter:
        Exponential backoff boundaries in seconds, plus random jitter so that
        concurrent retries against one provider spread out.
    rate_limiter:
        Optional per-host token bucket; a token is taken before every attempt.
    block_private_hosts:
        Resolve the host and refuse private/loopback targets.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        max_retries: int = 3,
        min_wait: float = 1.0,
        max_wait: float = 8.0,
        jitter: float = 1.0,
        user_agent: str = "GloryNews/1.0",
        rate_limiter: Optional[TokenBucketRateLimiter] = None,
        block_private_hosts: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.min_wait = min_wait
        self.max_wait = max_wait
        self.jitter = jitter
        self.rate_limiter = rate_limiter
        self.block_private_hosts = block_private_hosts
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get(
        self,
        url: str,
        *,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """SSRF-protected, rate-limited GET with retries.

        Raises NetworkError once retries are exhausted or on a non-2xx status.
        """
        await self._assert_safe(url, timeout if timeout is not None else self.timeout)
        try:
            return await self._get_with_retry(url, timeout=timeout, **kwargs)
        except httpx.HTTPStatusError as exc:
            raise NetworkError(
                f"HTTP {exc.response.status_code} from {url}",
                url=url,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"{type(exc).__name__} fetching {url}: {exc}", url=url) from exc

    async def get_text(self, url: str, **kwargs: Any) -> str:
        response = await self.get(url, **kwargs)
        return response.text

    async def get_json(self, url: str, **kwargs: Any) -> Any:
        headers = {"Accept": "application/json", **kwargs.pop("headers", {})}
        response = await self.get(url, headers=headers, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise ParseError(f"Invalid JSON from {url}: {exc}") from exc

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()

    async def __aenter__(self) -> "SafeHTTPClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _assert_safe(self, url: str, timeout: float) -> None:
        """Block private/loopback IPs via DNS pre-check.

        Resolution runs in the loop's executor and is bounded by *timeout*;
        a lookup that does not finish in time is a NetworkError.
        """
        parsed = urlparse(url)
        host = parsed.hostname or ""
        if not host:
            raise SSRFError(f"Cannot determine host from URL: {url!r}", url=url)
        if not self.block_private_hosts:
            return
        if host in _BLOCKED_HOSTS:
            raise SSRFError(f"SSRF protection: blocked host {host!r}", url=url)

        loop = asyncio.get_running_loop()
        try:
            addr_infos = await asyncio.wait_for(loop.getaddrinfo(host, None), timeout)
        except asyncio.TimeoutError as exc:
            raise NetworkError(f"DNS lookup for {host!r} timed out", url=url) from exc
        except socket.gaierror:
            # Unresolvable here; httpx will report the connect failure itself.
            return

        for ai in addr_infos:
            ip_str = ai[4][0]
            if _is_private_ip(ip_str):
                raise SSRFError(
                    f"SSRF protection: {host!r} resolves to private IP {ip_str!r}",
                    url=url,
                )

    async def _get_with_retry(
        self,
        url: str,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        host = urlparse(url).hostname or url
        request_timeout = httpx.Timeout(timeout if timeout is not None else self.timeout)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential_jitter(
                initial=self.min_wait, max=self.max_wait, jitter=self.jitter
            ),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        "http_retry",
                        extra={"url": url, "attempt": attempt.retry_state.attempt_number},
                    )
                if self.rate_limiter is not None:
                    await self.rate_limiter.wait(host)
                try:
                    response = await self._client.get(url, timeout=request_timeout, **kwargs)
                    response.raise_for_status()
                finally:
                    if self.rate_limiter is not None:
                        self.rate_limiter.release(host)
        return response
