"""Shared outbound HTTP gateway.

One ``httpx.AsyncClient`` per gateway, a semaphore capping in-flight
attempts, per-provider pacing and exponential backoff retry. Cookies are never
injected here: callers pass the complete header set.
"""

import asyncio
import logging
import random
import time
from typing import Optional

import httpx

from .config import DESKTOP_UA, GatewayConfig
from .errors import ErrorKind, GatewayError
from .models import PreparedRequest, RawResponse

logger = logging.getLogger("snapfetch.http")

NETWORK_EXCEPTIONS = (httpx.TransportError,)
RETRYABLE_STATUS = (408, 429)


def _headers() -> dict[str, str]:
    return {
        "User-Agent": DESKTOP_UA,
        "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    }


def _retry_after(resp: httpx.Response) -> Optional[float]:
    value = resp.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class HttpGateway:
    """Provider-agnostic request executor shared by all concurrent fetches."""

    def __init__(self, config: Optional[GatewayConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or GatewayConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._semaphore = asyncio.Semaphore(self.config.max_concurrency)
        self._in_flight = 0
        self._last_request: dict[str, float] = {}
        self._pace_locks: dict[str, asyncio.Lock] = {}

    # ── lifecycle ───────────────────────────────────────────

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                timeout=self.config.timeout,
                headers=_headers(),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
        return False

    @property
    def in_flight(self) -> int:
        return self._in_flight

    # ── public API ──────────────────────────────────────────

    async def send(self, prepared: PreparedRequest, provider: str = "",
                   timeout: Optional[float] = None, deadline: Optional[float] = None) -> RawResponse:
        return await self.execute(prepared.method, prepared.url, prepared.headers, prepared.body,
                                  timeout=timeout, provider=provider, deadline=deadline)

    async def execute(self, method: str, url: str, headers: Optional[dict] = None,
                      body: Optional[bytes] = None, timeout: Optional[float] = None,
                      provider: str = "", deadline: Optional[float] = None) -> RawResponse:
        """Run one logical request, retrying transient failures.

        ``timeout`` bounds each attempt; ``deadline`` (default
        ``config.request_timeout``) bounds all attempts plus backoff.
        """
        if deadline is None:
            deadline = self.config.request_timeout
        coro = self._execute_with_retry(method, url, headers or {}, body, timeout, provider)
        if not deadline:
            return await coro
        try:
            return await asyncio.wait_for(coro, deadline)
        except asyncio.TimeoutError:
            raise GatewayError(f"{method} {url} 超过总时限 {deadline}s", kind=ErrorKind.TIMEOUT,
                               provider=provider, transient=False) from None

    # ── internals ───────────────────────────────────────────

    async def _execute_with_retry(self, method, url, headers, body, timeout, provider) -> RawResponse:
        attempts = self.config.max_retries
        last_exc: Optional[GatewayError] = None
        for attempt in range(attempts):
            retry_after = None
            try:
                resp = await self._attempt(method, url, headers, body, timeout, provider)
            except GatewayError as e:
                e.attempts = attempt + 1
                if not e.transient:
                    raise
                last_exc = e
            else:
                if resp.status_code < 400:
                    return RawResponse(
                        provider=provider,
                        status=resp.status_code,
                        body=resp.content,
                        headers=dict(resp.headers.items()),
                        url=str(resp.url),
                        attempts=attempt + 1,
                    )
                err = GatewayError(f"HTTP {resp.status_code}: {method} {url}", kind=ErrorKind.HTTP_STATUS,
                                   provider=provider, status=resp.status_code, attempts=attempt + 1)
                if not err.transient:
                    raise err
                last_exc = err
                if resp.status_code == 429:
                    retry_after = _retry_after(resp)

            if attempt + 1 < attempts:
                wait = self._backoff(attempt, retry_after)
                logger.warning(f"Retry {attempt+1}/{attempts} for {url}: {last_exc} (等待 {wait:.2f}s)")
                await asyncio.sleep(wait)

        raise GatewayError(
            f"{method} {url} 重试 {attempts} 次后仍失败: {last_exc}",
            kind=ErrorKind.RETRIES_EXHAUSTED,
            provider=provider,
            status=last_exc.status if last_exc is not None else None,
            attempts=attempts,
            transient=False,
        ) from last_exc

    async def _attempt(self, method, url, headers, body, timeout, provider) -> httpx.Response:
        await self._pace(provider)
        await self._acquire(provider)
        self._in_flight += 1
        try:
            client = self._get_client()
            return await client.request(
                method, url, headers=headers, content=body,
                timeout=self.config.timeout if timeout is None else timeout,
            )
        except httpx.TimeoutException as e:
            raise GatewayError(f"请求超时: {url}", kind=ErrorKind.TIMEOUT, provider=provider) from e
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise GatewayError(f"无效URL: {url}", kind=ErrorKind.CONNECTION_FAILED,
                               provider=provider, transient=False) from e
        except NETWORK_EXCEPTIONS as e:
            raise GatewayError(f"连接失败: {url}: {e}", kind=ErrorKind.CONNECTION_FAILED,
                               provider=provider) from e
        except httpx.HTTPError as e:
            # decoding failures, redirect loops
            raise GatewayError(f"响应处理失败: {url}: {e}", kind=ErrorKind.CONNECTION_FAILED,
                               provider=provider, transient=False) from e
        finally:
            self._in_flight -= 1
            self._semaphore.release()

    async def _acquire(self, provider: str) -> None:
        if self.config.acquire_timeout is None:
            await self._semaphore.acquire()
            return
        try:
            await asyncio.wait_for(self._semaphore.acquire(), self.config.acquire_timeout)
        except asyncio.TimeoutError:
            raise GatewayError(f"等待空闲连接超时 ({self.config.acquire_timeout}s)",
                               kind=ErrorKind.TIMEOUT, provider=provider, transient=False) from None

    async def _pace(self, provider: str) -> None:
        interval = self.config.min_intervals.get(provider, 0) if provider else 0
        if interval <= 0:
            return
        lock = self._pace_locks.setdefault(provider, asyncio.Lock())
        async with lock:
            last = self._last_request.get(provider)
            if last is not None:
                wait = interval - (time.monotonic() - last)
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_request[provider] = time.monotonic()

    def _backoff(self, attempt: int, retry_after: Optional[float] = None) -> float:
        wait = min(self.config.backoff_base * (2 ** attempt), self.config.backoff_max)
        if self.config.jitter > 0:
            wait += random.uniform(0, self.config.jitter)
        if retry_after is not None and retry_after > wait:
            wait = min(retry_after, self.config.backoff_max)
        return wait
