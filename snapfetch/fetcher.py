"""Top-level fetch entry point.

``FetchOrchestrator.fetch`` walks one request through
credential -> request -> transport -> parse -> normalize -> extract and
returns a ``FetchResult``; classified failures end up in ``result.error``
instead of being raised.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from .auth import CookieStore
from .errors import FetchError, ErrorKind, ParseError
from .http import HttpGateway
from .media import extract
from .models import FetchRequest, FetchResult, FetchState
from .normalize import normalize
from .providers import ProviderAdapter, get_adapter

logger = logging.getLogger("snapfetch.fetcher")


class FetchOrchestrator:
    def __init__(self, cookies: CookieStore, gateway: HttpGateway,
                 adapters: Optional[dict[str, ProviderAdapter]] = None,
                 request_timeout: Optional[float] = None,
                 clock: Callable[[], float] = time.time):
        self.cookies = cookies
        self.gateway = gateway
        self.adapters = adapters or {}
        self.request_timeout = request_timeout
        self.clock = clock

    def _adapter(self, provider: str) -> ProviderAdapter:
        adapter = self.adapters.get(provider)
        if adapter is None:
            adapter = get_adapter(provider)
            self.adapters[provider] = adapter
        return adapter

    @staticmethod
    def _advance(result: FetchResult, state: FetchState) -> None:
        result.state = state
        result.trace.append(state)
        logger.debug(f"{result.provider}: -> {state.value}")

    async def fetch(self, request: FetchRequest) -> FetchResult:
        result = FetchResult(provider=request.provider)
        self._advance(result, FetchState.IDLE)
        try:
            adapter = self._adapter(request.provider)
            credential = self.cookies.resolve(request.provider, now=self.clock(),
                                              override=request.credential)
            self._advance(result, FetchState.CREDENTIAL_RESOLVED)

            prepared = adapter.build_request(request, credential)
            self._advance(result, FetchState.REQUEST_BUILT)

            raw = await self.gateway.send(prepared, provider=adapter.provider,
                                          deadline=self.request_timeout)
            self._advance(result, FetchState.REQUEST_SENT)

            parsed = adapter.parse_response(raw)
            self._advance(result, FetchState.RESPONSE_PARSED)

            items = []
            for item in normalize(parsed, result.warnings):
                item.media = extract(item)
                if not item.media:
                    msg = f"{item.provider}: 跳过 {item.id}: 没有可下载的媒体"
                    logger.warning(msg)
                    result.warnings.append(msg)
                    continue
                items.append(item)
            self._advance(result, FetchState.NORMALIZED)

            if not items:
                raise ParseError(
                    f"{request.provider}: 本页没有可用条目 (原始 {len(parsed.items)} 条)",
                    kind=ErrorKind.UNEXPECTED_SHAPE, provider=request.provider,
                )
            result.items = items
            result.cursor = parsed.cursor
            self._advance(result, FetchState.DONE)
        except FetchError as e:
            if not e.provider:
                e.provider = request.provider
            logger.warning(f"{request.provider} 获取失败 [{e.kind.value}]: {e}")
            result.items = []
            result.cursor = None
            result.error = e
            self._advance(result, FetchState.ERRORED)
        return result

    async def fetch_many(self, requests: list[FetchRequest]) -> list[FetchResult]:
        """Run several fetches concurrently over the shared gateway."""
        return list(await asyncio.gather(*(self.fetch(r) for r in requests)))
