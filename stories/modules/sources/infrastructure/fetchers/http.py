"""HTTP polling fetcher.

变量替换 -> 构造请求头 -> 有上限的分页循环 -> 聚合原始记录。
所有网络/HTTP/解析错误都在此边界内转换为 FetchResult.err，不向外抛出。
"""

import base64
import json
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import httpx
from loguru import logger

from stories.core.config import settings
from stories.modules.sources.domain.entities import (
    AuthType,
    HttpMethod,
    PaginationStrategy,
    PollingConfig,
)
from stories.modules.sources.domain.fetcher import (
    FetchErrorKind,
    FetchResult,
    PollingFetcher,
    ProbeResult,
)
from stories.modules.sources.domain.templates import (
    get_template_spec,
    render_variables,
    unwrap_records,
)


def build_headers(config: PollingConfig) -> dict[str, str]:
    """Merge user headers with defaults and the auth header."""
    headers = dict(config.headers)
    lowered = {k.lower() for k in headers}
    if "content-type" not in lowered:
        headers["Content-Type"] = "application/json"
    if "user-agent" not in lowered:
        headers["User-Agent"] = settings.FETCHER_USER_AGENT

    credential = config.auth.credential
    if config.auth.type == AuthType.BASIC and credential:
        token = base64.b64encode(f"{credential}:X".encode()).decode()
        headers["Authorization"] = f"Basic {token}"
    elif config.auth.type == AuthType.BEARER and credential:
        headers["Authorization"] = f"Bearer {credential}"
    return headers


# 单次运行的分页请求硬上限，配置无法突破
MAX_PAGES = 5


class _PageError(Exception):
    def __init__(self, kind: FetchErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class HttpPollingFetcher(PollingFetcher):
    """Fetch records from a configured JSON API with page-param pagination."""

    def __init__(
        self,
        config: PollingConfig,
        max_pages: int | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.config = config
        self.max_pages = min(max_pages or settings.FETCH_MAX_PAGES, MAX_PAGES)
        self._client = client

    async def fetch(self, now: datetime) -> FetchResult:
        start_time = time.time()
        url = render_variables(self.config.url, now.date())
        body = self._request_body(now)
        headers = build_headers(self.config)
        page_size = get_template_spec(self.config.template).page_size

        records: list[Any] = []
        pages = 0
        try:
            async with self._session() as client:
                for page in range(1, self.max_pages + 1):
                    data = await self._request_page(client, url, headers, body, page)
                    pages += 1
                    page_records = unwrap_records(self.config.template, data)

                    if not page_records:
                        break
                    records.extend(page_records)

                    if self.config.pagination == PaginationStrategy.NONE:
                        break
                    if page_size is not None and len(page_records) < page_size:
                        break
        except _PageError as exc:
            logger.warning(f"Fetch failed for {self._safe_url(url)}: {exc.message}")
            return FetchResult.err(
                exc.kind,
                exc.message,
                pages=pages,
                duration_ms=self._elapsed_ms(start_time),
            )

        logger.debug(
            f"Fetched {len(records)} records in {pages} pages from {self._safe_url(url)}"
        )
        return FetchResult.ok(records, pages=pages, duration_ms=self._elapsed_ms(start_time))

    async def probe(self, now: datetime) -> ProbeResult:
        url = render_variables(self.config.url, now.date())
        try:
            async with self._session() as client:
                response = await client.request(
                    self.config.method.value,
                    url,
                    params=self._page_params(1),
                    headers=build_headers(self.config),
                    content=self._request_body(now),
                )
        except httpx.HTTPError as exc:
            return ProbeResult(success=False, message=f"Network Error: {self._describe(exc)}")

        if not response.is_success:
            return ProbeResult(
                success=False,
                message=f"Failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError:
            return ProbeResult(
                success=False,
                message="Failed: response is not valid JSON",
                status_code=response.status_code,
            )
        return ProbeResult(
            success=True,
            message=f"Connection successful! {response.status_code} {response.reason_phrase}",
            status_code=response.status_code,
            data=data,
        )

    async def _request_page(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: dict[str, str],
        body: str | None,
        page: int,
    ) -> Any:
        try:
            response = await client.request(
                self.config.method.value,
                url,
                params=self._page_params(page),
                headers=headers,
                content=body,
            )
        except httpx.HTTPError as exc:
            raise _PageError(FetchErrorKind.NETWORK, f"Network Error: {self._describe(exc)}") from exc

        if not response.is_success:
            raise _PageError(
                FetchErrorKind.HTTP_STATUS,
                f"API Error: {response.status_code} {response.reason_phrase}",
            )
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise _PageError(
                FetchErrorKind.INVALID_RESPONSE, f"Invalid JSON response: {exc}"
            ) from exc

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(
            timeout=settings.FETCHER_TIMEOUT_SEC,
            follow_redirects=True,
        ) as client:
            yield client

    def _page_params(self, page: int) -> dict[str, int] | None:
        if self.config.pagination == PaginationStrategy.PAGE_PARAM:
            return {"page": page}
        return None

    def _request_body(self, now: datetime) -> str | None:
        if self.config.method != HttpMethod.POST:
            return None
        return render_variables(self.config.body, now.date()) or None

    @staticmethod
    def _describe(exc: Exception) -> str:
        return str(exc) or exc.__class__.__name__

    @staticmethod
    def _safe_url(url: str) -> str:
        return url.split("?", 1)[0]

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.time() - start_time) * 1000)
