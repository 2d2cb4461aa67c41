"""轮询抓取器模块。"""

from stories.modules.sources.infrastructure.fetchers.factory import HttpFetcherFactory
from stories.modules.sources.infrastructure.fetchers.http import (
    HttpPollingFetcher,
    build_headers,
)

__all__ = [
    "HttpFetcherFactory",
    "HttpPollingFetcher",
    "build_headers",
]
