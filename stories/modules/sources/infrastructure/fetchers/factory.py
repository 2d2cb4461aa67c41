"""抓取器工厂。

根据轮询配置创建抓取器实例。
"""

from stories.core.config import settings
from stories.modules.sources.domain.entities import PollingConfig
from stories.modules.sources.domain.fetcher import PollingFetcher
from stories.modules.sources.infrastructure.fetchers.http import (
    MAX_PAGES,
    HttpPollingFetcher,
)


class HttpFetcherFactory:
    """抓取器工厂类。"""

    def __init__(self, max_pages: int | None = None):
        self.max_pages = min(max_pages or settings.FETCH_MAX_PAGES, MAX_PAGES)

    def create(self, config: PollingConfig) -> PollingFetcher:
        return HttpPollingFetcher(config=config, max_pages=self.max_pages)
