"""Application configuration."""

from typing import Annotated, Any, Literal

from pydantic import AnyUrl, BeforeValidator, Field, HttpUrl, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",")]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "Stories"
    SERVER_PORT: int = 8000
    ROOTPATH: str = ""
    API_V1_STR: str = "/v1"
    FRONTEND_HOST: str = "http://localhost:3000"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "UTC"

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []
    CORS_ALLOW_METHODS: list[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    CORS_ALLOW_HEADERS: list[str] = ["Authorization", "Content-Type"]

    @computed_field
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS] + [
            self.FRONTEND_HOST
        ]

    # Sentry
    SENTRY_DSN: HttpUrl | None = None

    # Product context（用于 AI 转换 prompt）
    PRODUCT_NAME: str = "Stories"
    PRODUCT_DESCRIPTION: str = (
        "An AI-powered product intelligence engine that transforms support "
        "tickets, reviews, and competitor signals into actionable stories for "
        "B2B SaaS product managers."
    )

    # OpenAI
    OPENAI_API_KEY: str | None = None
    OPENAI_API_BASE: str = "https://api.openai.com/v1"
    OPENAI_TRANSFORM_MODEL: str = "gpt-4o-mini"
    OPENAI_SEARCH_MODEL: str = "gpt-4o-mini-search-preview"
    LLM_ENABLED: bool = True  # 关闭后 transformer 不可用，运行记为 Error
    TRANSFORM_MAX_INPUT_CHARS: int = 20000

    # Scheduler
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_TICK_SEC: int = 60  # 必须整除 60，否则会漏掉整分钟触发
    SCHEDULER_LEASE_TTL_SEC: int = 3600
    RUN_RECENCY_WINDOW_SEC: int = 60

    # Fetcher
    FETCH_MAX_PAGES: int = Field(default=5, ge=1, le=5)
    FETCHER_TIMEOUT_SEC: float | None = None
    FETCHER_USER_AGENT: str = "StoriesIngest/0.1 (+https://stories.ai)"

    # Webhooks
    WEBHOOK_BASE_URL: str = "https://api.stories.ai/v1/hooks"

    # Pagination
    DEFAULT_PAGE: int = 1
    SOURCES_PAGE_SIZE: int = 20
    SIGNALS_PAGE_SIZE: int = 50

    @computed_field
    @property
    def transformer_enabled(self) -> bool:
        return bool(self.LLM_ENABLED and self.OPENAI_API_KEY)


settings = Settings()
