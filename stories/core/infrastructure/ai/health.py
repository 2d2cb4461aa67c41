"""OpenAI API 健康检查。

用 models.list() 这种轻量调用确认 key 有效且服务可达。
"""

import time

from loguru import logger
from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from stories.core.config import settings
from stories.core.infrastructure.health import HealthStatus


class AIServiceHealthResult(BaseModel):
    """AI 服务健康检查结果。"""

    status: HealthStatus = Field(..., description="健康状态")
    message: str | None = Field(None, description="状态消息")
    latency_ms: int | None = Field(None, description="延迟（毫秒）", ge=0)
    transform_model: str | None = Field(None, description="转换模型")
    search_model: str | None = Field(None, description="搜索模型")
    error: str | None = Field(None, description="错误信息")

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", exclude_none=False)


async def check_ai_service_health(
    client: AsyncOpenAI | None = None,
) -> AIServiceHealthResult:
    """Check that the configured OpenAI endpoint answers.

    Disabled LLM yields SKIPPED; a missing key yields ERROR without a call.
    """
    if not settings.LLM_ENABLED:
        return AIServiceHealthResult(
            status=HealthStatus.SKIPPED,
            message="LLM features are disabled",
        )
    if client is None and not settings.OPENAI_API_KEY:
        logger.warning("OpenAI API key is not configured")
        return AIServiceHealthResult(
            status=HealthStatus.ERROR,
            error="API key not configured",
        )

    client = client or AsyncOpenAI(
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_API_BASE,
        timeout=5.0,
    )
    start_time = time.time()
    try:
        await client.models.list()
    except Exception as e:
        logger.error(f"OpenAI health check failed: {e}")
        return AIServiceHealthResult(status=HealthStatus.ERROR, error=str(e))

    return AIServiceHealthResult(
        status=HealthStatus.OK,
        latency_ms=int((time.time() - start_time) * 1000),
        transform_model=settings.OPENAI_TRANSFORM_MODEL,
        search_model=settings.OPENAI_SEARCH_MODEL,
    )
