"""Logging configuration with structlog integration.

提供两种日志记录方式：
1. loguru: 用于一般调试日志
2. structlog: 用于关键业务事件的结构化日志（运行、降级、webhook 等）
"""

import logging
import sys
from typing import Any

import structlog
from loguru import logger

from stories.core.config import settings


def setup_logging() -> None:
    """Configure application logging with structlog and loguru."""
    _configure_structlog()
    _configure_loguru()

    logger.info(f"Logging configured with level: {settings.LOG_LEVEL}")


def _configure_structlog() -> None:
    """配置 structlog 处理器链。"""
    if settings.ENVIRONMENT == "local":
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _get_log_level_number(settings.LOG_LEVEL)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def _configure_loguru() -> None:
    """配置 loguru。"""
    logger.remove()

    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    if settings.ENVIRONMENT != "local":
        logger.add(
            "logs/stories_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="30 days",
            level="INFO",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )


def _get_log_level_number(level: str) -> int:
    """将日志级别字符串转换为数字。"""
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


# ============================================================================
# 业务事件日志（structlog）
# ============================================================================


class BusinessEvents:
    """运行、降级、webhook、调度等关键节点的结构化事件。

    Usage:
        BusinessEvents.source_run_completed(
            source_id="src_123", trigger="schedule", items_count=4, duration_ms=812
        )
    """

    _log = structlog.get_logger("stories.events")

    @classmethod
    def _emit(cls, level: str, name: str, category: str, **fields: Any) -> None:
        getattr(cls._log, level)(name, event_type=category, **fields)

    @classmethod
    def source_run_started(cls, source_id: str, trigger: str, **extra: Any) -> None:
        cls._emit(
            "info",
            "source_run_started",
            "ingest",
            source_id=source_id,
            trigger=trigger,
            **extra,
        )

    @classmethod
    def source_run_completed(
        cls,
        source_id: str,
        trigger: str,
        items_count: int,
        duration_ms: int,
        **extra: Any,
    ) -> None:
        cls._emit(
            "info",
            "source_run_completed",
            "ingest",
            source_id=source_id,
            trigger=trigger,
            items_count=items_count,
            duration_ms=duration_ms,
            **extra,
        )

    @classmethod
    def source_run_failed(
        cls,
        source_id: str,
        trigger: str,
        error: str,
        items_count: int = 0,
        **extra: Any,
    ) -> None:
        cls._emit(
            "warning",
            "source_run_failed",
            "ingest_error",
            source_id=source_id,
            trigger=trigger,
            error=error,
            items_count=items_count,
            **extra,
        )

    @classmethod
    def fallback_used(
        cls, source_id: str, template: str, error: str, records: int, **extra: Any
    ) -> None:
        """抓取失败，使用模板的演示数据替代。"""
        cls._emit(
            "warning",
            "fallback_used",
            "degradation",
            source_id=source_id,
            template=template,
            error=error,
            records=records,
            **extra,
        )

    @classmethod
    def webhook_rejected(cls, source_id: str, reason: str, **extra: Any) -> None:
        cls._emit(
            "warning",
            "webhook_rejected",
            "webhook",
            source_id=source_id,
            reason=reason,
            **extra,
        )

    @classmethod
    def source_status_changed(
        cls, source_id: str, previous: str, current: str, **extra: Any
    ) -> None:
        level = "warning" if current == "Error" else "info"
        cls._emit(
            level,
            "source_status_changed",
            "status",
            source_id=source_id,
            previous=previous,
            current=current,
            **extra,
        )

    @classmethod
    def scheduler_tick(cls, evaluated: int, triggered: list[str], **extra: Any) -> None:
        """只在本次 tick 有源被触发时记录。"""
        cls._emit(
            "info",
            "scheduler_tick",
            "schedule",
            evaluated=evaluated,
            triggered=triggered,
            **extra,
        )
