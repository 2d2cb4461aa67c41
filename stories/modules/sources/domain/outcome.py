"""Run outcome result type."""

import json
from dataclasses import dataclass
from typing import Any

from stories.modules.sources.domain.entities import SNIPPET_MAX_CHARS, RunStatus


def make_snippet(raw: Any) -> str:
    """First 200 chars of the serialized raw result; strings are kept verbatim."""
    if isinstance(raw, str):
        return raw[:SNIPPET_MAX_CHARS]
    return json.dumps(raw, ensure_ascii=False, default=str)[:SNIPPET_MAX_CHARS]


@dataclass
class RunOutcome:
    """一次运行的结果，交给 RunLogRecorder 落日志。"""

    status: RunStatus
    message: str
    items_count: int = 0
    response_snippet: str = ""
    signals_created: int = 0
    fallback_used: bool = False

    @property
    def is_success(self) -> bool:
        return self.status == RunStatus.SUCCESS

    @classmethod
    def success(
        cls,
        message: str,
        items_count: int = 0,
        raw: Any = None,
        signals_created: int = 0,
    ) -> "RunOutcome":
        return cls(
            status=RunStatus.SUCCESS,
            message=message,
            items_count=items_count,
            response_snippet=make_snippet(raw) if raw is not None else "",
            signals_created=signals_created,
        )

    @classmethod
    def failure(
        cls,
        message: str,
        items_count: int = 0,
        raw: Any = None,
        signals_created: int = 0,
        fallback_used: bool = False,
    ) -> "RunOutcome":
        return cls(
            status=RunStatus.ERROR,
            message=message,
            items_count=items_count,
            response_snippet=make_snippet(raw) if raw is not None else "",
            signals_created=signals_created,
            fallback_used=fallback_used,
        )
