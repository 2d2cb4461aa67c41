"""Fallback data used when a polling fetch fails.

抓取失败时以模板对应的固定样例数据补位，保证下游转换仍有输出；
运行本身仍记为 Error。
"""

from datetime import datetime
from typing import Any

from stories.modules.sources.domain.templates import SourceTemplate


class FallbackPolicy:
    """Deterministic synthetic records per source template."""

    def records_for(self, template: SourceTemplate, now: datetime) -> list[dict[str, Any]]:
        if template == SourceTemplate.FRESHDESK:
            created_at = now.isoformat()
            return [
                {
                    "description_text": "We need dark mode in the mobile app",
                    "created_at": created_at,
                    "id": 991,
                    "requester": {"name": "John Doe"},
                },
                {
                    "description_text": "The export to PDF is broken on Safari",
                    "created_at": created_at,
                    "id": 992,
                    "requester": {"name": "Jane Smith"},
                },
            ]
        return [
            {
                "title": "Competitor Y launched a new AI feature",
                "body": "It seems faster than ours.",
                "userId": 1,
            },
            {
                "title": "Customer complained about billing",
                "body": "The invoice was wrong.",
                "userId": 2,
            },
        ]
