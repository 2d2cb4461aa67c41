"""Source templates and request variables.

模板决定响应解包方式（嵌套结果字段）以及"满页"阈值；
变量 {{today}} / {{yesterday}} 在每次运行时替换为 YYYY-MM-DD。
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import StrEnum


class SourceTemplate(StrEnum):
    """Source template identity."""

    CUSTOM = "Custom"
    FRESHDESK = "Freshdesk"


@dataclass(frozen=True)
class TemplateSpec:
    results_field: str | None = None
    page_size: int | None = None  # 低于该数量视为最后一页


TEMPLATE_SPECS: dict[SourceTemplate, TemplateSpec] = {
    SourceTemplate.CUSTOM: TemplateSpec(),
    SourceTemplate.FRESHDESK: TemplateSpec(results_field="results", page_size=30),
}


def get_template_spec(template: SourceTemplate) -> TemplateSpec:
    return TEMPLATE_SPECS.get(template, TemplateSpec())


def render_variables(text: str | None, run_date: date) -> str | None:
    """Substitute {{today}} and {{yesterday}} with ISO calendar dates."""
    if not text:
        return text
    yesterday = run_date - timedelta(days=1)
    return text.replace("{{today}}", run_date.isoformat()).replace(
        "{{yesterday}}", yesterday.isoformat()
    )


def unwrap_records(template: SourceTemplate, data: object) -> list:
    """Extract the record list from one response page."""
    results_field = get_template_spec(template).results_field
    if results_field and isinstance(data, dict) and isinstance(data.get(results_field), list):
        return data[results_field]
    if isinstance(data, list):
        return data
    return [data]
