"""信号管道与内存存储单元测试。"""

import pytest

from stories.modules.signals.domain.entities import (
    Signal,
    SignalType,
    format_standard_date,
    format_standard_datetime,
)

pytestmark = pytest.mark.anyio


def signal(content: str) -> Signal:
    return Signal(
        source="Test", content=content, type=SignalType.INTERNAL, date="September 28, 2026"
    )


class TestInMemorySignalStore:
    """内存存储。"""

    async def test_new_signals_are_prepended(self, signal_store):
        await signal_store.add_signals([signal("old")])
        await signal_store.add_signals([signal("new-1"), signal("new-2")])

        signals, total = await signal_store.list_signals()

        assert total == 3
        assert [s.content for s in signals] == ["new-1", "new-2", "old"]

    async def test_pagination(self, signal_store):
        await signal_store.add_signals([signal(str(i)) for i in range(5)])

        page, total = await signal_store.list_signals(page=2, page_size=2)

        assert total == 5
        assert [s.content for s in page] == ["2", "3"]

    async def test_delete(self, signal_store):
        s = signal("x")
        await signal_store.add_signals([s])

        assert await signal_store.delete_signal(s.id) is True
        assert await signal_store.delete_signal(s.id) is False


class TestSignalPipeline:
    """转换 -> 入库 -> 重新聚类。"""

    async def test_publish_reclusters_whole_collection(
        self, pipeline, signal_store, transformer
    ):
        await pipeline.publish([signal("a")])
        await pipeline.publish([signal("b")])

        assert len(transformer.cluster_calls) == 2
        assert [s.content for s in transformer.cluster_calls[-1]] == ["b", "a"]
        stories = await signal_store.list_stories()
        assert len(stories) == 1
        assert stories[0].signal_strength == 2

    async def test_publish_empty_is_noop(self, pipeline, transformer, signal_store):
        await pipeline.publish([])

        assert transformer.cluster_calls == []
        assert await signal_store.all_signals() == []

    async def test_transform_passes_target_type(self, pipeline, transformer):
        signals = await pipeline.transform("Src", [{"x": 1}], SignalType.MARKET)

        assert signals[0].type == SignalType.MARKET
        assert transformer.transform_calls == [("Src", [{"x": 1}], SignalType.MARKET)]


class TestDateFormatting:
    def test_standard_date(self, now):
        assert format_standard_date(now) == "September 28, 2026"

    def test_standard_datetime_midnight(self, now):
        assert format_standard_datetime(now.replace(hour=0, minute=5)) == (
            "September 28, 2026 12:05:00 AM"
        )
