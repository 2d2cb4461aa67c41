"""调度判定单元测试。

测试覆盖：
- is_due 各频率的精确分钟匹配
- 缺失字段永不触发
- RunRecencyGuard 60 秒窗口
- RunLeaseTable 租约获取/释放/过期
"""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from stories.modules.sources.domain.entities import DayOfWeek, Frequency, Schedule
from stories.modules.sources.domain.schedule import (
    RunLeaseTable,
    RunRecencyGuard,
    is_due,
)

UTC = ZoneInfo("UTC")


def at(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


# ============================================
# is_due
# ============================================


class TestIsDue:
    """is_due 测试。"""

    def test_hourly_due_on_the_hour(self):
        schedule = Schedule(frequency=Frequency.HOURLY)
        assert is_due(schedule, at(2026, 9, 28, 14, 0)) is True

    def test_hourly_not_due_mid_hour(self):
        schedule = Schedule(frequency=Frequency.HOURLY)
        assert is_due(schedule, at(2026, 9, 28, 14, 1)) is False
        assert is_due(schedule, at(2026, 9, 28, 14, 59)) is False

    def test_hourly_ignores_time_of_day(self):
        schedule = Schedule(frequency=Frequency.HOURLY, time_of_day="09:30")
        assert is_due(schedule, at(2026, 9, 28, 3, 0)) is True

    def test_daily_exact_minute(self):
        schedule = Schedule(frequency=Frequency.DAILY, time_of_day="09:00")
        assert is_due(schedule, at(2026, 9, 28, 9, 0)) is True
        assert is_due(schedule, at(2026, 9, 29, 9, 0)) is True

    def test_daily_no_tolerance_window(self):
        """错过的分钟不会补跑。"""
        schedule = Schedule(frequency=Frequency.DAILY, time_of_day="09:00")
        assert is_due(schedule, at(2026, 9, 28, 9, 1)) is False
        assert is_due(schedule, at(2026, 9, 28, 8, 59)) is False

    def test_daily_seconds_do_not_matter(self):
        schedule = Schedule(frequency=Frequency.DAILY, time_of_day="17:45")
        assert is_due(schedule, at(2026, 9, 28, 17, 45, 42)) is True

    def test_weekly_monday(self):
        """2026-09-28 是周一。"""
        schedule = Schedule(
            frequency=Frequency.WEEKLY,
            time_of_day="09:00",
            day_of_week=DayOfWeek.MONDAY,
        )
        assert is_due(schedule, at(2026, 9, 28, 9, 0)) is True
        assert is_due(schedule, at(2026, 9, 28, 9, 1)) is False
        assert is_due(schedule, at(2026, 9, 29, 9, 0)) is False

    def test_weekly_sunday(self):
        schedule = Schedule(
            frequency=Frequency.WEEKLY,
            time_of_day="09:00",
            day_of_week=DayOfWeek.SUNDAY,
        )
        assert is_due(schedule, at(2026, 10, 4, 9, 0)) is True
        assert is_due(schedule, at(2026, 10, 3, 9, 0)) is False

    def test_monthly_day_of_month(self):
        schedule = Schedule(
            frequency=Frequency.MONTHLY, time_of_day="06:30", day_of_month=15
        )
        assert is_due(schedule, at(2026, 10, 15, 6, 30)) is True
        assert is_due(schedule, at(2026, 10, 16, 6, 30)) is False

    def test_monthly_31_never_fires_in_short_month(self):
        schedule = Schedule(
            frequency=Frequency.MONTHLY, time_of_day="06:30", day_of_month=31
        )
        assert not any(
            is_due(schedule, at(2026, 9, day, 6, 30)) for day in range(1, 31)
        )
        assert is_due(schedule, at(2026, 10, 31, 6, 30)) is True

    @pytest.mark.parametrize(
        "schedule",
        [
            Schedule(frequency=Frequency.DAILY, time_of_day=None),
            Schedule(frequency=Frequency.WEEKLY, time_of_day="09:00"),
            Schedule(frequency=Frequency.MONTHLY, time_of_day="09:00"),
        ],
    )
    def test_missing_fields_never_due(self, schedule):
        for day in range(28, 31):
            assert is_due(schedule, at(2026, 9, day, 9, 0)) is False


class TestScheduleValidation:
    """Schedule 字段格式校验。"""

    def test_default_is_daily_nine(self):
        schedule = Schedule()
        assert schedule.frequency == Frequency.DAILY
        assert schedule.time_of_day == "09:00"

    @pytest.mark.parametrize("value", ["9:00", "24:00", "09:60", "0900", "ab:cd"])
    def test_rejects_malformed_time(self, value):
        with pytest.raises(ValueError):
            Schedule(time_of_day=value)

    def test_empty_time_becomes_none(self):
        assert Schedule(time_of_day="").time_of_day is None

    def test_day_of_month_range(self):
        with pytest.raises(ValueError):
            Schedule(frequency=Frequency.MONTHLY, day_of_month=32)
        with pytest.raises(ValueError):
            Schedule(frequency=Frequency.MONTHLY, day_of_month=0)


# ============================================
# RunRecencyGuard
# ============================================


class TestRunRecencyGuard:
    """最近运行保护测试。"""

    def test_never_ran(self):
        guard = RunRecencyGuard(60)
        assert guard.is_recent(None, at(2026, 9, 28, 9, 0)) is False

    def test_within_window(self):
        guard = RunRecencyGuard(60)
        now = at(2026, 9, 28, 9, 0, 30)
        assert guard.is_recent(now - timedelta(seconds=59), now) is True

    def test_outside_window(self):
        guard = RunRecencyGuard(60)
        now = at(2026, 9, 28, 9, 0)
        assert guard.is_recent(now - timedelta(seconds=60), now) is False
        assert guard.is_recent(now - timedelta(hours=1), now) is False

    def test_future_last_run_counts_as_recent(self):
        """时钟回拨后 last_run 晚于 now，无论相差多久都视为刚运行过。"""
        guard = RunRecencyGuard(60)
        now = at(2026, 9, 28, 9, 0)
        assert guard.is_recent(now + timedelta(seconds=10), now) is True
        assert guard.is_recent(now + timedelta(hours=2), now) is True


# ============================================
# RunLeaseTable
# ============================================


class TestRunLeaseTable:
    """运行租约测试。"""

    def test_acquire_and_release(self):
        leases = RunLeaseTable(ttl_sec=3600)
        now = at(2026, 9, 28, 9, 0)

        assert leases.acquire("src-1", now) is True
        assert leases.acquire("src-1", now) is False
        assert leases.is_leased("src-1", now) is True
        assert len(leases) == 1

        leases.release("src-1")
        assert leases.is_leased("src-1", now) is False
        assert leases.acquire("src-1", now) is True

    def test_independent_sources(self):
        leases = RunLeaseTable()
        now = at(2026, 9, 28, 9, 0)
        assert leases.acquire("a", now) is True
        assert leases.acquire("b", now) is True
        assert len(leases) == 2

    def test_expired_lease_is_released(self):
        leases = RunLeaseTable(ttl_sec=60)
        now = at(2026, 9, 28, 9, 0)
        leases.acquire("src-1", now)

        later = now + timedelta(seconds=61)
        assert leases.is_leased("src-1", later) is False
        assert leases.acquire("src-1", later) is True

    def test_release_unknown_is_noop(self):
        leases = RunLeaseTable()
        leases.release("missing")
        assert len(leases) == 0
