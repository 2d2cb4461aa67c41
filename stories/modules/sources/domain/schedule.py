"""Schedule evaluation.

- is_due: 精确到分钟的匹配，无容差窗口
- RunRecencyGuard: 60 秒内运行过的源不再触发
- RunLeaseTable: 每个源的"运行中"租约，超时自动失效
"""

from datetime import datetime, timedelta

from loguru import logger

from stories.modules.sources.domain.entities import DayOfWeek, Frequency, Schedule

_WEEKDAYS = list(DayOfWeek)


def is_due(schedule: Schedule, now: datetime) -> bool:
    """Decide whether a run is due at this tick.

    A schedule missing the fields its frequency needs is never due.
    """
    if schedule.frequency == Frequency.HOURLY:
        return now.minute == 0

    if not schedule.time_of_day:
        logger.debug(f"{schedule.frequency} schedule has no time_of_day, never due")
        return False
    if f"{now.hour:02d}:{now.minute:02d}" != schedule.time_of_day:
        return False

    if schedule.frequency == Frequency.DAILY:
        return True
    if schedule.frequency == Frequency.WEEKLY:
        if schedule.day_of_week is None:
            logger.debug("Weekly schedule has no day_of_week, never due")
            return False
        return _WEEKDAYS[now.weekday()] == schedule.day_of_week
    if schedule.frequency == Frequency.MONTHLY:
        if schedule.day_of_month is None:
            logger.debug("Monthly schedule has no day_of_month, never due")
            return False
        return now.day == schedule.day_of_month
    return False


class RunRecencyGuard:
    """Suppress a run when last_run is later than now - window.

    A last_run in the future (clock skew) also suppresses the run.
    """

    def __init__(self, window_sec: int = 60):
        self.window = timedelta(seconds=window_sec)

    def is_recent(self, last_run: datetime | None, now: datetime) -> bool:
        if last_run is None:
            return False
        return last_run > now - self.window


class RunLeaseTable:
    """In-flight run leases keyed by source id.

    A lease is taken before a run task is spawned and released when it
    finishes. Leases older than the TTL are treated as expired so a hung
    fetch cannot block its source forever.
    """

    def __init__(self, ttl_sec: int = 3600):
        self.ttl = timedelta(seconds=ttl_sec)
        self._leases: dict[str, datetime] = {}

    def is_leased(self, source_id: str, now: datetime) -> bool:
        acquired_at = self._leases.get(source_id)
        if acquired_at is None:
            return False
        if now - acquired_at >= self.ttl:
            logger.warning(f"Run lease for source {source_id} expired, releasing")
            del self._leases[source_id]
            return False
        return True

    def acquire(self, source_id: str, now: datetime) -> bool:
        if self.is_leased(source_id, now):
            return False
        self._leases[source_id] = now
        return True

    def release(self, source_id: str) -> None:
        self._leases.pop(source_id, None)

    def __len__(self) -> int:
        return len(self._leases)
