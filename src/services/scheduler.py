import asyncio
import re
from collections.abc import Callable
from datetime import datetime, timedelta

import structlog
from pydantic import ValidationError

from src.config.settings import get_settings
from src.models.config import ScheduleConfig, ScheduleStatus
from src.utils.errors import ScheduleConfigError

log = structlog.get_logger()

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
STATUS_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def _weekday(moment: datetime) -> int:
    """Day number with 0 = Sunday, 6 = Saturday."""
    return (moment.weekday() + 1) % 7


def validate_schedule(config: ScheduleConfig | dict) -> ScheduleConfig:
    """Parse and check a schedule window, raising ScheduleConfigError on any violation."""
    if isinstance(config, dict):
        try:
            config = ScheduleConfig.model_validate(config)
        except ValidationError as e:
            raise ScheduleConfigError(f"Invalid schedule configuration: {e}") from e
    elif not isinstance(config, ScheduleConfig):
        raise ScheduleConfigError("Schedule configuration must be a ScheduleConfig or dict")

    if not config.start_time or not config.end_time:
        raise ScheduleConfigError("Start time and end time are required")
    if not _TIME_PATTERN.match(config.start_time) or not _TIME_PATTERN.match(config.end_time):
        raise ScheduleConfigError("Invalid time format. Expected HH:MM")

    invalid = [d for d in config.days if isinstance(d, bool) or not isinstance(d, int) or not 0 <= d <= 6]
    if invalid:
        raise ScheduleConfigError(f"Invalid day values: {', '.join(str(d) for d in invalid)}")
    return config


class Scheduler:
    """Fires ``on_schedule_trigger`` on every tick that falls inside a weekly time window.

    A window whose start is later than its end crosses midnight: it opens on
    an eligible day and its early-morning part belongs to that day's window.
    """

    def __init__(
        self,
        config: ScheduleConfig | dict,
        *,
        clock: Callable[[], datetime] | None = None,
        tick_seconds: float | None = None,
    ):
        self.config = validate_schedule(config)
        self._clock = clock or datetime.now
        self.tick_seconds = (
            get_settings().schedule_tick_seconds if tick_seconds is None else tick_seconds
        )
        self._task: asyncio.Task | None = None

    @property
    def is_active(self) -> bool:
        return self._task is not None

    def update_config(self, config: ScheduleConfig | dict) -> None:
        self.config = validate_schedule(config)
        if self.is_active:
            self.stop()
            self.start()

    def start(self) -> None:
        """Start the periodic check. Must be called with a running event loop."""
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        log.info(
            "scheduler_started",
            start_time=self.config.start_time,
            end_time=self.config.end_time,
            days=self.config.days,
        )

    def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        log.info("scheduler_stopped")

    async def _run(self) -> None:
        while True:
            await self.check_schedule()
            await asyncio.sleep(self.tick_seconds)

    async def check_schedule(self) -> None:
        if not self.is_in_schedule():
            return
        try:
            await self.on_schedule_trigger()
        except Exception:
            log.exception("schedule_trigger_failed")

    async def on_schedule_trigger(self) -> None:
        """Called on each in-window tick. Subclasses override."""

    def is_in_schedule(self, now: datetime | None = None) -> bool:
        now = now or self._clock()
        days = self.config.days
        if not days:
            return False

        current = now.hour * 60 + now.minute
        start = _to_minutes(self.config.start_time)
        end = _to_minutes(self.config.end_time)
        today = _weekday(now)

        if start <= end:
            return today in days and start <= current <= end

        yesterday = (today + 6) % 7
        if today in days and (current >= start or current <= end):
            return True
        return yesterday in days and current <= end

    def get_next_schedule_time(self, now: datetime | None = None) -> datetime | None:
        now = now or self._clock()
        if not self.config.days:
            return None
        if self.is_in_schedule(now):
            return now

        start = _to_minutes(self.config.start_time)
        today = _weekday(now)
        for offset in range(8):
            if (today + offset) % 7 not in self.config.days:
                continue
            candidate = (now + timedelta(days=offset)).replace(
                hour=start // 60, minute=start % 60, second=0, microsecond=0
            )
            if candidate > now:
                return candidate
        return None

    def get_status(self) -> ScheduleStatus:
        now = self._clock()
        next_time = self.get_next_schedule_time(now)
        return ScheduleStatus(
            is_active=self.is_active,
            is_in_schedule=self.is_in_schedule(now),
            next_schedule=next_time.strftime(STATUS_TIME_FORMAT) if next_time else None,
        )
