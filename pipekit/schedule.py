"""Recurring schedules of a pipeline."""

from __future__ import annotations

import logging
from datetime import date
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .canonify import canonify_plain
from .constants import SCHEDULES_COLLECTION
from .errors import UniqueConstraintError
from .store.base import BaseRecordStore

logger = logging.getLogger(__name__)


class DailyMode(BaseModel):
    mode: Literal["daily"] = "daily"

    model_config = ConfigDict(frozen=True)


class WeeklyMode(BaseModel):
    """``day`` counts from Sunday = 0."""

    mode: Literal["weekly"] = "weekly"
    day: int = Field(ge=0, le=6)

    model_config = ConfigDict(frozen=True)


class MonthlyMode(BaseModel):
    """``day`` is the 1-based day of the month."""

    mode: Literal["monthly"] = "monthly"
    day: int = Field(ge=1, le=31)

    model_config = ConfigDict(frozen=True)


ScheduleMode = Annotated[
    Union[DailyMode, WeeklyMode, MonthlyMode], Field(discriminator="mode")
]
_mode_adapter: TypeAdapter = TypeAdapter(ScheduleMode)


class ScheduleForm(BaseModel):
    """Values entered by the user; ``day`` may be left empty."""

    mode: Literal["daily", "weekly", "monthly"]
    day: Optional[int] = None


def sunday_based_weekday(day: date) -> int:
    return (day.weekday() + 1) % 7


def compute_schedule_mode(
    form: ScheduleForm, clock: Callable[[], date] = date.today
) -> Union[DailyMode, WeeklyMode, MonthlyMode]:
    """Turn the form into a schedule mode, defaulting ``day`` from ``clock``.

    Raises:
        pydantic.ValidationError: If ``day`` is out of range for the mode.
    """
    if form.mode == "daily":
        return DailyMode()
    if form.mode == "weekly":
        day = form.day if form.day is not None else sunday_based_weekday(clock())
        return WeeklyMode(day=day)
    day = form.day if form.day is not None else clock().day
    return MonthlyMode(day=day)


def schedule_mode_to_wire(mode: Union[DailyMode, WeeklyMode, MonthlyMode]) -> Dict[str, Any]:
    """Return the runner's representation, whose month days are 0-based.

    Raises:
        ValueError: If a monthly day is outside ``1..31``.
    """
    if isinstance(mode, MonthlyMode):
        if not 1 <= mode.day <= 31:
            raise ValueError(f"Monthly schedule day must be within 1..31, got {mode.day}")
        return {"mode": "monthly", "day": mode.day - 1}
    return mode.model_dump()


def schedule_mode_from_wire(data: Dict[str, Any]) -> Union[DailyMode, WeeklyMode, MonthlyMode]:
    """Inverse of :func:`schedule_mode_to_wire`."""
    if data.get("mode") == "monthly":
        day = data.get("day")
        if not isinstance(day, int) or not 0 <= day <= 30:
            raise ValueError(f"Wire monthly day must be within 0..30, got {day}")
        data = {**data, "day": day + 1}
    return _mode_adapter.validate_python(data)


class ScheduleRecord(BaseModel):
    id: str
    pipeline: str
    owner: Optional[str] = None
    runner: Optional[str] = None
    canonified_name: str
    schedule_mode: Dict[str, Any]
    paused: bool = False

    @property
    def mode(self) -> Union[DailyMode, WeeklyMode, MonthlyMode]:
        return schedule_mode_from_wire(self.schedule_mode)


class ScheduleManager:
    """Creates and maintains schedule records in the record store.

    Records are unique per ``(pipeline, owner)``, or per ``(pipeline,
    runner)`` when no owner is given; the store enforces it.
    """

    def __init__(
        self,
        store: BaseRecordStore,
        owner: Optional[str] = None,
        runner: Optional[str] = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        if not owner and not runner:
            raise ValueError("ScheduleManager needs an owner or a runner")
        self.store = store
        self.key_field = "owner" if owner else "runner"
        self.key = owner or runner
        self.clock = clock

    def compute_schedule_mode(self, form: ScheduleForm) -> Union[DailyMode, WeeklyMode, MonthlyMode]:
        return compute_schedule_mode(form, clock=self.clock)

    def canonical_name(self, pipeline_id: str) -> str:
        return canonify_plain(f"{pipeline_id}-{self.key_field}-{self.key}")

    async def upsert_schedule(
        self,
        pipeline_id: str,
        mode: Union[DailyMode, WeeklyMode, MonthlyMode],
        max_attempts: int = 20,
    ) -> ScheduleRecord:
        """Create the schedule, or update it if one already exists.

        When the canonical name is held by a schedule of another pipeline or
        key, a numbered variant of the name is used instead.

        Raises:
            UniqueConstraintError: If no free name is found in ``max_attempts``.
        """
        wire = schedule_mode_to_wire(mode)
        base = self.canonical_name(pipeline_id)
        data = {
            "pipeline": pipeline_id,
            self.key_field: self.key,
            "canonified_name": base,
            "schedule_mode": wire,
            "paused": False,
        }
        for attempt in range(max_attempts):
            if attempt:
                data["canonified_name"] = f"{base}-{attempt}"
            try:
                record = await self.store.create(SCHEDULES_COLLECTION, data)
                logger.info(f"Created schedule for {pipeline_id}: {wire}")
                return ScheduleRecord.model_validate(record)
            except UniqueConstraintError as exc:
                conflict = exc
            existing = await self.store.list(
                SCHEDULES_COLLECTION, {"pipeline": pipeline_id, self.key_field: self.key}
            )
            if existing:
                record = await self.store.update(
                    SCHEDULES_COLLECTION,
                    existing[0]["id"],
                    {"schedule_mode": wire, "paused": False},
                )
                logger.info(f"Updated schedule for {pipeline_id}: {wire}")
                return ScheduleRecord.model_validate(record)
            logger.debug(f"Schedule name '{data['canonified_name']}' is taken")
        logger.error(f"No free schedule name for {pipeline_id} after {max_attempts} attempts")
        raise conflict

    async def list_schedules(self) -> List[ScheduleRecord]:
        records = await self.store.list(SCHEDULES_COLLECTION, {self.key_field: self.key})
        return [ScheduleRecord.model_validate(record) for record in records]

    async def _set_paused(self, schedule_id: str, paused: bool) -> ScheduleRecord:
        record = await self.store.update(SCHEDULES_COLLECTION, schedule_id, {"paused": paused})
        return ScheduleRecord.model_validate(record)

    async def pause_schedule(self, schedule_id: str) -> ScheduleRecord:
        return await self._set_paused(schedule_id, True)

    async def resume_schedule(self, schedule_id: str) -> ScheduleRecord:
        return await self._set_paused(schedule_id, False)

    async def cancel_schedule(self, schedule_id: str) -> None:
        await self.store.delete(SCHEDULES_COLLECTION, schedule_id)
        logger.info(f"Cancelled schedule {schedule_id}")
