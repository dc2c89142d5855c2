"""Reduce raw clock punches into one attendance record per user and day."""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from payroll_engine.core.schedules import ScheduleMinutes
from payroll_engine.core.schema import AttendanceRecord, AttendanceStatus, Punch, PunchType
from payroll_engine.core.settings import AttendancePolicy
from payroll_engine.core.timezone import manila_date, manila_minutes

logger = logging.getLogger(__name__)

_HOURS = Decimal("0.01")


@dataclass(slots=True)
class SessionPunches:
    time_in: datetime | None = None
    time_out: datetime | None = None
    orphans: list[datetime] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.time_in is None and self.time_out is None and not self.orphans

    @property
    def is_complete(self) -> bool:
        return self.time_in is not None and self.time_out is not None


def _build_session(punches: Sequence[Punch]) -> SessionPunches:
    session = SessionPunches()
    ins = [p.timestamp for p in punches if p.type == PunchType.IN]
    outs = [p.timestamp for p in punches if p.type == PunchType.OUT]
    if ins:
        session.time_in = ins[0]
    for out in outs:
        if session.time_in is not None and out > session.time_in:
            session.time_out = out
        else:
            session.orphans.append(out)
    return session


def split_sessions(punches: Iterable[Punch], split_minutes: int) -> tuple[SessionPunches, SessionPunches]:
    """Sort punches and partition them at the morning/afternoon split point."""

    ordered = sorted(punches, key=lambda punch: punch.timestamp)
    morning = [p for p in ordered if manila_minutes(p.timestamp) < split_minutes]
    afternoon = [p for p in ordered if manila_minutes(p.timestamp) >= split_minutes]
    return _build_session(morning), _build_session(afternoon)


def _late_minutes(morning: SessionPunches, afternoon: SessionPunches, schedule: ScheduleMinutes) -> int:
    late = 0
    if morning.time_in is not None:
        late += max(0, manila_minutes(morning.time_in) - schedule.morning_start)
        if afternoon.time_in is not None:
            late += max(0, manila_minutes(afternoon.time_in) - schedule.afternoon_start)
    elif morning.is_empty and afternoon.time_in is not None:
        late += schedule.afternoon_start - schedule.morning_start
    return late


def _session_undertime(session: SessionPunches, end: int, duration: int, other: SessionPunches) -> int:
    if session.is_complete:
        return max(0, end - manila_minutes(session.time_out))
    if session.time_in is not None or session.orphans:
        return duration
    return duration if not other.is_empty else 0


def _session_hours(session: SessionPunches) -> Decimal:
    if not session.is_complete:
        return Decimal("0")
    seconds = (session.time_out - session.time_in).total_seconds()
    return Decimal(str(seconds)) / Decimal("3600")


def _continuous_span(morning: SessionPunches, afternoon: SessionPunches) -> tuple[datetime, datetime] | None:
    """A morning clock-in closed only by an afternoon clock-out, with no lunch punches."""

    if morning.time_in is None or morning.time_out is not None:
        return None
    if afternoon.time_in is not None or not afternoon.orphans:
        return None
    return morning.time_in, max(afternoon.orphans)


def _span_record(
    span: tuple[datetime, datetime],
    morning: SessionPunches,
    schedule: ScheduleMinutes,
    *,
    user_id: str,
    day: date,
    policy: AttendancePolicy,
    late_grace_minutes: int,
    status: AttendanceStatus,
) -> AttendanceRecord:
    # Hours run from first clock-in to last clock-out; the lunch break is not punched.
    time_in, time_out = span
    late = max(0, manila_minutes(time_in) - schedule.morning_start)
    out_minutes = manila_minutes(time_out)
    seconds = (time_out - time_in).total_seconds()
    hours = (Decimal(str(seconds)) / Decimal("3600")).quantize(_HOURS, rounding=ROUND_HALF_UP)

    beyond = out_minutes - schedule.afternoon_end
    overtime = beyond if beyond >= max(policy.overtime_threshold_minutes, 1) else 0

    return AttendanceRecord(
        user_id=user_id,
        date=day,
        morning_time_in=time_in,
        afternoon_time_out=time_out,
        hours_worked=hours,
        late_minutes=late,
        undertime_minutes=max(0, schedule.afternoon_end - out_minutes),
        overtime_minutes=overtime,
        is_late=late > late_grace_minutes,
        is_absent=False,
        is_early_out=policy.allow_early_out
        and schedule.afternoon_end - out_minutes > policy.early_out_threshold_minutes,
        total_sessions=1,
        needs_review=bool(morning.orphans),
        orphan_punches=list(morning.orphans),
        status=status,
    )


def _is_early_out(session: SessionPunches, end: int, threshold: int) -> bool:
    if session.time_out is None:
        return False
    return end - manila_minutes(session.time_out) > threshold


def reduce_punches(
    punches: Iterable[Punch],
    schedule: ScheduleMinutes,
    *,
    user_id: str,
    day: date,
    policy: AttendancePolicy,
    late_grace_minutes: int = 0,
    is_working_day: bool = True,
    status: AttendanceStatus = AttendanceStatus.PENDING,
) -> AttendanceRecord:
    """Collapse one user's punches for one Manila calendar day.

    Late and undertime figures are minutes on the Manila wall clock relative to
    ``schedule``.  A clock-out with no preceding clock-in in its session is an
    orphan: it earns no hours but flags the record for review.
    """

    punches = list(punches)
    if not punches:
        return AttendanceRecord(
            user_id=user_id,
            date=day,
            is_absent=is_working_day,
            status=status,
        )

    morning, afternoon = split_sessions(punches, policy.split_minutes(schedule))

    span = _continuous_span(morning, afternoon)
    if span is not None:
        return _span_record(
            span,
            morning,
            schedule,
            user_id=user_id,
            day=day,
            policy=policy,
            late_grace_minutes=late_grace_minutes,
            status=status,
        )

    late =_late_minutes(morning, afternoon, schedule)
    undertime = _session_undertime(morning, schedule.morning_end, schedule.morning_duration, afternoon)
    undertime += _session_undertime(afternoon, schedule.afternoon_end, schedule.afternoon_duration, morning)

    hours = (_session_hours(morning) + _session_hours(afternoon)).quantize(_HOURS, rounding=ROUND_HALF_UP)

    overtime = 0
    if afternoon.is_complete:
        beyond = manila_minutes(afternoon.time_out) - schedule.afternoon_end
        if beyond >= max(policy.overtime_threshold_minutes, 1):
            overtime = beyond

    early_out = policy.allow_early_out and (
        _is_early_out(morning, schedule.morning_end, policy.early_out_threshold_minutes)
        or _is_early_out(afternoon, schedule.afternoon_end, policy.early_out_threshold_minutes)
    )

    half_day = (
        policy.allow_half_day
        and (morning.is_empty != afternoon.is_empty)
        and hours >= policy.half_day_minimum_hours
    )

    orphans = morning.orphans + afternoon.orphans
    incomplete = any(s.time_in is not None and s.time_out is None for s in (morning, afternoon))

    return AttendanceRecord(
        user_id=user_id,
        date=day,
        morning_time_in=morning.time_in,
        morning_time_out=morning.time_out,
        afternoon_time_in=afternoon.time_in,
        afternoon_time_out=afternoon.time_out,
        hours_worked=hours,
        late_minutes=late,
        undertime_minutes=undertime,
        overtime_minutes=overtime,
        is_late=late > late_grace_minutes,
        is_absent=False,
        is_half_day=half_day,
        is_early_out=early_out,
        total_sessions=sum(1 for s in (morning, afternoon) if s.time_in is not None),
        needs_review=bool(orphans) or incomplete,
        orphan_punches=orphans,
        status=status,
    )


def group_punches_by_day(punches: Iterable[Punch]) -> dict[tuple[str, date], list[Punch]]:
    grouped: dict[tuple[str, date], list[Punch]] = defaultdict(list)
    for punch in punches:
        grouped[(punch.user_id, manila_date(punch.timestamp))].append(punch)
    return dict(grouped)


def filter_duplicate_punches(
    existing: Iterable[Punch],
    incoming: Iterable[Punch],
    range_hours: Decimal,
) -> tuple[list[Punch], list[Punch]]:
    """Split ``incoming`` into accepted and duplicate punches.

    A punch is a duplicate when another punch of the same user and type, either
    already stored or accepted earlier in this batch, lies within
    ``range_hours`` of it.
    """

    window = timedelta(hours=float(range_hours))
    seen: dict[tuple[str, PunchType], list[datetime]] = defaultdict(list)
    for punch in existing:
        seen[(punch.user_id, punch.type)].append(punch.timestamp)

    accepted: list[Punch] = []
    duplicates: list[Punch] = []
    for punch in sorted(incoming, key=lambda p: p.timestamp):
        stamps = seen[(punch.user_id, punch.type)]
        if any(abs(punch.timestamp - stamp) < window for stamp in stamps):
            logger.debug("skipping duplicate %s punch for %s at %s", punch.type.value, punch.user_id, punch.timestamp)
            duplicates.append(punch)
            continue
        stamps.append(punch.timestamp)
        accepted.append(punch)
    return accepted, duplicates
