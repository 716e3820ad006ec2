"""
Time-entry integrity checks (TIEE) for clock-in/clock-out data.

Every shift is run through each enabled rule; a rule sees the shift under test, every shift in the
batch and, when available, the raw punches. Rules only report, they never modify shifts.

All timestamps are normalised to UTC. Calendar days and weeks (Sunday to Saturday) are UTC days.
"""

import logging
import math
import re
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field, field_validator

from shiftmint.formatting import format_number

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    WARN = "WARN"
    ERROR = "ERROR"


class PunchType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    BREAK_IN = "BREAK_IN"
    BREAK_OUT = "BREAK_OUT"


class ShiftStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


def _as_utc(ts: Optional[datetime]) -> Optional[datetime]:
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


class Shift(BaseModel):
    id: str
    employee_id: str
    job_code: str
    location_id: Optional[str] = None
    start_ts: Optional[datetime] = None
    end_ts: Optional[datetime] = None
    duration_min: Optional[float] = None
    status: ShiftStatus = ShiftStatus.OPEN
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None
    tips_amount: Optional[float] = None
    sales_amount: Optional[float] = None

    @field_validator('start_ts', 'end_ts', 'scheduled_start', 'scheduled_end')
    @classmethod
    def normalise_timestamp(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class Punch(BaseModel):
    id: str
    employee_id: str
    punch_type: PunchType
    ts_utc: datetime
    job_code: str
    location_id: Optional[str] = None

    @field_validator('ts_utc')
    @classmethod
    def normalise_timestamp(cls, v: datetime) -> datetime:
        return _as_utc(v)


class Anomaly(BaseModel):
    employee_id: str
    shift_id: str
    rule_id: str
    severity: Severity
    description: str


_CLOSING_TIME_RE = re.compile(r'\d{2}:\d{2}')


def parse_closing_time(value: str) -> time:
    """Parse a 24-hour "HH:MM" closing time, raising ValueError for anything else."""
    if not _CLOSING_TIME_RE.fullmatch(value):
        raise ValueError(f"venue_closing_time must be HH:MM (24-hour), got {value!r}")
    return time.fromisoformat(value)


class DetectionOptions(BaseModel):
    venue_closing_time: Optional[str] = "02:00"
    tip_sales_ratio_min: float = Field(default=0.01, ge=0)
    tip_sales_ratio_max: float = Field(default=0.40, ge=0)

    @field_validator('venue_closing_time')
    @classmethod
    def validate_closing_time(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            parse_closing_time(v)
        return v

    @property
    def closing_time(self) -> Optional[time]:
        if self.venue_closing_time is None:
            return None
        return parse_closing_time(self.venue_closing_time)


RuleCheck = Callable[[Shift, Sequence[Shift], Optional[Sequence[Punch]], DetectionOptions], List[Anomaly]]


@dataclass(frozen=True)
class Rule:
    id: str
    name: str
    check: RuleCheck


def _minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


def _flag(shift: Shift, rule_id: str, severity: Severity, description: str) -> Anomaly:
    return Anomaly(
        employee_id=shift.employee_id,
        shift_id=shift.id,
        rule_id=rule_id,
        severity=severity,
        description=description,
    )


def _employee_punches(shift: Shift, punches: Sequence[Punch]) -> List[Punch]:
    return sorted((p for p in punches if p.employee_id == shift.employee_id), key=lambda p: p.ts_utc)


# TIEE-001
def check_impossible_order(shift, shifts, punches, options):
    anomalies = []
    if shift.start_ts and shift.end_ts and shift.end_ts < shift.start_ts:
        anomalies.append(_flag(shift, 'TIEE-001', Severity.ERROR, 'Clock-out time is before clock-in time'))

    if punches:
        ordered = _employee_punches(shift, punches)
        for prev, curr in zip(ordered, ordered[1:]):
            if prev.punch_type == curr.punch_type and curr.punch_type in (PunchType.IN, PunchType.OUT):
                anomalies.append(_flag(shift, 'TIEE-001', Severity.ERROR,
                                       f"Consecutive {curr.punch_type.value} punches detected"))
    return anomalies


# TIEE-002
def check_too_short(shift, shifts, punches, options):
    if shift.duration_min and shift.duration_min < 60:
        return [_flag(shift, 'TIEE-002', Severity.WARN,
                      f"Shift duration of {format_number(shift.duration_min)} minutes is less than 60 minutes")]
    return []


# TIEE-003
def check_too_long(shift, shifts, punches, options):
    if not shift.duration_min:
        return []
    hours = shift.duration_min / 60
    if hours > 14:
        return [_flag(shift, 'TIEE-003', Severity.ERROR, f"Shift duration of {hours:.1f} hours exceeds 14 hours")]
    if hours > 12:
        return [_flag(shift, 'TIEE-003', Severity.WARN, f"Shift duration of {hours:.1f} hours exceeds 12 hours")]
    return []


# TIEE-004
def check_daily_total(shift, shifts, punches, options):
    if not shift.start_ts:
        return []
    day = shift.start_ts.date()
    total_minutes = sum(
        s.duration_min or 0
        for s in shifts
        if s.employee_id == shift.employee_id and s.start_ts and s.start_ts.date() == day
    )
    total_hours = total_minutes / 60
    if total_hours > 14:
        return [_flag(shift, 'TIEE-004', Severity.WARN, f"Total daily hours ({total_hours:.1f}) exceed 14 hours")]
    return []


# TIEE-005
def check_meal_break(shift, shifts, punches, options):
    if not punches or not shift.start_ts or not shift.end_ts:
        return []
    breaks = [
        p for p in _employee_punches(shift, punches)
        if p.punch_type in (PunchType.BREAK_OUT, PunchType.BREAK_IN)
        and shift.start_ts <= p.ts_utc <= shift.end_ts
    ]
    anomalies = []
    for break_out, break_in in zip(breaks, breaks[1:]):
        if break_out.punch_type == PunchType.BREAK_OUT and break_in.punch_type == PunchType.BREAK_IN:
            minutes = _minutes_between(break_out.ts_utc, break_in.ts_utc)
            if minutes > 120:
                anomalies.append(_flag(shift, 'TIEE-005', Severity.WARN,
                                       f"Break duration of {minutes:.0f} minutes exceeds 120 minutes"))
    return anomalies


# TIEE-006
def check_micro_gap(shift, shifts, punches, options):
    if not shift.end_ts:
        return []
    following = sorted(
        (s for s in shifts if s.employee_id == shift.employee_id and s.id != shift.id and s.start_ts),
        key=lambda s: s.start_ts,
    )
    anomalies = []
    for other in following:
        gap = _minutes_between(shift.end_ts, other.start_ts)
        if 0 < gap < 4:
            anomalies.append(_flag(shift, 'TIEE-006', Severity.WARN,
                                   f"Gap of {gap:.0f} minutes between shifts is less than 4 minutes"))
    return anomalies


# TIEE-007
def check_schedule_drift(shift, shifts, punches, options):
    anomalies = []
    if shift.scheduled_start and shift.start_ts:
        drift = _minutes_between(shift.scheduled_start, shift.start_ts)
        if drift < -30:
            anomalies.append(_flag(shift, 'TIEE-007', Severity.WARN,
                                   f"Clocked in {abs(drift):.0f} minutes early (>30 min)"))
        elif drift > 10:
            anomalies.append(_flag(shift, 'TIEE-007', Severity.WARN,
                                   f"Clocked in {drift:.0f} minutes late (>10 min)"))

    if shift.scheduled_end and shift.end_ts:
        drift = _minutes_between(shift.scheduled_end, shift.end_ts)
        if drift < -30:
            anomalies.append(_flag(shift, 'TIEE-007', Severity.WARN,
                                   f"Clocked out {abs(drift):.0f} minutes early (>30 min)"))
        elif drift > 90:
            anomalies.append(_flag(shift, 'TIEE-007', Severity.WARN,
                                   f"Clocked out {drift:.0f} minutes late (>90 min)"))
    return anomalies


# TIEE-008
def check_job_overlap(shift, shifts, punches, options):
    if not shift.start_ts or not shift.end_ts:
        return []
    anomalies = []
    for other in shifts:
        if other.employee_id != shift.employee_id or other.id == shift.id or other.job_code == shift.job_code:
            continue
        if not other.start_ts or not other.end_ts:
            continue
        overlap = _minutes_between(max(shift.start_ts, other.start_ts), min(shift.end_ts, other.end_ts))
        if overlap > 5:
            anomalies.append(_flag(shift, 'TIEE-008', Severity.ERROR,
                                   f"Job overlap of {overlap:.0f} minutes between {shift.job_code} and {other.job_code}"))
    return anomalies


def _minutes_in_early_morning(start: datetime, end: datetime) -> float:
    """Minutes of [start, end) that fall between 02:00 and 05:00 on any day."""
    total = 0.0
    day = start.date()
    while day <= end.date():
        window_start = datetime.combine(day, time(2, 0), tzinfo=timezone.utc)
        window_end = datetime.combine(day, time(5, 0), tzinfo=timezone.utc)
        overlap = _minutes_between(max(start, window_start), min(end, window_end))
        if overlap > 0:
            total += overlap
        day += timedelta(days=1)
    return total


# TIEE-009
def check_overnight(shift, shifts, punches, options):
    if not shift.duration_min:
        return []
    anomalies = []
    hours = shift.duration_min / 60
    if hours > 18:
        anomalies.append(_flag(shift, 'TIEE-009', Severity.ERROR, f"Shift duration of {hours:.1f} hours exceeds 18 hours"))

    closing = options.closing_time
    if shift.start_ts and shift.end_ts and closing is not None:
        early_hours = _minutes_in_early_morning(shift.start_ts, shift.end_ts) / 60
        if closing.hour < 2 and early_hours > 3:
            anomalies.append(_flag(shift, 'TIEE-009', Severity.WARN,
                                   f"Shift includes {early_hours:.1f} hours between 2-5 AM while venue closes before 2 AM"))
    return anomalies


# TIEE-010
def check_tip_sales_ratio(shift, shifts, punches, options):
    if not shift.tips_amount or not shift.sales_amount:
        return []
    ratio = shift.tips_amount / shift.sales_amount
    min_pct = format_number(round(options.tip_sales_ratio_min * 100, 6))
    max_pct = format_number(round(options.tip_sales_ratio_max * 100, 6))
    if ratio < options.tip_sales_ratio_min:
        return [_flag(shift, 'TIEE-010', Severity.WARN,
                      f"Tip-to-sales ratio of {ratio * 100:.1f}% is below {min_pct}%")]
    if ratio > options.tip_sales_ratio_max:
        return [_flag(shift, 'TIEE-010', Severity.WARN,
                      f"Tip-to-sales ratio of {ratio * 100:.1f}% exceeds {max_pct}%")]
    return []


# TIEE-011
def check_missing_punch(shift, shifts, punches, options):
    anomalies = []
    if not shift.start_ts:
        anomalies.append(_flag(shift, 'TIEE-011', Severity.ERROR, 'Missing clock-in timestamp'))
    if shift.status == ShiftStatus.CLOSED and not shift.end_ts:
        anomalies.append(_flag(shift, 'TIEE-011', Severity.ERROR, 'Missing clock-out timestamp for closed shift'))
    return anomalies


def _week_start(ts: datetime) -> datetime:
    days_since_sunday = (ts.weekday() + 1) % 7
    midnight = datetime.combine(ts.date(), time(0, 0), tzinfo=timezone.utc)
    return midnight - timedelta(days=days_since_sunday)


# TIEE-012
def check_weekly_hours(shift, shifts, punches, options):
    if not shift.start_ts:
        return []
    week_start = _week_start(shift.start_ts)
    week_end = week_start + timedelta(days=7)
    total_minutes = sum(
        s.duration_min or 0
        for s in shifts
        if s.employee_id == shift.employee_id and s.start_ts and week_start <= s.start_ts < week_end
    )
    total_hours = total_minutes / 60
    if total_hours > 60:
        return [_flag(shift, 'TIEE-012', Severity.WARN, f"Weekly hours ({total_hours:.1f}) exceed 60 hours")]
    return []


DEFAULT_RULES = (
    Rule('TIEE-001', 'Impossible Order', check_impossible_order),
    Rule('TIEE-002', 'Too Short', check_too_short),
    Rule('TIEE-003', 'Too Long', check_too_long),
    Rule('TIEE-004', 'Daily Total', check_daily_total),
    Rule('TIEE-005', 'Meal Break Too Long', check_meal_break),
    Rule('TIEE-006', 'Micro-gap', check_micro_gap),
    Rule('TIEE-007', 'Schedule Drift', check_schedule_drift),
    Rule('TIEE-008', 'Job Overlap', check_job_overlap),
    Rule('TIEE-009', 'Overnight Sanity', check_overnight),
    Rule('TIEE-010', 'Tip-to-Sales Ratio', check_tip_sales_ratio),
    Rule('TIEE-011', 'Missing Punch', check_missing_punch),
    Rule('TIEE-012', 'Excessive Weekly Hours', check_weekly_hours),
)

_RULES_BY_ID = {rule.id: rule for rule in DEFAULT_RULES}


class AnomalyDetector:
    def __init__(self, options: Optional[DetectionOptions] = None, rules: Optional[Iterable[Rule]] = None):
        self.options = options or DetectionOptions()
        self._rules = list(DEFAULT_RULES if rules is None else rules)

    @property
    def rules(self) -> List[Rule]:
        return list(self._rules)

    def detect(self, shifts: Sequence[Shift], punches: Optional[Sequence[Punch]] = None) -> List[Anomaly]:
        """
        Run every enabled rule over every shift. A rule that fails on one shift is logged and skipped
        so the remaining rules still report.
        """
        anomalies = []
        for shift in shifts:
            for rule in self._rules:
                try:
                    anomalies.extend(rule.check(shift, shifts, punches, self.options))
                except Exception:
                    logger.exception("Rule %s failed on shift %s", rule.id, shift.id)
        logger.debug("Checked %d shifts against %d rules, %d anomalies", len(shifts), len(self._rules), len(anomalies))
        return anomalies

    def set_rule_enabled(self, rule_id: str, enabled: bool) -> None:
        if rule_id not in _RULES_BY_ID:
            raise KeyError(f"Unknown rule id: {rule_id}")
        active = {rule.id for rule in self._rules}
        if enabled:
            active.add(rule_id)
        else:
            active.discard(rule_id)
        self._rules = [rule for rule in DEFAULT_RULES if rule.id in active]

    def update_options(self, **changes) -> None:
        self.options = DetectionOptions(**{**self.options.model_dump(), **changes})


def detect_anomalies(shifts: Sequence[Shift], punches: Optional[Sequence[Punch]] = None,
                     options: Optional[DetectionOptions] = None) -> List[Anomaly]:
    return AnomalyDetector(options).detect(shifts, punches)


def shifts_from_punches(punches: Sequence[Punch]) -> List[Shift]:
    """
    Rebuild shifts from raw punches, one per (employee, job code). The first IN opens the shift and
    the last OUT closes it; break punches are ignored here.
    """
    shifts = OrderedDict()
    for punch in sorted(punches, key=lambda p: p.ts_utc):
        key = (punch.employee_id, punch.job_code)
        shift = shifts.get(key)
        if shift is None:
            shift = shifts[key] = Shift(
                id=f"shift_{uuid.uuid4().hex[:9]}",
                employee_id=punch.employee_id,
                location_id=punch.location_id,
                job_code=punch.job_code,
            )

        if punch.punch_type == PunchType.IN and shift.start_ts is None:
            shift.start_ts = punch.ts_utc
        elif punch.punch_type == PunchType.OUT:
            shift.end_ts = punch.ts_utc
            shift.status = ShiftStatus.CLOSED
            if shift.start_ts is not None:
                shift.duration_min = math.floor(_minutes_between(shift.start_ts, shift.end_ts))

    return list(shifts.values())


class FlagEvent(BaseModel):
    id: str
    rule_id: str
    severity: Severity
    description: str
    shift_id: Optional[str] = None
    created_ts: datetime


class ValidationResult(BaseModel):
    is_valid: bool
    flags: List[FlagEvent]
    suggested_fixes: Optional[List[str]] = None


def validate_punches(punches: Sequence[Punch], detector: Optional[AnomalyDetector] = None) -> ValidationResult:
    detector = detector or AnomalyDetector()
    shifts = shifts_from_punches(punches)
    created_ts = datetime.now(timezone.utc)

    flags = [
        FlagEvent(
            id=uuid.uuid4().hex,
            rule_id=a.rule_id,
            severity=a.severity,
            description=a.description,
            shift_id=a.shift_id,
            created_ts=created_ts,
        )
        for a in detector.detect(shifts, punches)
    ]
    if flags:
        logger.info("Punch validation raised %d flag(s) over %d shift(s)", len(flags), len(shifts))

    return ValidationResult(
        is_valid=not flags,
        flags=flags,
        suggested_fixes=['Review flagged shifts for accuracy'] if flags else None,
    )
