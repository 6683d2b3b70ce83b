"""Aggregation of sessions into volume / RPE summaries for charts and totals."""
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel

from trelog_api.models import Number, Session, SetEntry

logger = logging.getLogger(__name__)

# Bucket for sessions without a usable date; sorts after every yyyy-... key
UNSET_BUCKET = "unset"


class Granularity(str, Enum):
    WEEK = "week"
    MONTH = "month"


class BucketSummary(BaseModel):
    """One chart point."""
    bucket: str
    total_volume: int = 0
    average_rpe: float = 0


class FlatSummary(BaseModel):
    """Totals over a whole (already filtered) set of sessions."""
    total_volume: int = 0
    average_rpe: float = 0
    set_count: Number = 0


@dataclass
class _Accumulator:
    volume: float = 0
    rpe_sum: float = 0
    set_count: Number = 0

    def add_session(self, session: Session) -> None:
        for exercise in session.exercises:
            for entry in exercise.sets:
                self.add_set(entry)

    def add_set(self, entry: SetEntry) -> None:
        multiplier = entry.multiplier
        self.volume += entry.volume
        if entry.rpe is not None:
            self.rpe_sum += entry.rpe * multiplier
        # every set counts towards the RPE average, rated or not
        self.set_count += multiplier

    @property
    def rounded_volume(self) -> int:
        return int(round_half_up(self.volume))

    @property
    def average_rpe(self) -> float:
        if not self.set_count:
            return 0
        return round_half_up(self.rpe_sum / self.set_count, 2)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a calculator (2.5 -> 3), not banker's rounding."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def session_volume(session: Session) -> Number:
    return sum(st.volume for ex in session.exercises for st in ex.sets)


def month_key(value: Optional[str]) -> str:
    """'2024-03-17' -> '2024-03'."""
    return (value or "")[:7] or UNSET_BUCKET


def week_key(value: Optional[str]) -> str:
    """
    Monday-anchored week label, e.g. '2024-W01'.

    The week belongs to the year of its Monday and is numbered by whole weeks
    since January 1 of that year, so 2023-12-31 (a Sunday) is '2023-W52'.
    """
    if not value:
        return UNSET_BUCKET
    try:
        day = date.fromisoformat(value)
    except ValueError:
        logger.debug(f"Unparseable session date {value!r}, bucketing as {UNSET_BUCKET}")
        return UNSET_BUCKET

    monday = day - timedelta(days=day.weekday())
    offset = (monday - date(monday.year, 1, 1)).days
    week = offset // 7 + 1
    return f"{monday.year}-W{week:02d}"


def bucket_key(value: Optional[str], granularity: Union[Granularity, str]) -> str:
    if Granularity(granularity) is Granularity.MONTH:
        return month_key(value)
    return week_key(value)


def summarize(
    sessions: Iterable[Session],
    granularity: Union[Granularity, str],
) -> List[BucketSummary]:
    """Per-bucket volume and average RPE, oldest bucket first."""
    granularity = Granularity(granularity)
    buckets: "OrderedDict[str, _Accumulator]" = OrderedDict()

    for session in sessions:
        key = bucket_key(session.date, granularity)
        buckets.setdefault(key, _Accumulator()).add_session(session)

    return [
        BucketSummary(
            bucket=key,
            total_volume=acc.rounded_volume,
            average_rpe=acc.average_rpe,
        )
        for key, acc in sorted(buckets.items())
    ]


def flat_summary(sessions: Iterable[Session]) -> FlatSummary:
    """Same accumulation as ``summarize`` without bucketing."""
    acc = _Accumulator()
    for session in sessions:
        acc.add_session(session)
    return FlatSummary(
        total_volume=acc.rounded_volume,
        average_rpe=acc.average_rpe,
        set_count=acc.set_count,
    )


def group_sessions(
    sessions: Sequence[Session],
    granularity: Union[Granularity, str],
) -> List[Tuple[str, List[Session]]]:
    """History view: buckets newest first, sessions newest first within a bucket."""
    groups: "OrderedDict[str, List[Session]]" = OrderedDict()
    for session in sessions:
        groups.setdefault(bucket_key(session.date, granularity), []).append(session)

    return [
        (key, sorted(groups[key], key=lambda s: s.date, reverse=True))
        for key in sorted(groups, reverse=True)
    ]
