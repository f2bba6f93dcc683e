"""Half-open interval math.

`overlaps` is the only definition of overlap in the package; everything that
compares time ranges goes through it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable


class IntervalSource(str, Enum):
    LESSON = 'lessons'
    SLOT = 'slot_inventory'


@dataclass(frozen=True)
class Interval:
    record_id: str
    source: IntervalSource
    start: datetime
    end: datetime
    label: str = ''


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # [a_start, a_end) vs [b_start, b_end): touching ends and zero-length ranges never overlap.
    return a_start < b_end and a_end > b_start and a_start < a_end and b_start < b_end


def intervals_overlap(a: Interval, b: Interval) -> bool:
    return overlaps(a.start, a.end, b.start, b.end)


def _sort_key(interval: Interval) -> tuple:
    return (interval.start, interval.end, interval.source.value, interval.record_id)


def find_conflicts(
    proposed_start: datetime,
    proposed_end: datetime,
    existing: Iterable[Interval],
    exclude_record_id: str | None = None,
) -> list[Interval]:
    conflicts = [
        interval
        for interval in existing
        if not (exclude_record_id and interval.record_id == exclude_record_id)
        and overlaps(proposed_start, proposed_end, interval.start, interval.end)
    ]
    conflicts.sort(key=_sort_key)
    return conflicts


def overlapping_pairs(intervals: Iterable[Interval]) -> list[tuple[Interval, Interval]]:
    ordered = sorted(intervals, key=_sort_key)
    pairs: list[tuple[Interval, Interval]] = []
    for i, first in enumerate(ordered):
        for second in ordered[i + 1:]:
            if second.start >= first.end:
                break
            if intervals_overlap(first, second):
                pairs.append((first, second))
    return pairs
