from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .schema import AggregateBucket, FinancialRecord

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
# Sunday-first, matching the 0..6 day-of-week keys below
WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


@dataclass
class TemporalPatterns:
    by_day_of_week: Dict[int, AggregateBucket] = field(default_factory=dict)
    by_month: Dict[int, AggregateBucket] = field(default_factory=dict)
    by_quarter: Dict[int, AggregateBucket] = field(default_factory=dict)


@dataclass
class CategoryGroup:
    key: str
    amounts: List[float] = field(default_factory=list)
    count: int = 0
    total: float = 0.0


@dataclass(frozen=True)
class VendorRollup:
    vendor_name: str
    document_count: int
    total_amount: float
    pending_count: int
    approved_count: int
    rejected_count: int


def day_of_week(record: FinancialRecord) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (record.date.weekday() + 1) % 7


def _bump(groups: Dict, key, amount: float) -> None:
    bucket = groups.get(key)
    if bucket is None:
        bucket = AggregateBucket(key=str(key))
        groups[key] = bucket
    bucket.count += 1
    bucket.total += amount


def group_by_temporal_dimension(records: Iterable[FinancialRecord]) -> TemporalPatterns:
    """
    Three parallel groupings: day-of-week (0..6, Sunday first), calendar month
    (0..11) and quarter (1..4).
    """
    patterns = TemporalPatterns()
    for record in records:
        amount = float(record.amount)
        month = record.date.month - 1
        _bump(patterns.by_day_of_week, day_of_week(record), amount)
        _bump(patterns.by_month, month, amount)
        _bump(patterns.by_quarter, month // 3 + 1, amount)
    return patterns


def group_by_category(
    records: Iterable[FinancialRecord],
    key_fn: Callable[[FinancialRecord], str],
) -> Dict[str, CategoryGroup]:
    grouped: Dict[str, CategoryGroup] = {}
    for record in records:
        key = key_fn(record)
        group = grouped.setdefault(key, CategoryGroup(key=key))
        amount = float(record.amount)
        group.amounts.append(amount)
        group.count += 1
        group.total += amount
    return grouped


def vendor_rollups(records: Iterable[FinancialRecord]) -> List[VendorRollup]:
    """
    Per-vendor document counts, spend and status tallies, in first-seen order.
    Raises KeyError for a status outside pending/approved/rejected.
    """
    records = list(records)
    groups = group_by_category(records, lambda r: r.vendor_name)

    statuses: Dict[str, Dict[str, int]] = {
        key: {"pending": 0, "approved": 0, "rejected": 0} for key in groups
    }
    for record in records:
        statuses[record.vendor_name][record.status] += 1

    return [
        VendorRollup(
            vendor_name=key,
            document_count=group.count,
            total_amount=group.total,
            pending_count=statuses[key]["pending"],
            approved_count=statuses[key]["approved"],
            rejected_count=statuses[key]["rejected"],
        )
        for key, group in groups.items()
    ]


def month_key(record: FinancialRecord) -> str:
    return f"{record.date.year:04d}-{record.date.month:02d}"


def quarter_key(record: FinancialRecord) -> str:
    return f"Q{(record.date.month - 1) // 3 + 1}-{record.date.year}"


def _parse_quarter_key(key: str) -> Optional[Tuple[int, int]]:
    """
    Parse 'Qn-YYYY' -> (year, quarter).
    Returns None if invalid.
    """
    q_str, sep, y_str = key.partition("-")
    if not sep or not q_str.upper().startswith("Q"):
        return None
    try:
        quarter = int(q_str[1:])
        year = int(y_str)
    except ValueError:
        return None
    if quarter < 1 or quarter > 4:
        return None
    return year, quarter


def chronological_months(buckets: Dict[str, AggregateBucket]) -> List[Tuple[str, AggregateBucket]]:
    """'YYYY-MM' keys sort lexically in time order."""
    return sorted(buckets.items(), key=lambda item: item[0])


def chronological_quarters(buckets: Dict[str, AggregateBucket]) -> List[Tuple[str, AggregateBucket]]:
    """Order 'Qn-YYYY' buckets oldest first; unparsable keys are dropped."""
    parsed = []
    for key, bucket in buckets.items():
        yq = _parse_quarter_key(key)
        if yq is None:
            continue
        parsed.append((yq, key, bucket))
    parsed.sort(key=lambda item: item[0])
    return [(key, bucket) for _, key, bucket in parsed]
