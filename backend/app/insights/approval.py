# backend/app/insights/approval.py
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from . import register
from .config import InsightConfig
from .primitives import is_finite
from .schema import (
    FinancialRecord,
    InsightEntry,
    PrecomputedSummary,
    PredictionInsight,
    RecommendationInsight,
    RiskInsight,
    TrendInsight,
)

logger = logging.getLogger(__name__)

STEP_NAMES = {1: "Reviewer", 2: "Manager", 3: "Final"}
_SECONDS_PER_DAY = 60 * 60 * 24


@register("approval-status")
def build_approval_insights(
    records: List[FinancialRecord],
    summary: PrecomputedSummary,
    config: InsightConfig,
) -> Iterator[InsightEntry]:
    yield from approval_rate_insights(records, config)
    yield from bottleneck_insights(records, config)
    yield from approval_time_insights(records)


def approval_rate_insights(records: List[FinancialRecord], config: InsightConfig) -> Iterator[InsightEntry]:
    total = len(records)
    approved = sum(1 for r in records if r.status == "approved")
    rejected = sum(1 for r in records if r.status == "rejected")

    approval_rate = approved / total * 100 if total else 0.0
    rejection_rate = rejected / total * 100 if total else 0.0

    yield TrendInsight(
        type="approval_efficiency",
        message=f"Approval rate: {approval_rate:.1f}%, Rejection rate: {rejection_rate:.1f}%",
        confidence="high",
        data={"approval_rate": approval_rate, "rejection_rate": rejection_rate},
    )

    if total and approval_rate < config.low_approval_rate_pct:
        yield RecommendationInsight(
            type="low_approval_rate",
            message=f"Low approval rate ({approval_rate:.1f}%) - consider reviewing approval criteria",
            action="Review rejection reasons",
            data={"approval_rate": approval_rate},
        )


def step_name(step: int) -> str:
    return STEP_NAMES.get(step, f"Step {step}")


def bottleneck_insights(records: List[FinancialRecord], config: InsightConfig) -> Iterator[InsightEntry]:
    stuck = [r for r in records if r.status == "pending" and (r.pending_steps or 0) > 0]
    if not stuck:
        return

    by_step: Dict[int, int] = {}
    for r in stuck:
        step = r.current_step or 1
        by_step[step] = by_step.get(step, 0) + 1

    # most congested step; lowest step number wins ties
    step, count = min(by_step.items(), key=lambda item: (-item[1], item[0]))

    yield RiskInsight(
        type="approval_bottleneck",
        message=f"{len(stuck)} documents stuck in approval workflow",
        severity="high" if len(stuck) > config.bottleneck_high_count else "medium",
        recommendation=f"Review approval queue at Step {step}",
        data={
            "bottleneck": f"Step {step} has {count} pending documents",
            "by_step": {str(k): v for k, v in sorted(by_step.items())},
        },
    )

    yield RecommendationInsight(
        type="approval_queue_review",
        message=(
            f"{count} document{'s are' if count > 1 else ' is'} "
            f"stuck at {step_name(step)} approval"
        ),
        action="Review pending approvals",
        data={"step": step, "count": count},
    )


def _parse_history(raw: Any) -> Optional[List[Any]]:
    if raw is None or raw == "":
        return None
    history = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    return history if isinstance(history, list) else None


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def approval_days(record: FinancialRecord) -> Optional[float]:
    """
    Days between the first and last approval-history timestamps.
    Raises ValueError/TypeError on malformed history.
    """
    history = _parse_history(record.approval_history)
    if not history:
        return None

    first, last = history[0], history[-1]
    if not isinstance(first, dict) or not isinstance(last, dict):
        return None
    started = _parse_timestamp(first.get("created_at"))
    finished = _parse_timestamp(last.get("created_at"))
    if started is None or finished is None:
        return None
    return (finished - started).total_seconds() / _SECONDS_PER_DAY


def approval_time_insights(records: List[FinancialRecord]) -> Iterator[InsightEntry]:
    durations: List[float] = []
    for record in records:
        try:
            days = approval_days(record)
        except (ValueError, TypeError) as exc:
            logger.debug("[insights] skipping approval history document=%s error=%s", record.id, exc)
            continue
        if days is not None:
            durations.append(days)

    if not durations:
        return

    avg_days = sum(durations) / len(durations)
    if not is_finite(avg_days):
        return

    yield PredictionInsight(
        type="approval_time",
        message=f"Average approval time: {avg_days:.1f} days",
        confidence="high" if len(durations) > 10 else "medium",
        data={"value": avg_days, "documents": len(durations)},
    )
