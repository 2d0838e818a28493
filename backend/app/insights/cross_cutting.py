# backend/app/insights/cross_cutting.py
from __future__ import annotations

from typing import Iterator, List

from .aggregators import MONTH_NAMES, WEEKDAY_NAMES, TemporalPatterns, group_by_temporal_dimension
from .config import InsightConfig
from .primitives import detect_anomalies, is_finite
from .schema import (
    AnomalyInsight,
    FinancialRecord,
    InsightEntry,
    PatternInsight,
    PrecomputedSummary,
)


def cross_cutting_insights(
    records: List[FinancialRecord],
    summary: PrecomputedSummary,
    config: InsightConfig,
) -> Iterator[InsightEntry]:
    """Seasonal patterns and amount outliers, independent of report type."""
    if len(records) > config.pattern_min_records:
        patterns = group_by_temporal_dimension(records)
        yield from seasonal_pattern_insights(patterns)
        yield from weekly_pattern_insights(patterns)

    if len(records) > config.amount_anomaly_min_records:
        yield from amount_anomaly_insights(records, config)


def seasonal_pattern_insights(patterns: TemporalPatterns) -> Iterator[InsightEntry]:
    if not patterns.by_month:
        return

    month, bucket = min(patterns.by_month.items(), key=lambda item: (-item[1].total, item[0]))
    if not is_finite(bucket.total):
        return
    yield PatternInsight(
        type="seasonal_pattern",
        message=f"{MONTH_NAMES[month]} is typically your busiest month",
        confidence="medium",
        data={"month": MONTH_NAMES[month], "total": bucket.total, "count": bucket.count},
    )


def weekly_pattern_insights(patterns: TemporalPatterns) -> Iterator[InsightEntry]:
    ranked = sorted(patterns.by_day_of_week.items(), key=lambda item: (-item[1].count, item[0]))[:2]
    if not ranked:
        return

    days = [WEEKDAY_NAMES[day] for day, _ in ranked]
    yield PatternInsight(
        type="weekly_pattern",
        message=f"Most documents are processed on {' and '.join(days)}",
        confidence="high",
        data={"days": days, "counts": [bucket.count for _, bucket in ranked]},
    )


def amount_anomaly_insights(records: List[FinancialRecord], config: InsightConfig) -> Iterator[InsightEntry]:
    amounts = [float(r.amount) for r in records]
    anomalies = detect_anomalies(amounts, config.amount_anomaly_z_threshold)
    if not anomalies:
        return

    yield AnomalyInsight(
        type="amount_anomalies",
        message=f"Found {len(anomalies)} transactions that are statistically unusual in amount",
        severity="high" if len(anomalies) > 3 else "medium",
        data={
            "details": [
                {
                    "document": records[a.index].invoice_number or records[a.index].id,
                    "amount": a.value,
                    "z_score": a.z_score,
                }
                for a in anomalies
            ]
        },
    )
