# backend/app/insights/tax.py
from __future__ import annotations

from typing import Iterator, List, Tuple

from . import register
from .aggregators import chronological_quarters
from .config import InsightConfig
from .primitives import ZERO_SPREAD, is_finite, mean_and_stddev, predict_next
from .schema import (
    AnomalyInsight,
    FinancialRecord,
    InsightEntry,
    PrecomputedSummary,
    PredictionInsight,
    RecommendationInsight,
    TrendInsight,
)


@register("tax-vat-report")
def build_tax_insights(
    records: List[FinancialRecord],
    summary: PrecomputedSummary,
    config: InsightConfig,
) -> Iterator[InsightEntry]:
    rated = effective_tax_rates(records)
    yield from tax_consistency_insights(rated, config)
    yield from standard_rate_insights(rated, config)
    yield from quarterly_vat_insights(summary, config)


def effective_tax_rates(records: List[FinancialRecord]) -> List[Tuple[FinancialRecord, float]]:
    """vat / amount * 100 per document; zero-amount documents have no rate."""
    rated = []
    for record in records:
        amount = float(record.amount)
        if amount == 0:
            continue
        rate = float(record.vat) / amount * 100
        if is_finite(rate):
            rated.append((record, rate))
    return rated


def tax_consistency_insights(
    rated: List[Tuple[FinancialRecord, float]],
    config: InsightConfig,
) -> Iterator[InsightEntry]:
    if not rated:
        return

    mean_rate, std_dev = mean_and_stddev([rate for _, rate in rated])
    if not is_finite(mean_rate) or not is_finite(std_dev) or std_dev <= ZERO_SPREAD:
        return

    band = config.tax_deviation_sigmas * std_dev
    inconsistent = [record for record, rate in rated if abs(rate - mean_rate) > band]
    if not inconsistent:
        return

    yield AnomalyInsight(
        type="tax_inconsistency",
        message=f"{len(inconsistent)} documents have unusual tax rates",
        severity="high" if len(inconsistent) > 5 else "medium",
        recommendation="Review these documents for potential tax errors",
        data={
            "documents": [r.invoice_number for r in inconsistent],
            "average_rate": mean_rate,
        },
    )


def standard_rate_insights(
    rated: List[Tuple[FinancialRecord, float]],
    config: InsightConfig,
) -> Iterator[InsightEntry]:
    off_rate = [
        record for record, rate in rated
        if float(record.amount) > 0 and abs(rate - config.standard_vat_rate) > config.vat_rate_tolerance
    ]
    if not off_rate:
        return

    yield RecommendationInsight(
        type="tax_review",
        message=f"{len(off_rate)} documents have unusual tax rates - review for potential errors",
        action="Review VAT on these documents",
        data={
            "documents": [r.invoice_number for r in off_rate],
            "standard_rate": config.standard_vat_rate,
        },
    )


def quarterly_vat_insights(summary: PrecomputedSummary, config: InsightConfig) -> Iterator[InsightEntry]:
    quarters = chronological_quarters(summary.by_quarter)
    if len(quarters) < 2:
        return

    (prev_key, prev), (last_key, last) = quarters[-2], quarters[-1]
    prev_vat = float(prev.vat)
    growth = (float(last.vat) - prev_vat) / (prev_vat or 1) * 100

    if is_finite(growth):
        yield TrendInsight(
            type="tax_growth",
            message=(
                f"VAT liability {'increased' if growth > 0 else 'decreased'} by "
                f"{abs(growth):.1f}% from previous quarter"
            ),
            confidence="high",
            data={"growth_pct": growth, "previous_quarter": prev_key, "last_quarter": last_key},
        )

    vat_series = [float(bucket.vat) for _, bucket in quarters]
    predictions = predict_next(vat_series, 1, config.smoothing_alpha)
    next_vat = predictions[0] if predictions else None
    if next_vat and is_finite(next_vat):
        yield PredictionInsight(
            type="tax_forecast",
            message=f"Next quarter's VAT projected to be ${next_vat:.2f}",
            confidence="high" if len(vat_series) >= 4 else "medium",
            data={"value": next_vat},
        )
