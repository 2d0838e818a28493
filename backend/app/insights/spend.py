# backend/app/insights/spend.py
from __future__ import annotations

from typing import Iterator, List

from . import register
from .aggregators import chronological_months
from .config import InsightConfig
from .primitives import detect_anomalies, detect_trend, is_finite, moving_average, predict_next
from .schema import (
    AnomalyInsight,
    FinancialRecord,
    InsightEntry,
    PrecomputedSummary,
    PredictionInsight,
    RiskInsight,
    TrendInsight,
)


@register("spend-summary")
def build_spend_insights(
    records: List[FinancialRecord],
    summary: PrecomputedSummary,
    config: InsightConfig,
) -> Iterator[InsightEntry]:
    yield from monthly_spend_insights(summary, config)
    yield from large_transaction_insights(records, summary, config)
    yield from vendor_concentration_insights(summary, config)


def monthly_spend_insights(summary: PrecomputedSummary, config: InsightConfig) -> Iterator[InsightEntry]:
    months = chronological_months(summary.by_month)
    month_keys = [key for key, _ in months]
    monthly = [float(bucket.total) for _, bucket in months]
    n = len(monthly)
    if n < 2:
        return

    confidence = "high" if n >= 6 else "medium"

    trend = detect_trend(monthly, config.trend_slope_threshold)
    smoothed = moving_average(monthly, config.moving_average_window)
    if trend != "insufficient data" and all(is_finite(v) for v in smoothed):
        yield TrendInsight(
            type="spending_trend",
            message=f"Spending is {trend} over the last {n} months",
            confidence=confidence,
            data={"trend": trend, "months": n, "moving_average": smoothed},
        )

    anomalies = detect_anomalies(monthly, config.anomaly_z_threshold)
    if anomalies and all(is_finite(a.z_score) for a in anomalies):
        count = len(anomalies)
        yield AnomalyInsight(
            type="spike_detected",
            message=f"Detected {count} unusual spending {'spike' if count == 1 else 'spikes'}",
            severity="high" if count > 2 else "medium",
            data={
                # "Month -k" = k months before the latest month in the series
                "details": [f"Month -{n - 1 - a.index}" for a in anomalies],
                "months": [month_keys[a.index] for a in anomalies],
                "z_scores": [a.z_score for a in anomalies],
            },
        )

    predictions = predict_next(monthly, config.spend_forecast_periods, config.smoothing_alpha)
    if predictions and all(is_finite(p) for p in predictions):
        yield PredictionInsight(
            type="spending_forecast",
            message=f"Next month's spending projected to be ${predictions[0]:.2f}",
            confidence=confidence,
            data={"values": predictions},
        )


def large_transaction_insights(
    records: List[FinancialRecord],
    summary: PrecomputedSummary,
    config: InsightConfig,
) -> Iterator[InsightEntry]:
    """Documents above a multiple of the summary's average amount."""
    average = float(summary.average_amount)
    if not is_finite(average) or average <= 0:
        return

    cutoff = average * config.large_transaction_multiple
    large = [r for r in records if is_finite(float(r.amount)) and float(r.amount) > cutoff]
    if not large:
        return

    count = len(large)
    yield AnomalyInsight(
        type="large_transactions",
        message=f"{count} unusually large transaction{'s' if count > 1 else ''} detected",
        severity="high" if count > 3 else "medium",
        recommendation="Verify these documents against purchase approvals",
        data={
            "average_amount": average,
            "transactions": [
                {"invoice": r.invoice_number or r.id, "amount": float(r.amount), "vendor": r.vendor_name}
                for r in large
            ],
        },
    )


def vendor_concentration_insights(summary: PrecomputedSummary, config: InsightConfig) -> Iterator[InsightEntry]:
    if not summary.by_vendor:
        return
    total = float(summary.total_amount)
    if not is_finite(total) or total <= 0:
        return

    top_vendor, top_bucket = max(summary.by_vendor.items(), key=lambda item: float(item[1].total))
    share = float(top_bucket.total) / total * 100
    if not is_finite(share) or share <= config.concentration_share_pct:
        return

    yield RiskInsight(
        type="concentration_risk",
        message=f"Top vendor represents {share:.1f}% of total spend",
        severity="high",
        recommendation="Consider diversifying vendors to reduce risk",
        data={"vendor": top_vendor, "share_pct": share, "vendor_total": float(top_bucket.total)},
    )
