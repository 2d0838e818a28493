# backend/app/insights/vendor.py
from __future__ import annotations

from itertools import islice
from typing import Any, Dict, Iterator, List

from . import register
from .aggregators import VendorRollup, vendor_rollups
from .config import InsightConfig
from .primitives import ZERO_SPREAD, is_finite, mean_and_stddev
from .schema import (
    AnomalyInsight,
    FinancialRecord,
    InsightEntry,
    PrecomputedSummary,
    RecommendationInsight,
    RiskInsight,
    TrendInsight,
)


@register("vendor-analysis")
def build_vendor_insights(
    records: List[FinancialRecord],
    summary: PrecomputedSummary,
    config: InsightConfig,
) -> Iterator[InsightEntry]:
    vendors = vendor_rollups(records)
    if not vendors:
        return

    yield from unusual_vendor_insights(vendors, config)
    yield from growing_vendor_insights(vendors, config)
    yield from vendor_risk_insights(vendors, config)
    yield from vendor_review_insights(vendors, config)
    yield from duplicate_insights(records, config)


def unusual_vendor_insights(vendors: List[VendorRollup], config: InsightConfig) -> Iterator[InsightEntry]:
    mean, std_dev = mean_and_stddev([v.total_amount for v in vendors])
    if not is_finite(mean) or not is_finite(std_dev) or std_dev <= ZERO_SPREAD:
        return

    band = config.vendor_deviation_sigmas * std_dev
    unusual = [v for v in vendors if abs(v.total_amount - mean) > band]
    if not unusual:
        return

    count = len(unusual)
    yield AnomalyInsight(
        type="unusual_vendors",
        message=(
            f"{count} vendors have spending "
            f"{'volume significantly different' if count == 1 else 'volumes significantly different'} "
            "from average"
        ),
        severity="high" if count > 3 else "medium",
        data={
            "vendors": [v.vendor_name for v in unusual],
            "average_per_vendor": mean,
            "std_dev": std_dev,
        },
    )


def growing_vendor_insights(vendors: List[VendorRollup], config: InsightConfig) -> Iterator[InsightEntry]:
    growing = []
    for v in vendors:
        decided = v.approved_count + v.rejected_count
        if decided <= 0:
            continue
        if v.approved_count / decided > config.vendor_growth_approval_ratio and v.approved_count > config.vendor_growth_min_approved:
            growing.append(v)

    if not growing:
        return

    yield TrendInsight(
        type="growing_vendors",
        message=f"{len(growing)} vendors show strong growth with high approval rates",
        confidence="high",
        data={"vendors": [v.vendor_name for v in growing]},
    )


def vendor_risk_insights(vendors: List[VendorRollup], config: InsightConfig) -> Iterator[InsightEntry]:
    risky = [
        v for v in vendors
        if v.rejected_count / (v.document_count or 1) > config.vendor_rejection_ratio
    ]
    if not risky:
        return

    yield RiskInsight(
        type="vendor_risk",
        message=f"{len(risky)} vendors have >{config.vendor_rejection_ratio:.0%} rejection rate",
        severity="high",
        recommendation="Review relationship with these vendors",
        data={
            "vendors": [v.vendor_name for v in risky],
            "rejection_rates": {v.vendor_name: v.rejected_count / (v.document_count or 1) for v in risky},
        },
    )


def vendor_review_insights(vendors: List[VendorRollup], config: InsightConfig) -> Iterator[InsightEntry]:
    """One review recommendation per vendor over the rejection ratio."""
    for v in vendors:
        if v.rejected_count <= 0 or v.document_count <= 0:
            continue
        rate = v.rejected_count / v.document_count
        if rate <= config.vendor_rejection_ratio:
            continue

        yield RecommendationInsight(
            type="vendor_review",
            message=(
                f'Review vendor "{v.vendor_name}" - {v.rejected_count}/{v.document_count} '
                f"documents rejected ({int(rate * 100 + 0.5)}%)"
            ),
            action="Review vendor relationship",
            data={"vendor": v.vendor_name, "rejected": v.rejected_count, "total": v.document_count},
        )


def _close_amount_pairs(records: List[FinancialRecord], tolerance: float) -> Iterator[Dict[str, Any]]:
    by_vendor: Dict[str, List[FinancialRecord]] = {}
    for r in records:
        if is_finite(float(r.amount)):
            by_vendor.setdefault(r.vendor_name, []).append(r)

    for vendor_name, docs in by_vendor.items():
        for i, first in enumerate(docs):
            for second in docs[i + 1:]:
                difference = abs(float(first.amount) - float(second.amount))
                if difference < tolerance:
                    yield {
                        "vendor": vendor_name,
                        "invoice1": first.invoice_number or first.id,
                        "invoice2": second.invoice_number or second.id,
                        "amount": float(first.amount),
                        "difference": difference,
                    }


def duplicate_insights(records: List[FinancialRecord], config: InsightConfig) -> Iterator[InsightEntry]:
    """
    Same-vendor document pairs whose amounts differ by less than the tolerance.
    Pairs come out in input order, capped at duplicate_pair_limit.
    """
    pairs = list(islice(_close_amount_pairs(records, config.duplicate_amount_tolerance), config.duplicate_pair_limit))
    if not pairs:
        return

    count = len(pairs)
    yield AnomalyInsight(
        type="potential_duplicates",
        message=f"{count} potential duplicate document{'s' if count > 1 else ''} found",
        severity="medium",
        recommendation="Check these documents for double entry",
        data={"pairs": pairs},
    )
