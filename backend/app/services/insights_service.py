from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from backend.app.insights import analyze, supported_report_types
from backend.app.insights.aggregators import group_by_category, month_key, quarter_key
from backend.app.insights.config import InsightConfig, load_insight_config
from backend.app.insights.schema import AggregateBucket, FinancialRecord, PrecomputedSummary

STATUSES = ("pending", "approved", "rejected")


def round2(value: float) -> float:
    return round(float(value or 0.0), 2)


def _buckets(records: List[FinancialRecord], key_fn) -> Dict[str, AggregateBucket]:
    vat_by_key: Dict[str, float] = {}
    for record in records:
        key = key_fn(record)
        vat_by_key[key] = vat_by_key.get(key, 0.0) + float(record.vat)

    return {
        key: AggregateBucket(
            key=key,
            count=group.count,
            total=round2(group.total),
            vat=round2(vat_by_key[key]),
        )
        for key, group in group_by_category(records, key_fn).items()
    }


def build_summary(records: Iterable[FinancialRecord]) -> PrecomputedSummary:
    """
    Reporting-layer rollups handed to the insight engine.
    Currency values are rounded to 2 dp here, never inside the engine.
    """
    records = list(records)
    total_amount = sum(float(r.amount) for r in records)
    total_vat = sum(float(r.vat) for r in records)

    by_status = {status: 0 for status in STATUSES}
    for record in records:
        if record.status in by_status:
            by_status[record.status] += 1

    return PrecomputedSummary(
        total_documents=len(records),
        total_amount=round2(total_amount),
        total_vat=round2(total_vat),
        average_amount=round2(total_amount / len(records)) if records else 0.0,
        by_month=_buckets(records, month_key),
        by_vendor=_buckets(records, lambda r: r.vendor_name),
        by_quarter=_buckets(records, quarter_key),
        by_status=by_status,
    )


def is_supported_report_type(report_type: str) -> bool:
    return report_type in supported_report_types()


async def build_report(
    report_type: str,
    records: Iterable[FinancialRecord],
    *,
    summary: Optional[PrecomputedSummary] = None,
    config: Optional[InsightConfig] = None,
) -> Dict[str, Any]:
    records = list(records)
    summary = summary if summary is not None else build_summary(records)
    report = await analyze(report_type, records, summary, config or load_insight_config())

    return {
        "report_type": report_type,
        "summary": summary.to_dict(),
        "insights": report.to_dict(),
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }
