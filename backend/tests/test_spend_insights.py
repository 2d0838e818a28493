from dataclasses import asdict
import math
from datetime import date
from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[2]))

from backend.app.insights import generate_insights  # noqa: E402
from backend.app.insights.config import DEFAULT_CONFIG  # noqa: E402
from backend.app.insights.schema import AggregateBucket, FinancialRecord, PrecomputedSummary  # noqa: E402
from backend.app.insights.spend import build_spend_insights, vendor_concentration_insights  # noqa: E402
from backend.app.services.insights_service import build_summary  # noqa: E402


def _record(idx: int, on: date, amount: float, vendor: str) -> FinancialRecord:
    return FinancialRecord(
        id=f"doc_{idx}",
        date=on,
        amount=amount,
        vat=round(amount * 0.15, 2),
        vendor_name=vendor,
        status="approved",
        invoice_number=f"INV-{idx}",
    )


def _six_month_records():
    totals = [1000, 1000, 1000, 1000, 1000, 5000]
    vendors = ["Acme", "Globex", "Initech", "Umbrella", "Hooli", "Stark"]
    # newest first, the way the reporting query returns documents
    return [
        _record(i, date(2024, i + 1, 10), float(total), vendors[i])
        for i, total in reversed(list(enumerate(totals)))
    ]


def _spend(records, summary):
    return list(build_spend_insights(records, summary, DEFAULT_CONFIG))


def test_six_month_spike_scenario():
    records = _six_month_records()
    summary = build_summary(records)

    entries = _spend(records, summary)
    by_type = {e.type: e for e in entries}

    trend = by_type["spending_trend"]
    assert trend.data["trend"] == "increasing"
    assert trend.confidence == "high"
    assert trend.message == "Spending is increasing over the last 6 months"
    assert len(trend.data["moving_average"]) == 6

    spike = by_type["spike_detected"]
    assert spike.message == "Detected 1 unusual spending spike"
    assert spike.severity == "medium"
    assert spike.data["months"] == ["2024-06"]
    assert spike.data["details"] == ["Month -0"]

    forecast = by_type["spending_forecast"]
    assert len(forecast.data["values"]) == 3
    assert len(set(forecast.data["values"])) == 1
    assert forecast.confidence == "high"


def test_short_history_is_medium_confidence():
    summary = PrecomputedSummary(
        total_amount=300.0,
        by_month={
            "2024-02": AggregateBucket(key="2024-02", count=1, total=200.0),
            "2024-01": AggregateBucket(key="2024-01", count=1, total=100.0),
        },
    )

    entries = _spend([], summary)
    trend = next(e for e in entries if e.type == "spending_trend")
    forecast = next(e for e in entries if e.type == "spending_forecast")

    assert trend.data["trend"] == "increasing"
    assert trend.confidence == "medium"
    # 0.3 * 200 + 0.7 * 100
    assert forecast.data["values"] == [pytest.approx(130.0)] * 3
    assert forecast.message == "Next month's spending projected to be $130.00"


def test_single_month_emits_no_series_insights():
    summary = PrecomputedSummary(
        total_amount=100.0,
        by_month={"2024-01": AggregateBucket(key="2024-01", count=1, total=100.0)},
    )
    assert _spend([], summary) == []


def _concentration(top: float, rest: float):
    summary = PrecomputedSummary(
        total_amount=top + rest,
        by_vendor={
            "Acme": AggregateBucket(key="Acme", count=1, total=top),
            "Globex": AggregateBucket(key="Globex", count=1, total=rest),
        },
    )
    return list(vendor_concentration_insights(summary, DEFAULT_CONFIG))


def test_vendor_concentration_boundary_is_strict():
    assert _concentration(5000.0, 5000.0) == []

    risks = _concentration(5001.0, 4999.0)
    assert len(risks) == 1
    assert risks[0].type == "concentration_risk"
    assert risks[0].severity == "high"
    assert risks[0].message == "Top vendor represents 50.0% of total spend"
    assert risks[0].data["vendor"] == "Acme"


def test_vendor_concentration_skips_zero_total():
    summary = PrecomputedSummary(
        total_amount=0.0,
        by_vendor={"Acme": AggregateBucket(key="Acme", count=1, total=0.0)},
    )
    assert list(vendor_concentration_insights(summary, DEFAULT_CONFIG)) == []


def test_spend_report_is_deterministic():
    records = _six_month_records()
    summary = build_summary(records)

    first = generate_insights("spend-summary", records, summary)
    second = generate_insights("spend-summary", records, summary)

    assert asdict(first) == asdict(second)
    assert first.to_dict() == second.to_dict()


def test_spend_analyzer_does_not_mutate_summary():
    records = _six_month_records()
    summary = build_summary(records)
    before = summary.to_dict()

    generate_insights("spend-summary", records, summary)

    assert summary.to_dict() == before



def _numbers(value):
    if isinstance(value, dict):
        for item in value.values():
            yield from _numbers(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _numbers(item)
    elif isinstance(value, float):
        yield value


def test_overflowing_months_emit_only_finite_values():
    summary = PrecomputedSummary(
        by_month={
            key: AggregateBucket(key=key, count=1, total=1.7e308)
            for key in ("2024-01", "2024-02", "2024-03")
        },
    )

    entries = _spend([], summary)

    # the moving average and regression sums overflow, so no trend is reported
    assert "spending_trend" not in {e.type for e in entries}
    for entry in entries:
        assert all(math.isfinite(v) for v in _numbers(entry.data))


def test_large_transactions_exceed_three_times_average():
    records = [_record(i, date(2024, 1, i + 1), 100.0, "Acme") for i in range(5)]
    records.append(_record(9, date(2024, 1, 20), 1000.0, "Globex"))
    summary = build_summary(records)

    large = [e for e in _spend(records, summary) if e.type == "large_transactions"]

    assert len(large) == 1
    assert large[0].category == "anomaly"
    assert large[0].message == "1 unusually large transaction detected"
    assert large[0].data["average_amount"] == pytest.approx(250.0)
    assert large[0].data["transactions"] == [{"invoice": "INV-9", "amount": 1000.0, "vendor": "Globex"}]


def test_large_transactions_need_positive_average():
    records = [_record(1, date(2024, 1, 1), 500.0, "Acme")]

    entries = _spend(records, PrecomputedSummary(average_amount=0.0))

    assert "large_transactions" not in {e.type for e in entries}
