# backend/app/insights/__init__.py
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from .config import DEFAULT_CONFIG, InsightConfig
from .schema import (
    AnalysisOutcome,
    FinancialRecord,
    InsightEntry,
    InsightReport,
    PrecomputedSummary,
)

logger = logging.getLogger(__name__)

Analyzer = Callable[[List[FinancialRecord], PrecomputedSummary, InsightConfig], Iterator[InsightEntry]]
_ANALYZERS: Dict[str, Analyzer] = {}


def register(report_type: str) -> Callable[[Analyzer], Analyzer]:
    def _decorator(fn: Analyzer) -> Analyzer:
        _ANALYZERS[report_type] = fn
        return fn

    return _decorator


def get_analyzer(report_type: str) -> Optional[Analyzer]:
    if not isinstance(report_type, str):
        return None
    return _ANALYZERS.get(report_type)


def supported_report_types() -> List[str]:
    return list(_ANALYZERS.keys())


def run_analyzer(
    name: str,
    analyzer: Analyzer,
    records: List[FinancialRecord],
    summary: PrecomputedSummary,
    config: InsightConfig,
) -> AnalysisOutcome:
    """
    Drain one analyzer into an AnalysisOutcome.
    Entries yielded before a failure are kept.
    """
    entries: List[InsightEntry] = []
    try:
        for entry in analyzer(records, summary, config):
            entries.append(entry)
    except Exception as e:
        # Never let one bad analyzer take down the report
        return AnalysisOutcome(analyzer=name, entries=entries, error=f"{type(e).__name__}: {e}")
    return AnalysisOutcome(analyzer=name, entries=entries)


def _collect_records(report_type: str, records: Iterable[FinancialRecord]) -> List[FinancialRecord]:
    """Materialise the input; records read before a failing iterator are kept."""
    collected: List[FinancialRecord] = []
    try:
        for record in records:
            collected.append(record)
    except Exception as e:
        logger.warning(
            "[insights] record input failed report_type=%s kept=%d error=%s",
            report_type,
            len(collected),
            f"{type(e).__name__}: {e}",
        )
    return collected


def generate_insights(
    report_type: str,
    records: Iterable[FinancialRecord],
    summary: Optional[PrecomputedSummary] = None,
    config: Optional[InsightConfig] = None,
) -> InsightReport:
    """
    Insight assembler: one report-type analyzer, then the cross-cutting
    analyzer, merged into a fresh report. Always returns a report.
    """
    records = _collect_records(report_type, records)
    summary = summary if summary is not None else PrecomputedSummary()
    config = config or DEFAULT_CONFIG

    outcomes: List[AnalysisOutcome] = []
    analyzer = get_analyzer(report_type)
    if analyzer is None:
        logger.info("[insights] no analyzer for report_type=%s", report_type)
    else:
        outcomes.append(run_analyzer(report_type, analyzer, records, summary, config))

    outcomes.append(run_analyzer("cross-cutting", cross_cutting_insights, records, summary, config))

    report = InsightReport()
    for outcome in outcomes:
        if not outcome.ok:
            logger.warning(
                "[insights] analyzer failed report_type=%s analyzer=%s kept=%d error=%s",
                report_type,
                outcome.analyzer,
                len(outcome.entries),
                outcome.error,
            )
        report.extend(outcome.entries)
    return report


async def analyze(
    report_type: str,
    records: Iterable[FinancialRecord],
    summary: Optional[PrecomputedSummary] = None,
    config: Optional[InsightConfig] = None,
) -> InsightReport:
    # awaitable for request handlers; the work itself is synchronous
    return generate_insights(report_type, records, summary, config)


# Import modules so @register decorators run
from . import spend     # noqa: E402,F401
from . import vendor    # noqa: E402,F401
from . import tax       # noqa: E402,F401
from . import approval  # noqa: E402,F401
from .cross_cutting import cross_cutting_insights  # noqa: E402
