"""
Insights - typed records.

Responsibility:
- Describe the inputs the insight engine consumes (financial records and the
  precomputed summary built by the reporting layer).
- Describe the outputs it produces (insight entries grouped into a report).

Design notes:
- Inputs are immutable snapshots; analyzers never mutate them.
- Entries are a tagged union keyed on `category`; the report routes each entry
  into its bucket by that tag.
- Nothing here rounds. Rounding for display is the caller's job.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, ClassVar, Dict, List, Literal, Optional

DocumentStatus = Literal["pending", "approved", "rejected"]
ReportType = Literal["spend-summary", "vendor-analysis", "tax-vat-report", "approval-status"]
InsightCategory = Literal["trend", "anomaly", "prediction", "recommendation", "pattern", "risk"]
Confidence = Literal["high", "medium", "low"]
Severity = Literal["high", "medium"]

REPORT_TYPES: tuple[str, ...] = (
    "spend-summary",
    "vendor-analysis",
    "tax-vat-report",
    "approval-status",
)

CATEGORY_BUCKETS: Dict[str, str] = {
    "trend": "trends",
    "anomaly": "anomalies",
    "prediction": "predictions",
    "recommendation": "recommendations",
    "pattern": "patterns",
    "risk": "risks",
}


@dataclass(frozen=True)
class FinancialRecord:
    """
    One uploaded document (invoice / credit note).

    Workflow fields are only populated for approval-status reports:
    - pending_steps: approval steps still outstanding
    - current_step: step the document currently waits on
    - approval_history: list of step dicts (or its JSON text) with `created_at`
    """
    id: str
    date: date
    amount: float
    vat: float
    vendor_name: str
    status: str
    document_type: str = "invoice"
    invoice_number: str = ""

    pending_steps: int = 0
    current_step: Optional[int] = None
    approval_history: Any = None


@dataclass
class AggregateBucket:
    """
    Rollup for one dimension value.

    Invariant:
    - keys are unique within one aggregation pass (the owning dict enforces it)
    """
    key: str
    count: int = 0
    total: float = 0.0
    vat: float = 0.0


@dataclass(frozen=True)
class Anomaly:
    index: int
    value: float
    z_score: float


@dataclass(frozen=True)
class PrecomputedSummary:
    """
    Pre-aggregated totals supplied by the reporting layer.

    Currency fields are expected to be rounded to 2 dp already.
    - by_month keys: "YYYY-MM"
    - by_quarter keys: "Qn-YYYY"
    """
    total_documents: int = 0
    total_amount: float = 0.0
    total_vat: float = 0.0
    average_amount: float = 0.0
    by_month: Dict[str, AggregateBucket] = field(default_factory=dict)
    by_vendor: Dict[str, AggregateBucket] = field(default_factory=dict)
    by_quarter: Dict[str, AggregateBucket] = field(default_factory=dict)
    by_status: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ----------------------------
# Insight entries (tagged union)
# ----------------------------

@dataclass(frozen=True)
class InsightEntry:
    category: ClassVar[InsightCategory]

    type: str
    message: str
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {k: v for k, v in asdict(self).items() if v is not None}
        payload["category"] = self.category
        return payload


@dataclass(frozen=True)
class TrendInsight(InsightEntry):
    category: ClassVar[InsightCategory] = "trend"
    confidence: Optional[Confidence] = None


@dataclass(frozen=True)
class AnomalyInsight(InsightEntry):
    category: ClassVar[InsightCategory] = "anomaly"
    severity: Optional[Severity] = None
    recommendation: Optional[str] = None


@dataclass(frozen=True)
class PredictionInsight(InsightEntry):
    category: ClassVar[InsightCategory] = "prediction"
    confidence: Optional[Confidence] = None


@dataclass(frozen=True)
class RecommendationInsight(InsightEntry):
    category: ClassVar[InsightCategory] = "recommendation"
    action: Optional[str] = None


@dataclass(frozen=True)
class PatternInsight(InsightEntry):
    category: ClassVar[InsightCategory] = "pattern"
    confidence: Optional[Confidence] = None


@dataclass(frozen=True)
class RiskInsight(InsightEntry):
    category: ClassVar[InsightCategory] = "risk"
    severity: Optional[Severity] = None
    recommendation: Optional[str] = None


@dataclass
class InsightReport:
    trends: List[InsightEntry] = field(default_factory=list)
    anomalies: List[InsightEntry] = field(default_factory=list)
    predictions: List[InsightEntry] = field(default_factory=list)
    recommendations: List[InsightEntry] = field(default_factory=list)
    patterns: List[InsightEntry] = field(default_factory=list)
    risks: List[InsightEntry] = field(default_factory=list)

    def add(self, entry: InsightEntry) -> None:
        getattr(self, CATEGORY_BUCKETS[entry.category]).append(entry)

    def extend(self, entries: List[InsightEntry]) -> None:
        for entry in entries:
            self.add(entry)

    def is_empty(self) -> bool:
        return not any(getattr(self, bucket) for bucket in CATEGORY_BUCKETS.values())

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            bucket: [entry.to_dict() for entry in getattr(self, bucket)]
            for bucket in CATEGORY_BUCKETS.values()
        }


@dataclass(frozen=True)
class AnalysisOutcome:
    """Result of draining one analyzer: entries produced plus an optional error."""
    analyzer: str
    entries: List[InsightEntry]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
