from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.app.insights.schema import AggregateBucket, FinancialRecord, PrecomputedSummary


class FinancialRecordContract(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    id: str
    date: date
    amount: float
    vat: float = 0.0
    vendor_name: str
    status: Literal["pending", "approved", "rejected"]
    document_type: str = "invoice"
    invoice_number: str = ""

    pending_steps: int = 0
    current_step: Optional[int] = None
    approval_history: Optional[Any] = None

    def to_record(self) -> FinancialRecord:
        return FinancialRecord(**self.model_dump())


class AggregateBucketContract(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    key: str
    count: int = 0
    total: float = 0.0
    vat: float = 0.0


class PrecomputedSummaryContract(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    total_documents: int = 0
    total_amount: float = 0.0
    total_vat: float = 0.0
    average_amount: float = 0.0
    by_month: Dict[str, AggregateBucketContract] = Field(default_factory=dict)
    by_vendor: Dict[str, AggregateBucketContract] = Field(default_factory=dict)
    by_quarter: Dict[str, AggregateBucketContract] = Field(default_factory=dict)
    by_status: Dict[str, int] = Field(default_factory=dict)

    def to_summary(self) -> PrecomputedSummary:
        def _buckets(raw: Dict[str, AggregateBucketContract]) -> Dict[str, AggregateBucket]:
            return {key: AggregateBucket(**bucket.model_dump()) for key, bucket in raw.items()}

        return PrecomputedSummary(
            total_documents=self.total_documents,
            total_amount=self.total_amount,
            total_vat=self.total_vat,
            average_amount=self.average_amount,
            by_month=_buckets(self.by_month),
            by_vendor=_buckets(self.by_vendor),
            by_quarter=_buckets(self.by_quarter),
            by_status=dict(self.by_status),
        )


class InsightEntryContract(BaseModel):
    category: Literal["trend", "anomaly", "prediction", "recommendation", "pattern", "risk"]
    type: str
    message: str
    confidence: Optional[Literal["high", "medium", "low"]] = None
    severity: Optional[Literal["high", "medium"]] = None
    recommendation: Optional[str] = None
    action: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class InsightReportContract(BaseModel):
    trends: List[InsightEntryContract] = Field(default_factory=list)
    anomalies: List[InsightEntryContract] = Field(default_factory=list)
    predictions: List[InsightEntryContract] = Field(default_factory=list)
    recommendations: List[InsightEntryContract] = Field(default_factory=list)
    patterns: List[InsightEntryContract] = Field(default_factory=list)
    risks: List[InsightEntryContract] = Field(default_factory=list)


class AnalyzeRequest(BaseModel):
    report_type: str = Field(..., min_length=1, max_length=64)
    records: List[FinancialRecordContract] = Field(default_factory=list)
    summary: Optional[PrecomputedSummaryContract] = None


class AnalyzeResponse(BaseModel):
    report_type: str
    summary: PrecomputedSummaryContract
    insights: InsightReportContract
    generated_at: str
