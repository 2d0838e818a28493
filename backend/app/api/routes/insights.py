from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from backend.app.domain.contracts import AnalyzeRequest, AnalyzeResponse
from backend.app.services import insights_service

router = APIRouter(prefix="/api/insights", tags=["insights"])


class ReportTypesOut(BaseModel):
    report_types: List[str]


@router.get("/report-types", response_model=ReportTypesOut)
def get_report_types():
    return {"report_types": insights_service.supported_report_types()}


@router.post("/analyze", response_model=AnalyzeResponse, response_model_exclude_none=True)
async def post_analyze(req: AnalyzeRequest):
    if not insights_service.is_supported_report_type(req.report_type):
        raise HTTPException(status_code=400, detail="invalid report type")

    records = [r.to_record() for r in req.records]
    summary = req.summary.to_summary() if req.summary is not None else None
    return await insights_service.build_report(req.report_type, records, summary=summary)
