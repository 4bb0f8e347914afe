from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends

from ...domain.models import AnalysisRequest, AnalysisResult
from ...security.auth import User
from ...security.rate_limit import enforce
from ...security.rbac import Permission, require_permission
from ...services.record_gateway import RecordGateway
from ...services.trend_summarizer import TrendSummarizer
from ..dependencies import get_gateway, get_summarizer

router = APIRouter(prefix="/analysis", tags=["analysis"])


@router.post("", response_model=AnalysisResult, response_model_exclude_none=True)
def analyze_trends(
    req: Optional[AnalysisRequest] = Body(default=None),
    gateway: RecordGateway = Depends(get_gateway),
    summarizer: TrendSummarizer = Depends(get_summarizer),
    user: User = Depends(require_permission(Permission.ANALYSIS_RUN)),
) -> AnalysisResult:
    """Summarize GDP trends.

    Failures come back as ``{"error": ...}`` with status 200 so the analysis
    panel can render them in place.
    """
    enforce(
        "analysis",
        str(user.email),
        "Too many analysis requests. Please try again later.",
        limit_env="GDP_ANALYSIS_LIMIT",
        window_env="GDP_ANALYSIS_WINDOW_SEC",
        default_limit=20,
        default_window_seconds=3600,
    )
    points = req.points if req is not None and req.points is not None else gateway.analysis_points()
    return summarizer.analyze(points)
