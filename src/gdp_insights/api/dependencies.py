from __future__ import annotations

from fastapi import Request

from ..config import Settings
from ..services.record_gateway import RecordGateway
from ..services.trend_summarizer import TrendSummarizer


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> RecordGateway:
    return request.app.state.gateway


def get_summarizer(request: Request) -> TrendSummarizer:
    return request.app.state.summarizer
