"""This file contains the schemas for the application."""
from app.schemas.reports import (
    RiskLevel,
    DetailedAnalysis,
    Reasoning,
    ParsedReport,
    ParseReportRequest,
    SyncReportRequest,
    SyncReportResponse,
    AnalyzeRequest,
    AnalyzeResponse,
)

__all__ = [
    "RiskLevel",
    "DetailedAnalysis",
    "Reasoning",
    "ParsedReport",
    "ParseReportRequest",
    "SyncReportRequest",
    "SyncReportResponse",
    "AnalyzeRequest",
    "AnalyzeResponse",
]
