"""Report schemas for parsed health analyses."""

from enum import Enum
from typing import Any, Dict, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field


class RiskLevel(str, Enum):
    """Preliminary concern level. There is deliberately no 'unknown' member."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class DetailedAnalysis(BaseModel):
    """Per-modality findings from section 2 of the report."""

    model_config = ConfigDict(frozen=True)

    text: Optional[str] = Field(None, description="Findings from the written history")
    image: Optional[str] = Field(None, description="Objective description of uploaded images")
    audio: Optional[str] = Field(None, description="Insights from audio input")
    document: Optional[str] = Field(None, description="Key data from uploaded documents")


class Reasoning(BaseModel):
    """Clinical reasoning from section 3 of the report."""

    model_config = ConfigDict(frozen=True)

    observations: str = Field(default="", description="Most clinically significant findings")
    possibilities: str = Field(default="", description="Plausible hypotheses, not diagnoses")
    limitations: str = Field(default="", description="Missing data and caveats")


class ParsedReport(BaseModel):
    """Structured view of the model's seven-section markdown report."""

    model_config = ConfigDict(frozen=True)

    executive_summary: str = Field(default="", description="Section 1 text")
    risk_level: RiskLevel = Field(default=RiskLevel.MEDIUM, description="Low, Medium or High")
    detailed_analysis: DetailedAnalysis = Field(default_factory=DetailedAnalysis)
    reasoning: Reasoning = Field(default_factory=Reasoning)
    recommendations: Tuple[str, ...] = Field(default=(), description="Section 4 list items in source order")
    red_flags: Tuple[str, ...] = Field(default=(), description="Section 5 list items, boilerplate removed")
    care_advice: str = Field(default="", description="Section 6 text")
    doctor_summary: str = Field(default="", description="Section 7 text")


class ParseReportRequest(BaseModel):
    """Request body carrying raw model markdown."""

    markdown: str = Field(..., description="Markdown returned by the model")


class SyncReportRequest(BaseModel):
    """Request body for syncing a stored report from model markdown."""

    markdown: str = Field(..., description="Markdown returned by the model")
    input_type: Optional[str] = Field(None, description="Input kinds, e.g. 'text, image'")


class SyncReportResponse(BaseModel):
    """Result of writing a parsed report back to storage."""

    report_id: str
    report: ParsedReport
    stored: Dict[str, Any] = Field(default_factory=dict, description="Row as returned by Supabase")


class AnalyzeRequest(BaseModel):
    """Request body for running a new health analysis."""

    text: str = Field(default="", max_length=10000, description="Symptoms described by the user")
    history: str = Field(default="", description="Recent model responses for context")
    user_id: Optional[str] = Field(None, description="Owner of the report row, if it should be saved")
    has_images: bool = Field(default=False)
    has_audio: bool = Field(default=False)
    has_documents: bool = Field(default=False)


class AnalyzeResponse(BaseModel):
    """Model output together with its parsed form."""

    report_id: Optional[str] = None
    markdown: str
    report: ParsedReport
    preliminary_concern: RiskLevel
