"""Health report API routes."""

import logging
from fastapi import APIRouter, status, HTTPException
from app.schemas.reports import (
    AnalyzeRequest,
    AnalyzeResponse,
    ParsedReport,
    ParseReportRequest,
    SyncReportRequest,
    SyncReportResponse,
)
from app.services.analysis_service import generate_health_analysis
from app.services.report_parser_service import parse_health_report
from app.services.report_sync_service import (
    create_pending_report,
    detect_input_type,
    mark_report_failed,
    normalize_concern,
    sync_report_from_markdown,
)

logger = logging.getLogger(__name__)
router = APIRouter(tags=["reports"])


@router.post("/parse", response_model=ParsedReport, status_code=status.HTTP_200_OK)
async def parse_report_endpoint(request: ParseReportRequest) -> ParsedReport:
    """Parse model markdown into the structured report shown by the report view."""
    logger.info(f"Parsing report markdown ({len(request.markdown)} characters)")
    return parse_health_report(request.markdown)


@router.post("/analyze", response_model=AnalyzeResponse, status_code=status.HTTP_200_OK)
async def analyze_endpoint(request: AnalyzeRequest) -> AnalyzeResponse:
    """
    Run a new health analysis.

    When a user_id is given a pending report row is created first and filled in
    once the model answers, or marked failed if the model call fails. Storage
    problems are logged but never block the analysis itself.
    """
    if not request.text.strip() and not (request.has_images or request.has_audio or request.has_documents):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Describe your symptoms or attach at least one file"
        )

    report_id = None
    if request.user_id:
        try:
            pending = create_pending_report(
                request.user_id,
                request.text,
                has_images=request.has_images,
                has_audio=request.has_audio,
                has_documents=request.has_documents,
            )
            report_id = pending.get("id")
        except HTTPException as e:
            logger.warning(f"History save unavailable: {e.detail}")

    logger.info("Generating health analysis")
    try:
        markdown = await generate_health_analysis(request.text, request.history)
    except HTTPException as e:
        if report_id:
            try:
                mark_report_failed(report_id, str(e.detail))
            except HTTPException as cleanup_error:
                logger.warning(f"Could not mark report {report_id} as failed: {cleanup_error.detail}")
        raise
    parsed = parse_health_report(markdown)

    if report_id:
        input_type = detect_input_type(
            request.text,
            has_images=request.has_images,
            has_audio=request.has_audio,
            has_documents=request.has_documents,
        )
        try:
            sync_report_from_markdown(report_id, markdown, input_type=input_type)
        except HTTPException as e:
            logger.warning(f"Could not save analysis result for report {report_id}: {e.detail}")

    return AnalyzeResponse(
        report_id=report_id,
        markdown=markdown,
        report=parsed,
        preliminary_concern=normalize_concern(parsed.risk_level),
    )


@router.post("/{report_id}/sync", response_model=SyncReportResponse, status_code=status.HTTP_200_OK)
async def sync_report_endpoint(report_id: str, request: SyncReportRequest) -> SyncReportResponse:
    """Re-parse model markdown and store the result on an existing report."""
    try:
        logger.info(f"Syncing report {report_id}")
        parsed, stored = sync_report_from_markdown(report_id, request.markdown, input_type=request.input_type)
        return SyncReportResponse(report_id=report_id, report=parsed, stored=stored)

    except HTTPException:
        logger.error(f"HTTPException raised while syncing report {report_id}", exc_info=True)
        raise
    except Exception as e:
        logger.error(f"Unexpected error in sync_report_endpoint: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}"
        )
