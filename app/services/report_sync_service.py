"""Service for keeping stored health reports in sync with parsed model output."""

import logging
import os
from typing import Any, Dict, Optional, Tuple, Union
from fastapi import HTTPException, status
from dotenv import load_dotenv
from app.config.report_labels import SECTION_DETAILS, SECTION_RECOMMENDATIONS, SECTION_SUMMARY
from app.config.supabase import get_supabase_client
from app.schemas.reports import ParsedReport, RiskLevel
from app.services.report_parser_service import parse_health_report, split_sections

load_dotenv()
logger = logging.getLogger(__name__)

# Postgres / PostgREST codes raised by row-level security and policy triggers
PERMISSION_ERROR_CODES = ("42501", "P0001")

SUMMARY_FALLBACK_LENGTH = 200
INPUT_SUMMARY_LENGTH = 100


def get_reports_table() -> str:
    """Name of the Supabase table holding health reports."""
    return os.getenv("HEALTH_REPORTS_TABLE", "health_reports")


def normalize_concern(value: Union[RiskLevel, str, None]) -> RiskLevel:
    """
    Map a risk label onto the stored Low/Medium/High column.

    "Moderate" is an alternate label for Medium. Values that are not a valid
    level fall back to Medium rather than introducing an unknown state.
    """
    if isinstance(value, RiskLevel):
        return value
    if value is None:
        return RiskLevel.MEDIUM

    label = str(value).strip()
    if label.lower() == "moderate":
        return RiskLevel.MEDIUM
    for level in RiskLevel:
        if level.value.lower() == label.lower():
            return level

    logger.warning(f"Unrecognized concern level '{label}', storing {RiskLevel.MEDIUM.value}")
    return RiskLevel.MEDIUM


def detect_input_type(
    text: str = "",
    has_images: bool = False,
    has_audio: bool = False,
    has_documents: bool = False,
) -> str:
    """Describe which kinds of input were supplied, e.g. 'text, image'."""
    kinds = []
    if text and text.strip():
        kinds.append("text")
    if has_images:
        kinds.append("image")
    if has_audio:
        kinds.append("audio")
    if has_documents:
        kinds.append("document")
    return ", ".join(kinds) or "mixed"


def build_ai_result_update(
    markdown: str,
    parsed: Optional[ParsedReport] = None,
    input_type: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the row update that stores a completed analysis.

    The concern level comes from the parsed report so that the stored value
    matches what the report view shows.

    Args:
        markdown: Full markdown returned by the model
        parsed: Already parsed report, parsed here if omitted
        input_type: Optional description of the input kinds

    Returns:
        Dict of column values for the health report row
    """
    if parsed is None:
        parsed = parse_health_report(markdown)

    sections = split_sections(markdown)
    summary = sections[SECTION_SUMMARY]
    if not summary:
        summary = (markdown or "")[:SUMMARY_FALLBACK_LENGTH] + "..."

    update = {
        "ai_summary": summary,
        "ai_details": sections[SECTION_DETAILS],
        "ai_recommendations": sections[SECTION_RECOMMENDATIONS],
        "preliminary_concern": normalize_concern(parsed.risk_level).value,
        "status": "completed",
        "meta": {"full_response": markdown},
    }
    if input_type:
        update["input_type"] = input_type
    return update


def _raise_storage_error(action: str, error: Exception) -> None:
    """Log a Supabase failure and re-raise it as an HTTPException."""
    code = getattr(error, "code", None)
    if code in PERMISSION_ERROR_CODES:
        logger.warning(f"Permission denied while trying to {action}: {error}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not allowed to {action}"
        )
    logger.error(f"Supabase error while trying to {action}: {str(error)}", exc_info=True)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {str(error)}"
    )


def create_pending_report(
    user_id: str,
    input_text: str,
    has_images: bool = False,
    has_audio: bool = False,
    has_documents: bool = False,
) -> Dict[str, Any]:
    """Insert a pending report row before the model is called and return it."""
    try:
        logger.info(f"Creating pending report for user: {user_id}")
        input_text = input_text or ""
        input_summary = input_text[:INPUT_SUMMARY_LENGTH]
        if len(input_text) > INPUT_SUMMARY_LENGTH:
            input_summary += "..."

        row = {
            "user_id": user_id,
            "input_text": input_text,
            "input_summary": input_summary,
            "input_type": detect_input_type(input_text, has_images, has_audio, has_documents),
            "has_images": has_images,
            "has_audio": has_audio,
            "has_documents": has_documents,
            "status": "pending",
            "preliminary_concern": RiskLevel.MEDIUM.value,
            "flagged": False,
        }

        client = get_supabase_client()
        response = client.table(get_reports_table()).insert(row).execute()

        if not response.data:
            logger.error("Supabase returned no row for the pending report insert")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create pending report"
            )

        created = response.data[0]
        logger.info(f"Pending report created: {created.get('id')}")
        return created

    except HTTPException:
        raise
    except Exception as e:
        _raise_storage_error("create pending report", e)


def update_report_with_ai_result(report_id: str, update: Dict[str, Any]) -> Dict[str, Any]:
    """Write an AI result update to an existing report row and return the stored row."""
    try:
        logger.info(f"Updating report {report_id} with AI result")
        logger.debug(f"Update columns: {list(update.keys())}")

        client = get_supabase_client()
        response = client.table(get_reports_table()).update(update).eq("id", report_id).execute()

        if not response.data:
            logger.warning(f"No report row matched id {report_id}")
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Report {report_id} not found"
            )

        logger.info(f"Report {report_id} stored with concern {update.get('preliminary_concern')}")
        return response.data[0]

    except HTTPException:
        raise
    except Exception as e:
        try:
            mark_report_failed(report_id, f"Could not save analysis result: {str(e)}")
        except HTTPException as cleanup_error:
            logger.warning(f"Could not mark report {report_id} as failed: {cleanup_error.detail}")
        _raise_storage_error(f"update report {report_id}", e)


def sync_report_from_markdown(
    report_id: str,
    markdown: str,
    input_type: Optional[str] = None,
) -> Tuple[ParsedReport, Dict[str, Any]]:
    """
    Parse model markdown and persist the result on the report row.

    Parsing and persisting are independent steps; a storage failure leaves the
    parsed report valid but unsaved.

    Returns:
        Tuple of the parsed report and the stored row
    """
    parsed = parse_health_report(markdown)
    logger.info(f"Parsed report {report_id} with risk level {parsed.risk_level.value}")

    update = build_ai_result_update(markdown, parsed=parsed, input_type=input_type)
    stored = update_report_with_ai_result(report_id, update)
    return parsed, stored


def mark_report_failed(report_id: str, error_message: str) -> None:
    """Flag a report row as failed, keeping the error in its meta column."""
    try:
        logger.info(f"Marking report {report_id} as failed")
        client = get_supabase_client()
        client.table(get_reports_table()).update({
            "status": "failed",
            "meta": {"error": error_message},
        }).eq("id", report_id).execute()

    except Exception as e:
        _raise_storage_error(f"mark report {report_id} as failed", e)
