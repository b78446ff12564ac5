from __future__ import annotations

import pytest
from fastapi import HTTPException

from app.schemas.reports import RiskLevel
from app.services.report_parser_service import parse_health_report
from app.services.report_sync_service import (
    build_ai_result_update,
    create_pending_report,
    detect_input_type,
    mark_report_failed,
    normalize_concern,
    sync_report_from_markdown,
    update_report_with_ai_result,
)
from conftest import FULL_REPORT, FakeAPIError


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Moderate", RiskLevel.MEDIUM),
        (" moderate ", RiskLevel.MEDIUM),
        ("High", RiskLevel.HIGH),
        ("low", RiskLevel.LOW),
        (RiskLevel.LOW, RiskLevel.LOW),
        ("Unknown", RiskLevel.MEDIUM),
        (None, RiskLevel.MEDIUM),
    ],
)
def test_normalize_concern(value, expected):
    assert normalize_concern(value) == expected


def test_detect_input_type():
    assert detect_input_type("cough", has_images=True) == "text, image"
    assert detect_input_type("  ", has_audio=True, has_documents=True) == "audio, document"
    assert detect_input_type("") == "mixed"


def test_build_ai_result_update_uses_parsed_risk_and_raw_sections():
    update = build_ai_result_update(FULL_REPORT)

    assert update["ai_summary"].startswith("Your symptoms suggest a viral")
    assert update["ai_details"].startswith("* **Text Analysis:**")
    assert update["ai_recommendations"].startswith("* Drink warm fluids")
    assert update["preliminary_concern"] == "Low"
    assert update["status"] == "completed"
    assert update["meta"] == {"full_response": FULL_REPORT}
    assert "input_type" not in update


def test_build_ai_result_update_matches_a_derived_report():
    parsed = parse_health_report(FULL_REPORT).model_copy(update={"risk_level": RiskLevel.HIGH})

    update = build_ai_result_update(FULL_REPORT, parsed=parsed, input_type="text")

    assert update["preliminary_concern"] == "High"
    assert update["input_type"] == "text"


def test_build_ai_result_update_falls_back_when_summary_missing():
    update = build_ai_result_update("plain answer without sections")

    assert update["ai_summary"] == "plain answer without sections..."
    assert update["ai_details"] == ""
    assert update["preliminary_concern"] == "Medium"


def test_create_pending_report_inserts_defaults(fake_supabase):
    long_text = "a" * 150

    created = create_pending_report("user-1", long_text, has_images=True)

    assert created["id"] == "report-1"
    row = fake_supabase.rows()[0]
    assert row["user_id"] == "user-1"
    assert row["status"] == "pending"
    assert row["preliminary_concern"] == "Medium"
    assert row["flagged"] is False
    assert row["input_type"] == "text, image"
    assert row["input_summary"] == "a" * 100 + "..."


def test_sync_report_stores_the_parsed_risk(fake_supabase):
    create_pending_report("user-1", "sore throat")

    parsed, stored = sync_report_from_markdown("report-1", FULL_REPORT, input_type="text")

    assert parsed.risk_level == RiskLevel.LOW
    assert stored["preliminary_concern"] == parsed.risk_level.value
    assert stored["status"] == "completed"
    assert stored["input_type"] == "text"
    assert fake_supabase.rows()[0]["meta"]["full_response"] == FULL_REPORT


def test_update_missing_report_is_not_found(fake_supabase):
    with pytest.raises(HTTPException) as excinfo:
        update_report_with_ai_result("missing", {"status": "completed"})

    assert excinfo.value.status_code == 404


def test_row_level_security_error_is_forbidden(fake_supabase):
    fake_supabase.error = FakeAPIError("new row violates row-level security policy", code="42501")

    with pytest.raises(HTTPException) as excinfo:
        create_pending_report("user-1", "cough")

    assert excinfo.value.status_code == 403


def test_unexpected_storage_error_is_server_error(fake_supabase):
    fake_supabase.error = RuntimeError("connection reset")

    with pytest.raises(HTTPException) as excinfo:
        update_report_with_ai_result("report-1", {"status": "completed"})

    assert excinfo.value.status_code == 500
    assert "connection reset" in excinfo.value.detail


def test_custom_table_name(fake_supabase, monkeypatch):
    monkeypatch.setenv("HEALTH_REPORTS_TABLE", "reports_v2")

    create_pending_report("user-1", "cough")

    assert fake_supabase.rows("reports_v2")
    assert fake_supabase.rows() == []


def test_mark_report_failed(fake_supabase):
    create_pending_report("user-1", "cough")

    mark_report_failed("report-1", "No response generated")

    row = fake_supabase.rows()[0]
    assert row["status"] == "failed"
    assert row["meta"] == {"error": "No response generated"}


def test_failed_result_update_marks_report_failed(fake_supabase):
    create_pending_report("user-1", "cough")
    fake_supabase.update_errors = [RuntimeError("timeout")]

    with pytest.raises(HTTPException) as excinfo:
        update_report_with_ai_result("report-1", {"status": "completed"})

    assert excinfo.value.status_code == 500
    row = fake_supabase.rows()[0]
    assert row["status"] == "failed"
    assert "timeout" in row["meta"]["error"]


def test_failed_cleanup_keeps_the_original_error(fake_supabase):
    create_pending_report("user-1", "cough")
    fake_supabase.update_errors = [RuntimeError("timeout"), RuntimeError("still down")]

    with pytest.raises(HTTPException) as excinfo:
        update_report_with_ai_result("report-1", {"status": "completed"})

    assert excinfo.value.status_code == 500
    assert "timeout" in excinfo.value.detail
    assert fake_supabase.rows()[0]["status"] == "pending"
