"""Service for parsing the model's markdown health report into a structured record."""

import logging
import re
from typing import Dict, List, Optional, Tuple
from app.config.report_labels import (
    BOILERPLATE_PATTERNS,
    DETAIL_LABELS,
    HIGH_RISK_KEYWORDS,
    LOW_RISK_KEYWORDS,
    REASONING_LABELS,
    RED_FLAG_DENYLIST,
    SECTION_CARE_ADVICE,
    SECTION_COUNT,
    SECTION_DETAILS,
    SECTION_DOCTOR_SUMMARY,
    SECTION_REASONING,
    SECTION_RECOMMENDATIONS,
    SECTION_RED_FLAGS,
    SECTION_SUMMARY,
)
from app.schemas.reports import DetailedAnalysis, ParsedReport, Reasoning, RiskLevel

logger = logging.getLogger(__name__)

# "### 3. Anything" on its own line; the header wording is ignored.
SECTION_MARKER_RE = re.compile(rf"^[ \t]*###[ \t]*([1-{SECTION_COUNT}])\.[^\n]*$", re.MULTILINE)

# A bullet followed by a bold label opens a sub-field.
BULLET_LABEL = r"^[ \t]*[*\-][ \t]*\*\*"

LIST_MARKER_RE = re.compile(r"^\s*(?:[*\-](?![*\-])\s*|\d+[.)]\s+)")
HORIZONTAL_RULE_RE = re.compile(r"^[-*_]{3,}$")

BOILERPLATE_RE = re.compile("(?:" + "|".join(BOILERPLATE_PATTERNS) + ")", re.IGNORECASE)


def _label_pattern(label: str) -> re.Pattern:
    """Build the sub-field pattern for one label.

    Accepts "* **Label:**", "- **Label :**", "* **Label**:" and a short qualifier
    such as "* **Label (photos):**". The value runs to the next bulleted bold
    label or the end of the section.
    """
    return re.compile(
        BULLET_LABEL
        + r"[ \t]*"
        + re.escape(label)
        + r"(?:[ \t]*\([^)\n]{0,40}\))?"
        + r"[ \t]*:?[ \t]*\*\*[ \t]*:?(.*?)(?="
        + BULLET_LABEL
        + r"|\Z)",
        re.IGNORECASE | re.MULTILINE | re.DOTALL,
    )


def _compile_labels(table: Dict[str, Tuple[str, ...]]) -> Dict[str, Tuple[re.Pattern, ...]]:
    return {field: tuple(_label_pattern(label) for label in labels) for field, labels in table.items()}


DETAIL_PATTERNS = _compile_labels(DETAIL_LABELS)
REASONING_PATTERNS = _compile_labels(REASONING_LABELS)


def clean_text(text: Optional[str]) -> Optional[str]:
    """Trim a captured value, returning None for empty or "nothing to report" text."""
    if not text:
        return None
    stripped = text.strip()
    if not stripped or BOILERPLATE_RE.fullmatch(stripped):
        return None
    return stripped


def split_sections(markdown: str) -> Dict[int, str]:
    """
    Split the report into its numbered sections.

    A section's body runs from the line after its "### N." marker up to the next
    marker with a higher ordinal, or the end of the text. Ordinals with no marker
    map to an empty string. When an ordinal repeats, the first occurrence wins.

    Args:
        markdown: Raw markdown returned by the model

    Returns:
        Dict mapping each ordinal 1..7 to its trimmed body
    """
    if not isinstance(markdown, str):
        markdown = "" if markdown is None else str(markdown)

    sections = {ordinal: "" for ordinal in range(1, SECTION_COUNT + 1)}
    markers = [
        (int(match.group(1)), match.start(), match.end())
        for match in SECTION_MARKER_RE.finditer(markdown)
    ]

    seen = set()
    for index, (ordinal, _, body_start) in enumerate(markers):
        if ordinal in seen:
            continue
        seen.add(ordinal)

        body_end = len(markdown)
        for next_ordinal, next_start, _ in markers[index + 1:]:
            if next_ordinal > ordinal:
                body_end = next_start
                break
        sections[ordinal] = markdown[body_start:body_end].strip()

    return sections


def classify_risk(summary: str) -> RiskLevel:
    """
    Infer the risk level from the executive summary prose.

    A plain substring search: high keywords win over low ones. Anything else,
    including "moderate", "indeterminate" or no mention at all, is Medium.
    Words that merely contain a keyword ("thigh", "below", "based") count too.
    """
    lowered = summary.lower()
    if any(keyword in lowered for keyword in HIGH_RISK_KEYWORDS):
        return RiskLevel.HIGH
    if any(keyword in lowered for keyword in LOW_RISK_KEYWORDS):
        return RiskLevel.LOW
    return RiskLevel.MEDIUM


def extract_labeled_field(section: str, patterns: Tuple[re.Pattern, ...]) -> Optional[str]:
    """Return the first non-boilerplate value among a field's label aliases."""
    for pattern in patterns:
        match = pattern.search(section)
        if not match:
            continue
        value = clean_text(match.group(1))
        if value is not None:
            return value
    return None


def extract_list_items(section: str) -> List[str]:
    """One entry per non-blank line with its bullet or number marker stripped."""
    items = []
    for line in section.splitlines():
        item = LIST_MARKER_RE.sub("", line, count=1).strip()
        if not item or HORIZONTAL_RULE_RE.match(item):
            continue
        items.append(item)
    return items


def extract_red_flags(section: str) -> List[str]:
    """List items minus "no warning signs" boilerplate. An empty list means nothing concerning."""
    flags = []
    for item in extract_list_items(section):
        lowered = item.lower()
        if any(phrase in lowered for phrase in RED_FLAG_DENYLIST):
            continue
        if clean_text(item) is None:
            continue
        flags.append(item)
    return flags


def parse_health_report(markdown: str) -> ParsedReport:
    """
    Parse the model's seven-section markdown into a ParsedReport.

    Never raises: missing sections, labels or lists fall back to empty values
    and the risk level falls back to Medium.

    Args:
        markdown: Raw markdown returned by the model

    Returns:
        ParsedReport built fresh from the input
    """
    sections = split_sections(markdown)
    summary = sections[SECTION_SUMMARY]
    details_raw = sections[SECTION_DETAILS]
    reasoning_raw = sections[SECTION_REASONING]

    detailed_analysis = DetailedAnalysis(**{
        field: extract_labeled_field(details_raw, patterns)
        for field, patterns in DETAIL_PATTERNS.items()
    })
    reasoning = Reasoning(**{
        field: extract_labeled_field(reasoning_raw, patterns) or ""
        for field, patterns in REASONING_PATTERNS.items()
    })

    report = ParsedReport(
        executive_summary=summary,
        risk_level=classify_risk(summary),
        detailed_analysis=detailed_analysis,
        reasoning=reasoning,
        recommendations=extract_list_items(sections[SECTION_RECOMMENDATIONS]),
        red_flags=extract_red_flags(sections[SECTION_RED_FLAGS]),
        care_advice=sections[SECTION_CARE_ADVICE],
        doctor_summary=sections[SECTION_DOCTOR_SUMMARY],
    )

    found = [ordinal for ordinal, body in sections.items() if body]
    logger.debug(
        f"Parsed report: sections with content {found}, risk {report.risk_level.value}, "
        f"{len(report.recommendations)} recommendations, {len(report.red_flags)} red flags"
    )
    return report
