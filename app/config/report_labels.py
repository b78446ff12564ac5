"""Static label, keyword and boilerplate tables used by the report parser.

Each canonical field maps to the bolded labels the model may emit for it, in the
order they are tried. Supporting a new language means adding entries here; the
parser itself does not change.
"""

from typing import Dict, Tuple

# Section ordinals of the seven-part report template.
SECTION_SUMMARY = 1
SECTION_DETAILS = 2
SECTION_REASONING = 3
SECTION_RECOMMENDATIONS = 4
SECTION_RED_FLAGS = 5
SECTION_CARE_ADVICE = 6
SECTION_DOCTOR_SUMMARY = 7

SECTION_COUNT = 7

# Section 2 sub-fields
DETAIL_LABELS: Dict[str, Tuple[str, ...]] = {
    "text": ("Text Analysis", "Text", "Texte", "Analyse du texte"),
    "image": ("Visual Analysis", "Image", "Visuel", "Analyse visuelle"),
    "audio": ("Audio Analysis", "Audio", "Analyse audio"),
    "document": ("Document Insights", "Document", "Documents", "Analyse des documents"),
}

# Section 3 sub-fields
REASONING_LABELS: Dict[str, Tuple[str, ...]] = {
    "observations": ("Key Observations", "Observations", "Observations clés"),
    "possibilities": ("Possibilities", "Possibilités", "Hypothèses"),
    "limitations": ("Limitations", "Limites"),
}

# Risk keywords, matched as plain substrings of the lower-cased summary.
# High is checked before low; anything else resolves to Medium.
HIGH_RISK_KEYWORDS: Tuple[str, ...] = ("high", "élevé")
LOW_RISK_KEYWORDS: Tuple[str, ...] = ("low", "faible", "bas")

# Whole-string "nothing to report" values, matched case-insensitively.
BOILERPLATE_PATTERNS: Tuple[str, ...] = (
    r"n/a\.?",
    r"none\.?",
    r"not provided\.?",
    r"no .* provided\.?",
    r"aucun(?:e)?\.?",
    r"non fourni(?:e)?s?\.?",
    r"aucun(?:e)? .* fourni(?:e)?s?\.?",
)

# Substrings that mark a red-flag line as "no warning signs" boilerplate.
RED_FLAG_DENYLIST: Tuple[str, ...] = (
    "no urgent warning",
    "none identified",
    "aucun signe",
)
