"""
Static reference tables.

Read-only lookup data shown on the onboarding screens. The state store
only ever stores the `value` keys (or the state name verbatim); it never
validates against these tables. Callers that want validation use the
`is_known_*` helpers or `onboarding.forms.ProfileForm`.
"""

import math


# =============================================================================
# Profile Options
# =============================================================================

USER_TYPES = [
    {
        "label": "Salary Earner (PAYE)",
        "value": "salary_earner",
        "description": "Employed, tax deducted by employer",
    },
    {
        "label": "Freelancer / Self-Employed",
        "value": "freelancer",
        "description": "Independent contractor, consultant",
    },
    {
        "label": "Small Business Owner",
        "value": "small_business_owner",
        "description": "Sole proprietor or company owner",
    },
]

# Based on NTA 2025 tax brackets
INCOME_RANGES = [
    {"label": "Below ₦800,000 (Tax-Free)", "value": "below_800k"},
    {"label": "₦800,000 - ₦3,000,000", "value": "800k_3m"},
    {"label": "₦3,000,000 - ₦12,000,000", "value": "3m_12m"},
    {"label": "₦12,000,000 - ₦25,000,000", "value": "12m_25m"},
    {"label": "₦25,000,000 - ₦50,000,000", "value": "25m_50m"},
    {"label": "Above ₦50,000,000", "value": "above_50m"},
]

# 36 states + FCT
NIGERIAN_STATES = [
    "Abia",
    "Adamawa",
    "Akwa Ibom",
    "Anambra",
    "Bauchi",
    "Bayelsa",
    "Benue",
    "Borno",
    "Cross River",
    "Delta",
    "Ebonyi",
    "Edo",
    "Ekiti",
    "Enugu",
    "FCT - Abuja",
    "Gombe",
    "Imo",
    "Jigawa",
    "Kaduna",
    "Kano",
    "Katsina",
    "Kebbi",
    "Kogi",
    "Kwara",
    "Lagos",
    "Nasarawa",
    "Niger",
    "Ogun",
    "Ondo",
    "Osun",
    "Oyo",
    "Plateau",
    "Rivers",
    "Sokoto",
    "Taraba",
    "Yobe",
    "Zamfara",
]

VALID_USER_TYPES = {t["value"] for t in USER_TYPES}
VALID_INCOME_RANGES = {r["value"] for r in INCOME_RANGES}
VALID_STATES = set(NIGERIAN_STATES)


# =============================================================================
# Checklists
# =============================================================================

# Seed for the local checklist. Ids are stable across resets.
DEFAULT_CHECKLIST = [
    {"id": "1", "title": "Register with State IRS"},
    {"id": "2", "title": "File annual tax return"},
    {"id": "3", "title": "Keep income records"},
]

# Fuller checklist with guidance text (fallback if the API is unavailable).
# The server is expected to generate this per user type eventually.
COMPLIANCE_CHECKLIST = [
    {"id": "1", "title": "Register for Tax ID (TIN)", "description": "Visit taxid.jrb.gov.ng"},
    {"id": "2", "title": "Gather income documents", "description": "Payslips, invoices, bank statements"},
    {"id": "3", "title": "Calculate annual income", "description": "First ₦800,000 is tax-free"},
    {"id": "4", "title": "Identify deductions", "description": "Pension, NHF, rent relief"},
    {"id": "5", "title": "File tax return by March 31", "description": "Via State IRS portal (e.g., LIRS)"},
]

# Display only. Nothing computes tax from this table.
TAX_BRACKETS = [
    {"min": 0, "max": 800_000, "rate": 0, "label": "₦0 - ₦800,000"},
    {"min": 800_001, "max": 3_000_000, "rate": 15, "label": "₦800,001 - ₦3,000,000"},
    {"min": 3_000_001, "max": 12_000_000, "rate": 18, "label": "₦3,000,001 - ₦12,000,000"},
    {"min": 12_000_001, "max": 25_000_000, "rate": 21, "label": "₦12,000,001 - ₦25,000,000"},
    {"min": 25_000_001, "max": 50_000_000, "rate": 23, "label": "₦25,000,001 - ₦50,000,000"},
    {"min": 50_000_001, "max": math.inf, "rate": 25, "label": "Above ₦50,000,000"},
]


# =============================================================================
# Lookup Helpers
# =============================================================================

def is_known_user_type(value: str | None) -> bool:
    return value in VALID_USER_TYPES


def is_known_income_range(value: str | None) -> bool:
    return value in VALID_INCOME_RANGES


def is_known_state(value: str | None) -> bool:
    return value in VALID_STATES


def label_for_user_type(value: str | None) -> str | None:
    """Display label for a user type key, or None if unset/unknown."""
    for option in USER_TYPES:
        if option["value"] == value:
            return option["label"]
    return None


def label_for_income_range(value: str | None) -> str | None:
    """Display label for an income range key, or None if unset/unknown."""
    for option in INCOME_RANGES:
        if option["value"] == value:
            return option["label"]
    return None


def get_form_options() -> dict:
    """
    Get all profile form options for rendering.

    Returns dict with:
    - user_types: Category options with descriptions
    - income_ranges: Ordered income buckets
    - states: Dropdown options (label and value are the state name)
    - tax_brackets: Display-only rate bands
    """
    return {
        "user_types": USER_TYPES,
        "income_ranges": INCOME_RANGES,
        "states": [{"label": s, "value": s} for s in NIGERIAN_STATES],
        "tax_brackets": TAX_BRACKETS,
    }
