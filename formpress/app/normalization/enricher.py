"""
Submission enrichment.

``enrich_submission`` turns raw intake answers into the record every
template prints from: currency is cleaned, dates and coverage flags are
derived, address and contact fields fall back through ordered candidates,
claims answers become printable counts and remarks, and optional inputs
get their printed defaults.

The function is pure and total. It never raises on odd input; unusable
values fall back to ``""``, ``"0"``, ``False`` or a label such as ``"No"``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Union

from formpress.app.config import Settings, get_settings
from formpress.app.normalization.currency import (
    clean_currency,
    currency_amount,
    sum_currency_from_text,
)
from formpress.app.normalization.operations import describe_operations, yes_no
from formpress.app.schemas.records import (
    ADDITIONAL_INTEREST_PARTS,
    ADDITIONAL_INTEREST_SLOTS,
    EnrichedRecord,
    SubmissionRecord,
    is_blank,
)


logger = logging.getLogger(__name__)


SEE_REMARKS = "See Remarks Below"

# claim_count answer -> (printable count, remarks source field)
CLAIM_TIERS: Dict[str, tuple] = {
    "Zero": ("0", None),
    "2_or_less": ("2", "claims_details_2_or_less"),
    "3_or_more": ("3", "claims_details_3_or_more"),
}

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m-%d-%Y", "%Y/%m/%d")


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not text:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def add_one_year(start: date) -> date:
    """Same month and day next year; Feb 29 becomes Feb 28."""
    try:
        return start.replace(year=start.year + 1)
    except ValueError:
        return start.replace(year=start.year + 1, day=28)


def calculate_expiration_date(effective_date: Any) -> str:
    """ISO expiration date one calendar year after ``effective_date``, or ``""``."""
    start = parse_date(effective_date)
    if start is None:
        return ""
    try:
        return add_one_year(start).isoformat()
    except ValueError:
        # year 9999 has no successor
        return ""


def _to_int(value: Any) -> int:
    try:
        return int(str(value).strip() or 0)
    except (TypeError, ValueError):
        try:
            return int(float(str(value).strip()))
        except (TypeError, ValueError, OverflowError):
            return 0


def _organization_type(form: SubmissionRecord) -> str:
    if yes_no(form.get("org_type_corporation")):
        return "Corporation"
    if yes_no(form.get("org_type_llc")):
        return "LLC"
    if yes_no(form.get("org_type_individual")):
        return "Individual"
    return ""


def _construction_type(form: SubmissionRecord) -> str:
    if yes_no(form.get("construction_frame")):
        return "Frame"
    if yes_no(form.get("construction_joist_masonry")):
        return "Joisted Masonry"
    if yes_no(form.get("construction_masonry")):
        return "Masonry Non-Combustible"
    return ""


# ---------------------------------------------------------------------------
# Enrichment sections
# ---------------------------------------------------------------------------


def _addresses(form: SubmissionRecord) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "premise_address": form.text("premise_address"),
        "premise_city": form.text("premise_city"),
        "premise_state": form.text("premise_state"),
        "premise_zip": form.text("premise_zip"),
        "applicant_mailing_address": form.first_of("applicant_mailing_address", "premise_address"),
        "applicant_city": form.first_of("applicant_city", "premise_city"),
        "applicant_state": form.first_of("applicant_state", "premise_state"),
        "applicant_zip": form.first_of("applicant_zip", "premise_zip"),
        "mailing_address1": form.first_of("mailing_address1", "premise_address"),
        "mailing_address2": form.text("mailing_address2"),
        "mailing_city": form.first_of("mailing_city", "premise_city"),
        "mailing_state": form.first_of("mailing_state", "premise_state"),
        "mailing_zip": form.first_of("mailing_zip", "premise_zip"),
        "applicant_street": form.first_of("premise_address", "applicant_mailing_address"),
    }
    out["applicant_city_state_zip"] = ", ".join(
        part
        for part in (
            form.first_of("premise_city", "applicant_city"),
            form.first_of("premise_state", "applicant_state"),
            form.first_of("premise_zip", "applicant_zip"),
        )
        if part
    )
    return out


def _coverage(form: SubmissionRecord, settings: Settings) -> Dict[str, Any]:
    return {
        "business_personal_property_clean": clean_currency(form.get("business_personal_property")),
        "food_sales_clean": clean_currency(form.get("food_sales")),
        "alcohol_sales_clean": clean_currency(form.get("alcohol_sales")),
        "total_sales_clean": clean_currency(form.get("total_sales")),
        "needs_gl": True,
        "needs_liquor": currency_amount(form.get("alcohol_sales")) > 0,
        "needs_property": currency_amount(form.get("business_personal_property")) > 0,
        "needs_umbrella": (
            currency_amount(form.get("total_sales")) > settings.umbrella_threshold
        ),
    }


def _employees(form: SubmissionRecord) -> Dict[str, Any]:
    ft = form.text("wc_employees_ft")
    pt = form.text("wc_employees_pt")
    payroll = form.text("wc_annual_payroll")

    combined = _to_int(ft) + _to_int(pt)
    out: Dict[str, Any] = {
        "num_employees": form.text("num_employees"),
        "total_employees": str(combined) if combined else form.text("num_employees"),
        "full_time_employees": form.first_of("wc_employees_ft", "full_time_employees"),
        "part_time_employees": form.first_of("wc_employees_pt", "part_time_employees"),
        "wc_employees_ft": ft,
        "wc_employees_pt": pt,
        "wc_annual_payroll": payroll,
        "wc_bar_tavern": form.text("wc_bar_tavern"),
        "wc_restaurant": form.text("wc_restaurant"),
        "wc_outside_sales_clerical": form.text("wc_outside_sales_clerical"),
        "wc_clerical_ft": "0",
        "wc_clerical_pt": "0",
        "wc_clerical_payroll": "0",
    }
    for flag, prefix in (("wc_bar_tavern", "wc_bar_tavern"), ("wc_restaurant", "wc_restaurant")):
        selected = not is_blank(form.get(flag))
        out[f"{prefix}_ft"] = ft if selected else ""
        out[f"{prefix}_pt"] = pt if selected else ""
        out[f"{prefix}_payroll"] = payroll if selected else ""
    return out


def _additional_interests(form: SubmissionRecord) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "additional_insureds_present": form.text("additional_insureds_present", "No"),
        "ai_loss_payee": form.text("ai_loss_payee"),
        "ai_lienholder": form.text("ai_lienholder"),
        "ai_mortgagee": form.text("ai_mortgagee"),
        "ai_additional_insured": form.text("ai_additional_insured"),
    }
    for slot in range(1, ADDITIONAL_INTEREST_SLOTS + 1):
        for part in ADDITIONAL_INTEREST_PARTS:
            key = f"ai_{part}_{slot}"
            out[key] = form.text(key)

    street, city = out["ai_address_1"], out["ai_city_1"]
    if street and city:
        locality = f"{city}, {out['ai_state_1']} {out['ai_zip_1']}".strip()
        out["additional_insured_address"] = f"{street}\n{locality}"
    return out


def _claims(form: SubmissionRecord) -> Dict[str, Any]:
    tier = form.text("claim_count", "Zero")
    details_low = form.text("claims_details_2_or_less")
    details_high = form.text("claims_details_3_or_more")

    count, remarks_field = CLAIM_TIERS.get(tier, ("0", None))
    remarks = form.text(remarks_field) if remarks_field else ""
    narrative = SEE_REMARKS if remarks_field else ""

    explicit_total = clean_currency(form.get("total_losses_amount"))
    if currency_amount(explicit_total) != 0:
        total_losses = explicit_total
    else:
        total_losses = sum_currency_from_text(
            "\n".join(t for t in (details_low, details_high) if t)
        )

    return {
        "claim_count": tier,
        "total_claims": count,
        "claims_details_2_or_less": details_low,
        "claims_details_3_or_more": details_high,
        "claims_description": narrative,
        "claims_remarks": remarks,
        "description_of_insurance": narrative,
        "total_losses_amount": total_losses,
    }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def enrich_submission(
    submission: Union[SubmissionRecord, Mapping[str, Any], None],
    *,
    settings: Optional[Settings] = None,
    today: Optional[date] = None,
) -> EnrichedRecord:
    """
    Build the EnrichedRecord for one render request.

    Unknown submission keys are carried through unchanged; derived keys
    overwrite submitted keys of the same name.
    """
    form = (
        submission
        if isinstance(submission, SubmissionRecord)
        else SubmissionRecord(submission or {})
    )
    settings = settings or get_settings()
    today = today or date.today()

    effective_date = form.text("effective_date")

    enriched: Dict[str, Any] = form.to_dict()
    enriched.update(
        {
            "form_id": form.text("form_id"),
            "segment": form.text("segment"),
            "debug_grid": form.get("debug_grid") is True,
            "organization_type": _organization_type(form),
            "construction_type": _construction_type(form),
            "producer_name": settings.producer_name,
            "producer_address1": settings.producer_address1,
            "producer_address2": settings.producer_address2,
            "producer_phone": settings.producer_phone,
            "producer_email": settings.producer_email,
            "effective_date": effective_date,
            "expiration_date": calculate_expiration_date(effective_date),
            "current_date": today.isoformat(),
            "year_built": form.text("year_built"),
            "automatic_sprinkler_system": form.text("automatic_sprinkler", "No"),
            "automatic_sprinkler_system_extent": form.text("automatic_sprinkler_system_extent"),
            "number_of_stories": form.text("number_of_stories", "1"),
            "contact_email": form.text("contact_email"),
            "business_phone": form.text("business_phone"),
            "closing_time": form.text("closing_time"),
            "square_footage": form.text("square_footage"),
            "premises_name": form.first_of("premises_name", "dba_name"),
            "applicant_name": form.first_of("applicant_name", "legal_business_name"),
            "premises_website": form.text("premises_website"),
            "building_quote": form.text("building_quote"),
            "business_type": form.text("business_type", "RESTAURANT"),
            "description_of_operations": describe_operations(form),
        }
    )
    enriched.update(_coverage(form, settings))
    enriched.update(_addresses(form))
    enriched.update(_employees(form))
    enriched.update(_additional_interests(form))
    enriched.update(_claims(form))

    for key in (
        "solid_fuel",
        "professionally_installed",
        "regularly_maintained",
        "cleaned_scraped_weekly",
        "vent_cleaned_monthly",
        "ashes_removed_daily",
        "storage_10_feet",
        "hood_ul300",
        "fire_extinguisher_20_feet",
    ):
        enriched[key] = form.text(key)

    record = EnrichedRecord(enriched)
    logger.debug(
        "Enriched submission form_id=%s segment=%s unknown_keys=%d",
        record.form_id or "-",
        record.segment or "default",
        len(record.unknown_keys()),
    )
    return record
