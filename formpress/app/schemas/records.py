"""
Submission and enriched record containers.

Intake data arrives as an arbitrary string-keyed mapping. Rather than pass
raw dictionaries around, both sides of normalization are wrapped in an
immutable mapping that:

- declares the keys it recognizes (``RECOGNIZED_KEYS``),
- lets unknown keys pass through untouched,
- exposes string-oriented accessors that never raise.

Renderers only ever look up keys named by a field map or template, so an
unknown key is carried along and otherwise ignored.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, FrozenSet, Iterator, Optional


ADDITIONAL_INTEREST_SLOTS = 5
ADDITIONAL_INTEREST_PARTS = ("name", "address", "city", "state", "zip")


def is_blank(value: Any) -> bool:
    """None, False and whitespace-only strings count as "not provided"."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


TRUTHY_VALUES = frozenset({"x", "true", "yes", "y", "1", "on", "checked"})


def is_checked(value: Any) -> bool:
    """Checkbox semantics: True or a truthy word, case-insensitive."""
    if value is True:
        return True
    if value is None or value is False:
        return False
    return str(value).strip().lower() in TRUTHY_VALUES


def as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class _FrozenRecord(Mapping):
    __slots__ = ("_data",)

    RECOGNIZED_KEYS: FrozenSet[str] = frozenset()

    def __init__(self, data: Optional[Mapping] = None, **extra: Any):
        merged = {}
        if data:
            merged.update((str(k), v) for k, v in data.items())
        merged.update(extra)
        self._data = MappingProxyType(merged)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self._data)} keys)"

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def text(self, key: str, default: str = "") -> str:
        """Value of ``key`` as a string, ``default`` when not provided."""
        value = self._data.get(key)
        return default if is_blank(value) else as_text(value)

    def first_of(self, *keys: str, default: str = "") -> str:
        """First provided value among ``keys``, as a string."""
        for key in keys:
            value = self._data.get(key)
            if not is_blank(value):
                return as_text(value)
        return default

    def unknown_keys(self) -> FrozenSet[str]:
        return frozenset(self._data) - self.RECOGNIZED_KEYS

    def to_dict(self) -> dict:
        return dict(self._data)


def _additional_interest_keys() -> FrozenSet[str]:
    return frozenset(
        f"ai_{part}_{slot}"
        for slot in range(1, ADDITIONAL_INTEREST_SLOTS + 1)
        for part in ADDITIONAL_INTEREST_PARTS
    )


class SubmissionRecord(_FrozenRecord):
    """Raw intake answers, exactly as submitted by the caller."""

    __slots__ = ()

    RECOGNIZED_KEYS = frozenset(
        {
            # routing
            "id",
            "form_id",
            "segment",
            "debug_grid",
            # applicant and premises
            "applicant_name",
            "legal_business_name",
            "dba_name",
            "premises_name",
            "premises_website",
            "applicant_mailing_address",
            "applicant_city",
            "applicant_state",
            "applicant_zip",
            "premise_address",
            "premise_city",
            "premise_state",
            "premise_zip",
            "mailing_address1",
            "mailing_address2",
            "mailing_city",
            "mailing_state",
            "mailing_zip",
            "contact_email",
            "business_phone",
            "closing_time",
            "business_type",
            "square_footage",
            "building_quote",
            # organization and construction
            "org_type_corporation",
            "org_type_llc",
            "org_type_individual",
            "construction_frame",
            "construction_joist_masonry",
            "construction_masonry",
            "year_built",
            "automatic_sprinkler",
            "automatic_sprinkler_system_extent",
            "number_of_stories",
            # money
            "business_personal_property",
            "food_sales",
            "alcohol_sales",
            "total_sales",
            "total_losses_amount",
            # dates
            "effective_date",
            # employees and workers comp
            "num_employees",
            "full_time_employees",
            "part_time_employees",
            "wc_employees_ft",
            "wc_employees_pt",
            "wc_annual_payroll",
            "wc_bar_tavern",
            "wc_restaurant",
            "wc_outside_sales_clerical",
            # additional interests
            "additional_insureds_present",
            "ai_loss_payee",
            "ai_lienholder",
            "ai_mortgagee",
            "ai_additional_insured",
            # claims
            "claim_count",
            "claims_details_2_or_less",
            "claims_details_3_or_more",
            # operations
            "fine_dining",
            "counter_service",
            "alcohol_manufactured",
            "percent_consumed",
            "infused_with_cannabis",
            "cooking_level_full",
            "cooking_level_limited",
            "cooking_level_non",
            "solid_fuel",
            "professionally_installed",
            "regularly_maintained",
            "cleaned_scraped_weekly",
            "vent_cleaned_monthly",
            "ashes_removed_daily",
            "storage_10_feet",
            "hood_ul300",
            "fire_extinguisher_20_feet",
            "non_UL300",
            "entertainment_other",
            "entertainment_details",
            "recreational_activites",
            "recreational_details",
        }
    ) | _additional_interest_keys()


class EnrichedRecord(_FrozenRecord):
    """
    Submission plus derived attributes.

    Built once per render request by ``enrich_submission`` and read by
    every template in the bundle.
    """

    __slots__ = ()

    DERIVED_KEYS = frozenset(
        {
            "organization_type",
            "construction_type",
            "business_personal_property_clean",
            "food_sales_clean",
            "alcohol_sales_clean",
            "total_sales_clean",
            "producer_name",
            "producer_address1",
            "producer_address2",
            "producer_phone",
            "producer_email",
            "expiration_date",
            "current_date",
            "automatic_sprinkler_system",
            "needs_gl",
            "needs_liquor",
            "needs_property",
            "needs_umbrella",
            "total_employees",
            "wc_bar_tavern_ft",
            "wc_bar_tavern_pt",
            "wc_bar_tavern_payroll",
            "wc_restaurant_ft",
            "wc_restaurant_pt",
            "wc_restaurant_payroll",
            "wc_clerical_ft",
            "wc_clerical_pt",
            "wc_clerical_payroll",
            "total_claims",
            "claims_description",
            "claims_remarks",
            "description_of_insurance",
            "applicant_street",
            "applicant_city_state_zip",
            "additional_insured_address",
            "description_of_operations",
        }
    )

    RECOGNIZED_KEYS = SubmissionRecord.RECOGNIZED_KEYS | DERIVED_KEYS

    @property
    def form_id(self) -> str:
        return self.text("form_id")

    @property
    def segment(self) -> Optional[str]:
        segment = self.text("segment").strip().lower()
        return segment or None

    @property
    def debug_grid(self) -> bool:
        return self.get("debug_grid") is True
