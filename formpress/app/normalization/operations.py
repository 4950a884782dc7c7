"""
Description-of-operations rollup.

Underwriters read one line on the application to understand how the
premises operate. The intake form asks a dozen Yes/No questions about
dining style, alcohol, cooking and solid-fuel equipment; this module folds
the answers into that single printable string.

Unanswered questions are left out rather than printed as "No".
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional


SEPARATOR = " • "


def yes_no(value: Any) -> Optional[bool]:
    """``"Yes"`` -> True, ``"No"`` -> False, anything else -> None."""
    if value is True or value is False:
        return value
    text = str(value or "").strip().lower()
    if text in {"yes", "y", "true"}:
        return True
    if text in {"no", "n", "false"}:
        return False
    return None


def checked(value: Any) -> bool:
    return yes_no(value) is True


def _solid_fuel_summary(form: Mapping[str, Any]) -> str:
    solid_fuel = yes_no(form.get("solid_fuel"))
    if not solid_fuel:
        return "No solid fuel cooking"

    parts = ["Solid fuel cooking (smoker/grill) within 10 ft"]

    installed = yes_no(form.get("professionally_installed"))
    if installed is not None:
        parts.append(
            "professionally installed" if installed else "not professionally installed"
        )

    maintained = yes_no(form.get("regularly_maintained"))
    if maintained is not None:
        maintenance = [
            "regular maintenance" if maintained else "no regular maintenance"
        ]
        if checked(form.get("cleaned_scraped_weekly")):
            maintenance.append("cleaned/scraped weekly")
        if checked(form.get("vent_cleaned_monthly")):
            maintenance.append("vent cleaned monthly")
        if checked(form.get("ashes_removed_daily")):
            maintenance.append("ashes removed daily")
        parts.append("; ".join(maintenance))

    storage = yes_no(form.get("storage_10_feet"))
    if storage is not None:
        parts.append("fuel stored >10 ft away" if storage else "fuel stored ≤10 ft")

    hood = yes_no(form.get("hood_ul300"))
    if hood is not None:
        parts.append("hood + UL300 present" if hood else "no UL300")

    extinguisher = yes_no(form.get("fire_extinguisher_20_feet"))
    if extinguisher is not None:
        parts.append(
            "Class K / 2A within 20 ft"
            if extinguisher
            else "no Class K / 2A within 20 ft"
        )

    if checked(form.get("non_UL300")):
        parts.append("non-UL300 surfaces present")

    return "; ".join(parts)


def describe_operations(form: Mapping[str, Any]) -> str:
    """Single-line description of primary operations."""
    chunks: List[str] = []

    if checked(form.get("fine_dining")):
        chunks.append("Fine dining")
    if checked(form.get("counter_service")):
        chunks.append("Counter service")

    closing_time = str(form.get("closing_time") or "").strip()
    if closing_time:
        chunks.append(f"Closes {closing_time}")

    manufactured = yes_no(form.get("alcohol_manufactured"))
    if manufactured is not None:
        chunks.append(
            "Brews/distills on-site" if manufactured else "No on-site manufacturing"
        )
        consumed = yes_no(form.get("percent_consumed"))
        if consumed is not None:
            chunks.append(
                ">25% consumed on premises" if consumed else "≤25% consumed on premises"
            )

    cannabis = yes_no(form.get("infused_with_cannabis"))
    if cannabis is not None:
        chunks.append(
            "Cannabis-infused items present" if cannabis else "No cannabis infusion"
        )

    cooking = [
        label
        for key, label in (
            ("cooking_level_full", "Full cooking"),
            ("cooking_level_limited", "Limited cooking"),
            ("cooking_level_non", "No cooking"),
        )
        if checked(form.get(key))
    ]
    if cooking:
        chunks.append(f"Cooking: {', '.join(cooking)}")

    if yes_no(form.get("solid_fuel")) is not None:
        chunks.append(_solid_fuel_summary(form))

    entertainment = str(form.get("entertainment_details") or "").strip()
    if checked(form.get("entertainment_other")) and entertainment:
        chunks.append(f"Entertainment: {entertainment}")

    activities = str(form.get("recreational_details") or "").strip()
    if checked(form.get("recreational_activites")) and activities:
        chunks.append(f"Activities: {activities}")

    return SEPARATOR.join(chunk for chunk in chunks if chunk)
