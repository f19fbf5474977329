"""
Promotion metadata codec.

Serializes PromotionMetadata into the key/value shape Paystack stores on a
transaction (plus `custom_fields` for the provider dashboard) and reads it
back from the echoed verification payload. Decoding never raises: anything
that is not a well-formed promotion payload decodes to None.
"""
from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional
from uuid import UUID

from domain.common.exceptions import DomainValidationException
from .entity import MAX_PROMOTION_DURATION_DAYS, PROMOTION_PURPOSE, PromotionMetadata

# (variable_name, display_name) in the order shown on the provider dashboard
_DISPLAY_FIELDS = (
    ("property_id", "Property ID"),
    ("tier_name", "Promotion Tier"),
    ("tier_fee", "Tier Fee"),
    ("tier_duration", "Duration (days)"),
    ("agent_id", "Agent ID"),
)


def encode_promotion_metadata(meta: PromotionMetadata) -> dict[str, Any]:
    """Build the provider metadata map. Output depends only on `meta`."""
    payload: dict[str, Any] = {
        "property_id": str(meta.property_id),
        "tier_id": meta.tier_id,
        "tier_name": meta.tier_name,
        "tier_duration": meta.tier_duration_days,
        "agent_id": str(meta.agent_id),
        "purpose": meta.purpose,
    }
    if meta.tier_fee_major_units is not None:
        payload["tier_fee"] = meta.tier_fee_major_units
    payload["custom_fields"] = [
        {"display_name": display, "variable_name": name, "value": payload[name]}
        for name, display in _DISPLAY_FIELDS
        if name in payload
    ]
    return payload


def coerce_duration_days(value: Any) -> Optional[int]:
    """Coerce an echoed duration (int, integral float or numeric string).

    Returns None for booleans, fractions and non-numeric text, and for values
    outside 1..MAX_PROMOTION_DURATION_DAYS.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not number.is_finite() or not 0 < number <= MAX_PROMOTION_DURATION_DAYS:
        return None
    if number != number.to_integral_value():
        return None
    return int(number)


def _coerce_uuid(value: Any) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str):
        return None
    try:
        return UUID(value.strip())
    except ValueError:
        return None


def _coerce_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _coerce_fee(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return float(number) if number.is_finite() else None


def decode_promotion_metadata(raw: Any) -> Optional[PromotionMetadata]:
    """Parse echoed metadata; None means "not a promotion payment"."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    if not isinstance(raw, Mapping):
        return None
    if raw.get("purpose") != PROMOTION_PURPOSE:
        return None

    property_id = _coerce_uuid(raw.get("property_id"))
    agent_id = _coerce_uuid(raw.get("agent_id"))
    tier_id = _coerce_text(raw.get("tier_id"))
    tier_name = _coerce_text(raw.get("tier_name"))
    duration = coerce_duration_days(raw.get("tier_duration"))
    if None in (property_id, agent_id, tier_id, tier_name, duration):
        return None

    try:
        return PromotionMetadata(
            property_id=property_id,
            tier_id=tier_id,
            tier_name=tier_name,
            tier_duration_days=duration,
            agent_id=agent_id,
            tier_fee_major_units=_coerce_fee(raw.get("tier_fee")),
        )
    except DomainValidationException:
        return None
