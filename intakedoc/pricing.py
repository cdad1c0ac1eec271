from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from .types import ApplicationForm


logger = logging.getLogger(__name__)

SQM_TO_SQFT = Decimal('10.764')
GST_RATE = Decimal('0.05')
CENTS = Decimal('0.01')


@dataclass(frozen=True)
class UnitPreset:
    label: str
    area_sqm: Decimal
    area_sqft: Decimal
    unit_price: Decimal


# Unit price is per square meter of carpet area, in rupees.
UNIT_PRESETS: dict[str, UnitPreset] = {
    '3bhk': UnitPreset(
        label='3 BHK',
        area_sqm=Decimal('121.41'),
        area_sqft=Decimal('1306.77'),
        unit_price=Decimal('50000'),
    ),
    '4bhk': UnitPreset(
        label='4 BHK',
        area_sqm=Decimal('167.23'),
        area_sqft=Decimal('1800.04'),
        unit_price=Decimal('60000'),
    ),
}


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: Decimal
    gst_amount: Decimal
    total_price: Decimal


def get_unit_preset(bhk_type: str) -> UnitPreset | None:
    return UNIT_PRESETS.get(str(bhk_type or '').strip().lower())


def unit_type_label(bhk_type: str) -> str:
    preset = get_unit_preset(bhk_type)
    return preset.label if preset is not None else ''


def parse_amount(value: str | int | float | Decimal | None) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    token = str(value).replace('₹', '').replace(',', '').strip()
    if not token:
        return None
    try:
        return Decimal(token)
    except InvalidOperation:
        return None


def sqm_to_sqft(area_sqm: Decimal) -> Decimal:
    return (area_sqm * SQM_TO_SQFT).quantize(CENTS)


def compute_price(unit_price: Decimal, area: Decimal) -> PriceBreakdown:
    """Total = unit price x area, plus 5% GST on that product."""
    base = unit_price * area
    gst = base * GST_RATE
    return PriceBreakdown(base_price=base, gst_amount=gst, total_price=base + gst)


def format_amount(value: Decimal) -> str:
    return str(value.quantize(CENTS))


def apply_unit_pricing(form: ApplicationForm) -> ApplicationForm:
    """Recompute area and price fields from the unit-type lookup.

    Client-supplied prices are never trusted; a known unit type always wins.
    Unknown unit types keep the submitted area and clear all price fields.
    """
    preset = get_unit_preset(form.bhk_type)
    updated = form.model_copy(deep=True)

    if preset is None:
        if form.bhk_type:
            logger.warning('Unknown unit type %r; price fields cleared', form.bhk_type)
        updated.unit_price = ''
        updated.base_price = ''
        updated.gst_amount = ''
        updated.total_price = ''
        return updated

    submitted_price = parse_amount(form.unit_price)
    if submitted_price is not None and submitted_price != preset.unit_price:
        logger.warning(
            'Ignoring client unit price %s for %s; preset is %s',
            submitted_price,
            form.bhk_type,
            preset.unit_price,
        )

    breakdown = compute_price(preset.unit_price, preset.area_sqm)
    updated.carpet_area_sqm = str(preset.area_sqm)
    updated.carpet_area_sqft = str(preset.area_sqft)
    updated.unit_price = str(preset.unit_price)
    updated.base_price = format_amount(breakdown.base_price)
    updated.gst_amount = format_amount(breakdown.gst_amount)
    updated.total_price = format_amount(breakdown.total_price)
    return updated
