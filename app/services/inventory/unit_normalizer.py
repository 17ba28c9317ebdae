import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional
from app.core.exceptions import ValidationError
from app.schemas.inventory.count_schema import PackagingSnapshot, TierQuantities

QUANTITY_FIELDS = (
    "singles_units",
    "singles_cases",
    "pick_face_layers",
    "pick_face_cases",
    "bulk_pallets",
    "bulk_layers",
    "bulk_cases",
)

def coerce_ratio(value: Any) -> int:
    """Missing, zero, negative or non-numeric ratios count as 1"""
    if value is None or isinstance(value, bool):
        return 1
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(number) or number < 1:
        return 1
    return int(number)

def coerce_quantity(field: str, value: Any) -> int:
    """Validate one raw tier quantity; empty means 0"""
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return 0
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number")
    if isinstance(value, int):
        number = value
    else:
        try:
            as_float = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{field} must be a whole number")
        if not math.isfinite(as_float):
            raise ValidationError(f"{field} must be finite")
        if not as_float.is_integer():
            raise ValidationError(f"{field} must be a whole number")
        number = int(as_float)
    if number < 0:
        raise ValidationError(f"{field} must not be negative")
    return number

def make_snapshot(
    units_per_case: Any = None,
    cases_per_layer: Any = None,
    layers_per_pallet: Any = None,
    pack_size: Optional[str] = None,
) -> PackagingSnapshot:
    return PackagingSnapshot(
        units_per_case=coerce_ratio(units_per_case),
        cases_per_layer=coerce_ratio(cases_per_layer),
        layers_per_pallet=coerce_ratio(layers_per_pallet),
        pack_size=pack_size or "",
    )

def snapshot_from_product(product) -> PackagingSnapshot:
    """Capture a product's current packaging ratios"""
    return make_snapshot(
        product.units_per_case,
        product.cases_per_layer,
        product.layers_per_pallet,
        product.pack_size,
    )

def snapshot_from_count(count) -> PackagingSnapshot:
    return make_snapshot(
        count.units_per_case_snapshot,
        count.cases_per_layer_snapshot,
        count.layers_per_pallet_snapshot,
        count.pack_size_snapshot,
    )

def units_singles(q: TierQuantities, snapshot: PackagingSnapshot) -> int:
    return q.singles_units + q.singles_cases * snapshot.units_per_case

def units_pick_face(q: TierQuantities, snapshot: PackagingSnapshot) -> int:
    return q.pick_face_layers * snapshot.units_per_layer + q.pick_face_cases * snapshot.units_per_case

def units_bulk(q: TierQuantities, snapshot: PackagingSnapshot) -> int:
    return (
        q.bulk_pallets * snapshot.units_per_pallet
        + q.bulk_layers * snapshot.units_per_layer
        + q.bulk_cases * snapshot.units_per_case
    )

def normalize_units(q: TierQuantities, snapshot: PackagingSnapshot) -> int:
    """
    Convert tiered quantities to a single unit figure.

    Every tier is additive, so a worker may record singles, pick-face and
    bulk stock for the same product in one count.
    """
    total = Decimal(units_singles(q, snapshot) + units_pick_face(q, snapshot) + units_bulk(q, snapshot))
    return int(total.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def count_total_from_snapshot(count) -> int:
    """Recompute a stored count's total from its own snapshot"""
    quantities = TierQuantities(**{field: getattr(count, field) or 0 for field in QUANTITY_FIELDS})
    return normalize_units(quantities, snapshot_from_count(count))
