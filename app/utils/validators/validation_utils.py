from typing import Any, Mapping, Optional, Sequence
from app.client.image_codec import decode_data_url, extension_for
from app.core.exceptions import ValidationError
from app.schemas.inventory.count_schema import CountSubmission, PhotoUpload, TierQuantities
from app.services.inventory.unit_normalizer import coerce_quantity

# Canonical field -> accepted payload keys, first match wins
QUANTITY_ALIASES = {
    "singles_units": ("singles_units", "singlesUnits", "units"),
    "singles_cases": ("singles_cases", "singlesCases"),
    "pick_face_layers": ("pick_face_layers", "pickFaceLayers", "pickface_layers"),
    "pick_face_cases": ("pick_face_cases", "pickFaceCases", "pickface_cases"),
    "bulk_pallets": ("bulk_pallets", "bulkPallets"),
    "bulk_layers": ("bulk_layers", "bulkLayers"),
    "bulk_cases": ("bulk_cases", "bulkCases"),
}

def clean_text(value: Any) -> Optional[str]:
    """Trim strings; blank becomes None"""
    if value is None:
        return None
    text = str(value).strip()
    return text or None

def first_present(payload: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None and not (isinstance(value, str) and value.strip() == ""):
            return value
    return None

def parse_optional_int(payload: Mapping[str, Any], keys: Sequence[str], label: str) -> Optional[int]:
    value = first_present(payload, keys)
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f"{label} must be an integer")

def read_quantities(payload: Mapping[str, Any]) -> TierQuantities:
    return TierQuantities(**{
        field: coerce_quantity(field, first_present(payload, keys))
        for field, keys in QUANTITY_ALIASES.items()
    })

def decode_photo_field(text: str) -> PhotoUpload:
    try:
        data, mime = decode_data_url(text, fallback_mime="image/jpeg")
    except ValueError as e:
        raise ValidationError(f"Invalid photo: {e}")
    return PhotoUpload(data=data, content_type=mime, filename=f"upload.{extension_for(mime)}")

def build_count_submission(payload: Mapping[str, Any], photo: Optional[PhotoUpload] = None) -> CountSubmission:
    """Turn a form or JSON body into a CountSubmission"""
    event_id = parse_optional_int(payload, ("event_id", "eventId"), "event_id")
    warehouse_code = clean_text(first_present(payload, ("warehouse_code", "warehouseCode")))
    stock_code = clean_text(first_present(payload, ("stock_code", "stockCode")))
    case_barcode = clean_text(first_present(payload, ("case_barcode", "caseBarcode")))
    unit_barcode = clean_text(first_present(payload, ("unit_barcode", "unitBarcode")))

    if event_id is None or not warehouse_code or not (stock_code or case_barcode or unit_barcode):
        raise ValidationError(
            "Missing required fields: event_id, warehouse_code and one of stock_code, case_barcode, unit_barcode"
        )

    if photo is None:
        encoded = clean_text(first_present(payload, ("photo_base64", "photoBase64", "image")))
        if encoded:
            photo = decode_photo_field(encoded)

    return CountSubmission(
        event_id=event_id,
        warehouse_code=warehouse_code,
        stock_code=stock_code,
        case_barcode=case_barcode,
        unit_barcode=unit_barcode,
        lot_number=clean_text(first_present(payload, ("lot_number", "lotNumber"))),
        description=clean_text(first_present(payload, ("product_description", "description"))),
        recount_task_id=parse_optional_int(payload, ("recount_task_id", "recountTaskId"), "recount_task_id"),
        idempotency_key=clean_text(first_present(payload, ("idempotency_key", "idempotencyKey"))),
        quantities=read_quantities(payload),
        photo=photo,
    )
