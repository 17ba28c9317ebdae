from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from app.client.image_codec import extension_for

class PackagingSnapshot(BaseModel):
    """Packaging ratios used to normalize one count"""
    units_per_case: int = Field(1, ge=1)
    cases_per_layer: int = Field(1, ge=1)
    layers_per_pallet: int = Field(1, ge=1)
    pack_size: str = ""

    @property
    def units_per_layer(self) -> int:
        return self.units_per_case * self.cases_per_layer

    @property
    def units_per_pallet(self) -> int:
        return self.units_per_layer * self.layers_per_pallet

class TierQuantities(BaseModel):
    singles_units: int = Field(0, ge=0)
    singles_cases: int = Field(0, ge=0)
    pick_face_layers: int = Field(0, ge=0)
    pick_face_cases: int = Field(0, ge=0)
    bulk_pallets: int = Field(0, ge=0)
    bulk_layers: int = Field(0, ge=0)
    bulk_cases: int = Field(0, ge=0)

class PhotoUpload(BaseModel):
    data: bytes
    content_type: str = "image/jpeg"
    filename: str = "photo.jpg"

    @property
    def extension(self) -> str:
        if "." in self.filename:
            return self.filename.rsplit(".", 1)[-1].lower()
        if self.content_type:
            return extension_for(self.content_type)
        return ""

class CountSubmission(BaseModel):
    """One count submission after transport decoding (form or JSON)"""
    event_id: int
    warehouse_code: str
    stock_code: Optional[str] = None
    case_barcode: Optional[str] = None
    unit_barcode: Optional[str] = None
    lot_number: Optional[str] = None
    description: Optional[str] = None
    recount_task_id: Optional[int] = None
    idempotency_key: Optional[str] = None
    quantities: TierQuantities = Field(default_factory=TierQuantities)
    photo: Optional[PhotoUpload] = None

class CountSubmitResponse(BaseModel):
    ok: bool = True
    id: int
    total_units: int
    photo_path: Optional[str] = None

class CountOut(TierQuantities):
    id: int
    event_id: int
    warehouse_code: str
    stock_code: str
    product_description: Optional[str] = None
    lot_number: Optional[str] = None
    counted_by: int
    total_units: int
    units_per_case_snapshot: int
    cases_per_layer_snapshot: int
    layers_per_pallet_snapshot: int
    pack_size_snapshot: Optional[str] = None
    photo_path: Optional[str] = None
    recount_task_id: Optional[int] = None
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True
