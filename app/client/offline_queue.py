"""
Offline capture queue kept on the device.

Counts captured without connectivity are appended to one versioned JSON
document and uploaded later by QueueSyncClient. Images travel inside the
document as data URLs with their file metadata alongside.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
import logging

from app.client.image_codec import decode_data_url, encode_data_url
from app.client.kv_store import KeyValueStore
from app.schemas.inventory.count_schema import TierQuantities

logger = logging.getLogger(__name__)

QUEUE_KEY = "stocktake_sync_queue"
QUEUE_VERSION = 1

class ImageMetadata(BaseModel):
    name: str
    type: str = ""
    last_modified: int = 0  # epoch milliseconds

class CapturedImage(BaseModel):
    """An image ready for upload"""
    data: bytes
    filename: str
    content_type: str = ""
    last_modified: int = 0

class CountCapture(BaseModel):
    event_id: int
    warehouse_code: str
    stock_code: Optional[str] = None
    case_barcode: Optional[str] = None
    unit_barcode: Optional[str] = None
    lot_number: Optional[str] = None
    description: Optional[str] = None
    recount_task_id: Optional[int] = None
    quantities: TierQuantities = Field(default_factory=TierQuantities)
    image: Optional[CapturedImage] = None

    # Display context for the pending list
    branch: Optional[str] = None
    location: Optional[str] = None
    expiry_date: Optional[str] = None
    user_id: Optional[int] = None

class QueueEntry(BaseModel):
    id: str
    captured_at: datetime
    event_id: int
    warehouse_code: str
    stock_code: Optional[str] = None
    case_barcode: Optional[str] = None
    unit_barcode: Optional[str] = None
    lot_number: Optional[str] = None
    description: Optional[str] = None
    recount_task_id: Optional[int] = None
    quantities: TierQuantities = Field(default_factory=TierQuantities)
    image_data_url: Optional[str] = None
    image_metadata: Optional[ImageMetadata] = None
    branch: Optional[str] = None
    location: Optional[str] = None
    expiry_date: Optional[str] = None
    user_id: Optional[int] = None

    def to_form_fields(self) -> Dict[str, str]:
        """Multipart form fields for the submission endpoint"""
        fields = {
            "event_id": str(self.event_id),
            "warehouse_code": self.warehouse_code,
            "idempotency_key": self.id,
        }
        optional = {
            "stock_code": self.stock_code,
            "case_barcode": self.case_barcode,
            "unit_barcode": self.unit_barcode,
            "lot_number": self.lot_number,
            "product_description": self.description,
            "recount_task_id": self.recount_task_id,
        }
        fields.update({k: str(v) for k, v in optional.items() if v is not None})
        fields.update({k: str(v) for k, v in self.quantities.model_dump().items()})
        return fields

class OfflineQueue:
    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store or KeyValueStore()

    async def _load(self) -> Dict[str, Any]:
        document = await self.store.get(QUEUE_KEY)
        if not isinstance(document, dict) or not isinstance(document.get("entries"), list):
            return {"version": QUEUE_VERSION, "revision": 0, "entries": []}
        return document

    async def _save(self, document: Dict[str, Any], entries: List[Dict[str, Any]]) -> None:
        await self.store.set(QUEUE_KEY, {
            "version": QUEUE_VERSION,
            "revision": int(document.get("revision", 0)) + 1,
            "entries": entries,
        })

    async def enqueue(self, capture: CountCapture) -> QueueEntry:
        """Persist a capture; raises StorageError when the device store is unavailable"""
        image_data_url = None
        image_metadata = None
        if capture.image is not None:
            image = capture.image
            if image.content_type:
                image_data_url = encode_data_url(image.data, image.content_type)
            else:
                # No mime type known; keep the bare payload
                image_data_url = encode_data_url(image.data, "").split(",", 1)[1]
            image_metadata = ImageMetadata(
                name=image.filename,
                type=image.content_type,
                last_modified=image.last_modified,
            )

        entry = QueueEntry(
            id=str(uuid.uuid4()),
            captured_at=datetime.now(timezone.utc),
            image_data_url=image_data_url,
            image_metadata=image_metadata,
            **capture.model_dump(exclude={"image", "quantities"}),
            quantities=capture.quantities,
        )

        document = await self._load()
        entries = list(document["entries"])
        entries.append(entry.model_dump(mode="json"))
        await self._save(document, entries)

        logger.info(f"📥 Queued capture {entry.id} ({len(entries)} pending)")
        return entry

    async def list(self) -> List[QueueEntry]:
        """Entries in capture order"""
        document = await self._load()
        entries = []
        for raw in document["entries"]:
            try:
                entries.append(QueueEntry.model_validate(raw))
            except ValueError as e:
                logger.warning(f"⚠️ Skipping malformed queue entry: {e}")
        return entries

    async def count(self) -> int:
        return len((await self._load())["entries"])

    async def revision(self) -> int:
        """Incremented on every write; lets a caller notice another writer"""
        return int((await self._load()).get("revision", 0))

    def hydrate(self, entry: QueueEntry) -> Optional[CapturedImage]:
        """Rebuild the uploadable image of an entry"""
        if not entry.image_data_url:
            return None
        metadata = entry.image_metadata
        data, mime = decode_data_url(entry.image_data_url, fallback_mime=metadata.type if metadata else "")
        if metadata is None:
            return CapturedImage(data=data, filename="", content_type=mime)
        # Stored metadata is returned as captured; upload defaults live in QueueSyncClient
        return CapturedImage(
            data=data,
            filename=metadata.name,
            content_type=metadata.type,
            last_modified=metadata.last_modified,
        )

    async def remove(self, entry_id: str) -> bool:
        """Drop one entry; unknown ids are ignored"""
        document = await self._load()
        entries = [e for e in document["entries"] if e.get("id") != entry_id]
        if len(entries) == len(document["entries"]):
            return False
        await self._save(document, entries)
        logger.info(f"🗑️ Removed queue entry {entry_id}")
        return True

    async def clear(self) -> int:
        """Discard every pending entry; returns how many were dropped"""
        document = await self._load()
        dropped = len(document["entries"])
        await self._save(document, [])
        logger.warning(f"🧹 Cleared {dropped} queued captures")
        return dropped
