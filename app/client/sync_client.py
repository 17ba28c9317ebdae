from typing import List, Optional
from pydantic import BaseModel
import httpx
import logging

from app.client.image_codec import extension_for
from app.client.offline_queue import OfflineQueue, QueueEntry
from app.core.exceptions import StorageError

logger = logging.getLogger(__name__)

SUBMIT_PATH = "/api/v1/inventory/count/submit"
DEFAULT_TIMEOUT = 30.0

class SyncResult(BaseModel):
    entry_id: str
    status: str  # synced, error
    count_id: Optional[int] = None
    error: Optional[str] = None

class QueueSyncClient:
    """Uploads queued captures one at a time"""

    def __init__(
        self,
        queue: OfflineQueue,
        base_url: str,
        token: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.queue = queue
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            headers={"Authorization": f"Bearer {self.token}"},
            transport=self.transport,
        )

    async def sync_entry(self, entry: QueueEntry, client: Optional[httpx.AsyncClient] = None) -> SyncResult:
        """Upload one entry; it is removed only after the server accepts it"""
        if client is None:
            async with self._client() as own_client:
                return await self.sync_entry(entry, own_client)

        files = None
        try:
            image = self.queue.hydrate(entry)
        except ValueError as e:
            return SyncResult(entry_id=entry.id, status="error", error=f"Unreadable image: {e}")
        if image is not None:
            content_type = image.content_type or "application/octet-stream"
            filename = image.filename or f"upload.{extension_for(content_type)}"
            files = {"photo": (filename, image.data, content_type)}

        try:
            response = await client.post(SUBMIT_PATH, data=entry.to_form_fields(), files=files)
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Upload of {entry.id} failed: {e}")
            return SyncResult(entry_id=entry.id, status="error", error=str(e) or type(e).__name__)

        if not response.is_success:
            message = self._error_message(response)
            logger.warning(f"⚠️ Server rejected {entry.id}: {response.status_code} {message}")
            return SyncResult(entry_id=entry.id, status="error", error=message)

        try:
            body = response.json()
        except ValueError:
            body = {}
        try:
            await self.queue.remove(entry.id)
        except StorageError as e:
            # Accepted server-side; a retry is deduplicated by the idempotency key
            return SyncResult(entry_id=entry.id, status="error", count_id=body.get("id"), error=e.detail)

        logger.info(f"📤 Synced {entry.id} -> count {body.get('id')}")
        return SyncResult(entry_id=entry.id, status="synced", count_id=body.get("id"))

    async def sync_all(self) -> List[SyncResult]:
        """Upload a snapshot of the queue in capture order; failures leave entries queued"""
        entries = await self.queue.list()
        results = []
        async with self._client() as client:
            for entry in entries:
                results.append(await self.sync_entry(entry, client))

        synced = sum(1 for r in results if r.status == "synced")
        logger.info(f"🔄 Sync finished: {synced}/{len(results)} entries uploaded")
        return results

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return f"HTTP {response.status_code}"
