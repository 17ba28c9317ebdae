import base64
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from app.core.exceptions import StorageError
from app.models import Count, CountTotal, Product, RecountTask
from app.models.shared.enums import RecountTaskStatus
from app.services.inventory.aggregation_service import AggregationService
from app.services.inventory.unit_normalizer import count_total_from_snapshot
from app.utils.file_handler import PhotoStorageService, get_photo_storage
from main import app

SUBMIT_URL = "/api/v1/inventory/count/submit"

async def count_rows(db) -> int:
    return (await db.execute(select(func.count(Count.id)))).scalar_one()

class TestCountSubmission:

    async def test_singles_tier_is_normalized(self, client, seed, auth, db):
        payload = {
            "event_id": seed.open_event.id,
            "warehouse_code": "MAIN",
            "stock_code": "SKU-001",
            "singlesUnits": 5,
            "singles_cases": "2",
        }
        response = await client.post(SUBMIT_URL, json=payload, headers=auth(seed.taker_a))

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["total_units"] == 53
        assert body["photo_path"] is None

        count = await db.get(Count, body["id"])
        assert count.stock_code == "SKU-001"
        assert count.product_description == "Cola 330ml"
        assert count.counted_by == seed.taker_a.id
        assert count.units_per_case_snapshot == 24
        assert count.cases_per_layer_snapshot == 10
        assert count.layers_per_pallet_snapshot == 5
        assert count.pack_size_snapshot == "24x330ml"

    async def test_bulk_pallet_with_photo_upload(self, client, seed, auth, png_bytes, photo_storage):
        response = await client.post(
            SUBMIT_URL,
            data={
                "event_id": str(seed.open_event.id),
                "warehouse_code": "MAIN",
                "stock_code": "SKU-001",
                "bulk_pallets": "1",
                "lot_number": " LOT-7 ",
            },
            files={"photo": ("shelf.png", png_bytes, "image/png")},
            headers=auth(seed.taker_b),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total_units"] == 1200
        assert body["photo_path"].startswith(f"{seed.open_event.id}/MAIN/")
        assert body["photo_path"].endswith(".png")

        stored = photo_storage.bucket_dir / body["photo_path"]
        assert stored.read_bytes() == png_bytes

    async def test_photo_as_data_url_in_json(self, client, seed, auth, jpeg_bytes):
        encoded = base64.b64encode(jpeg_bytes).decode()
        response = await client.post(
            SUBMIT_URL,
            json={
                "event_id": seed.open_event.id,
                "warehouse_code": "MAIN",
                "stock_code": "SKU-002",
                "units": 3,
                "photo_base64": f"data:image/jpeg;base64,{encoded}",
            },
            headers=auth(seed.taker_a),
        )

        assert response.status_code == 200
        assert response.json()["photo_path"].endswith(".jpg")

    async def test_product_resolved_by_case_barcode(self, client, seed, auth, db):
        response = await client.post(
            SUBMIT_URL,
            json={
                "event_id": seed.open_event.id,
                "warehouse_code": "MAIN",
                "case_barcode": "CASE-001",
                "pick_face_layers": 1,
                "pickface_cases": 2,
                "product_description": "Cola promo pack",
            },
            headers=auth(seed.taker_a),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total_units"] == 240 + 48
        count = await db.get(Count, body["id"])
        assert count.stock_code == "SKU-001"
        assert count.product_description == "Cola promo pack"

    async def test_closed_event_is_rejected(self, client, seed, auth, db):
        response = await client.post(
            SUBMIT_URL,
            json={"event_id": seed.closed_event.id, "warehouse_code": "MAIN", "stock_code": "SKU-001", "units": 1},
            headers=auth(seed.taker_a),
        )

        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "Event not accepting submissions", "code": "conflict"}
        assert await count_rows(db) == 0

    async def test_missing_event_is_a_conflict(self, client, seed, auth):
        response = await client.post(
            SUBMIT_URL,
            json={"event_id": 9999, "warehouse_code": "MAIN", "stock_code": "SKU-001"},
            headers=auth(seed.taker_a),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "conflict"

    async def test_unknown_product_names_identifiers(self, client, seed, auth):
        response = await client.post(
            SUBMIT_URL,
            json={
                "event_id": seed.open_event.id,
                "warehouse_code": "MAIN",
                "stock_code": "NOPE",
                "unit_barcode": "000",
            },
            headers=auth(seed.taker_a),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "not_found"
        assert "stock_code=NOPE" in body["error"]
        assert "unit_barcode=000" in body["error"]

    async def test_missing_identifiers_fail_validation(self, client, seed, auth):
        response = await client.post(
            SUBMIT_URL,
            json={"event_id": seed.open_event.id, "warehouse_code": "MAIN"},
            headers=auth(seed.taker_a),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation"

    async def test_negative_quantity_fails_validation(self, client, seed, auth, db):
        response = await client.post(
            SUBMIT_URL,
            json={"event_id": seed.open_event.id, "warehouse_code": "MAIN", "stock_code": "SKU-001", "bulk_cases": -1},
            headers=auth(seed.taker_a),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation"
        assert await count_rows(db) == 0

    async def test_unreadable_photo_fails_validation(self, client, seed, auth, db):
        response = await client.post(
            SUBMIT_URL,
            data={"event_id": str(seed.open_event.id), "warehouse_code": "MAIN", "stock_code": "SKU-001"},
            files={"photo": ("shelf.jpg", b"not an image", "image/jpeg")},
            headers=auth(seed.taker_a),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation"
        assert await count_rows(db) == 0

    async def test_storage_failure_creates_no_count(self, client, seed, auth, png_bytes, db):
        class UnavailableStorage(PhotoStorageService):
            async def save_photo(self, photo, event_id, warehouse_code):
                raise StorageError("Failed to store photo")

        app.dependency_overrides[get_photo_storage] = lambda: UnavailableStorage()

        response = await client.post(
            SUBMIT_URL,
            data={"event_id": str(seed.open_event.id), "warehouse_code": "MAIN", "stock_code": "SKU-001"},
            files={"photo": ("shelf.png", png_bytes, "image/png")},
            headers=auth(seed.taker_a),
        )

        assert response.status_code == 503
        assert response.json() == {"ok": False, "error": "Failed to store photo", "code": "storage_error"}
        assert await count_rows(db) == 0

    async def test_idempotency_key_returns_existing_count(self, client, seed, auth, db):
        payload = {
            "event_id": seed.open_event.id,
            "warehouse_code": "MAIN",
            "stock_code": "SKU-001",
            "units": 4,
            "idempotency_key": "7d1c5a0e-capture",
        }
        first = await client.post(SUBMIT_URL, json=payload, headers=auth(seed.taker_a))
        second = await client.post(SUBMIT_URL, json=payload, headers=auth(seed.taker_a))

        assert first.status_code == second.status_code == 200
        assert first.json()["id"] == second.json()["id"]
        assert await count_rows(db) == 1

    async def test_idempotency_key_of_another_user_is_a_conflict(self, client, seed, auth, db):
        payload = {
            "event_id": seed.open_event.id,
            "warehouse_code": "MAIN",
            "stock_code": "SKU-001",
            "units": 4,
            "idempotency_key": "shared-capture-key",
        }
        first = await client.post(SUBMIT_URL, json=payload, headers=auth(seed.taker_a))
        second = await client.post(SUBMIT_URL, json=payload, headers=auth(seed.taker_b))

        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json()["code"] == "conflict"
        assert await count_rows(db) == 1

    async def test_idempotency_key_for_other_stock_code_is_a_conflict(self, client, seed, auth, db):
        payload = {
            "event_id": seed.open_event.id,
            "warehouse_code": "MAIN",
            "stock_code": "SKU-001",
            "units": 4,
            "idempotency_key": "reused-capture-key",
        }
        await client.post(SUBMIT_URL, json=payload, headers=auth(seed.taker_a))
        response = await client.post(SUBMIT_URL, json={**payload, "stock_code": "SKU-002"}, headers=auth(seed.taker_a))

        assert response.status_code == 400
        assert response.json()["code"] == "conflict"
        assert await count_rows(db) == 1

    async def test_duplicate_payload_without_key_creates_two_counts(self, client, seed, auth, db):
        payload = {"event_id": seed.open_event.id, "warehouse_code": "MAIN", "stock_code": "SKU-002", "units": 1}
        await client.post(SUBMIT_URL, json=payload, headers=auth(seed.taker_a))
        await client.post(SUBMIT_URL, json=payload, headers=auth(seed.taker_a))

        assert await count_rows(db) == 2

    async def test_total_survives_product_ratio_change(self, client, seed, auth, session_maker):
        response = await client.post(
            SUBMIT_URL,
            json={"event_id": seed.open_event.id, "warehouse_code": "MAIN", "stock_code": "SKU-001", "singles_cases": 3},
            headers=auth(seed.taker_a),
        )
        count_id = response.json()["id"]

        async with session_maker() as session:
            product = await session.get(Product, seed.cola.id)
            product.units_per_case = 12
            await session.commit()

        async with session_maker() as session:
            count = await session.get(Count, count_id)
            assert count.total_units == 72
            assert count_total_from_snapshot(count) == 72

    async def test_submission_refreshes_totals(self, client, seed, auth, db):
        for lot in ("A1", "", "A1"):
            await client.post(
                SUBMIT_URL,
                json={
                    "event_id": seed.open_event.id,
                    "warehouse_code": "MAIN",
                    "stock_code": "SKU-002",
                    "units": 2,
                    "lot_number": lot,
                },
                headers=auth(seed.taker_a),
            )

        result = await db.execute(select(CountTotal).order_by(CountTotal.lot_number))
        totals = [(t.lot_number, t.counted_units) for t in result.scalars().all()]
        assert totals == [("A1", 4), ("UNSPECIFIED", 2)]

    async def test_failed_refresh_does_not_fail_submission(self, client, seed, auth, db, monkeypatch):
        async def broken_refresh(self, event_id, warehouse_code):
            raise OperationalError("refresh count totals", {}, Exception("database is locked"))

        monkeypatch.setattr(AggregationService, "refresh", broken_refresh)

        response = await client.post(
            SUBMIT_URL,
            json={"event_id": seed.open_event.id, "warehouse_code": "MAIN", "stock_code": "SKU-002", "units": 5},
            headers=auth(seed.taker_a),
        )

        assert response.status_code == 200
        assert response.json()["total_units"] == 5
        assert await count_rows(db) == 1

    async def test_recount_task_is_closed_by_submission(self, client, seed, auth, session_maker):
        async with session_maker() as session:
            task = RecountTask(
                event_id=seed.open_event.id,
                warehouse_code="MAIN",
                stock_code="SKU-001",
                assigned_to=seed.taker_c.id,
                assigned_by=seed.manager.id,
            )
            session.add(task)
            await session.commit()
            task_id = task.id

        response = await client.post(
            SUBMIT_URL,
            json={
                "event_id": seed.open_event.id,
                "warehouse_code": "MAIN",
                "stock_code": "SKU-001",
                "units": 1,
                "recount_task_id": task_id,
            },
            headers=auth(seed.taker_c),
        )
        assert response.status_code == 200

        async with session_maker() as session:
            task = await session.get(RecountTask, task_id)
            count = await session.get(Count, response.json()["id"])
            assert task.status == RecountTaskStatus.DONE.value
            assert task.completed_at is not None
            assert count.recount_task_id == task_id

    async def test_foreign_recount_task_is_rejected(self, client, seed, auth, session_maker, db):
        async with session_maker() as session:
            task = RecountTask(
                event_id=seed.open_event.id,
                warehouse_code="MAIN",
                stock_code="SKU-001",
                assigned_to=seed.taker_c.id,
            )
            session.add(task)
            await session.commit()
            task_id = task.id

        response = await client.post(
            SUBMIT_URL,
            json={
                "event_id": seed.open_event.id,
                "warehouse_code": "MAIN",
                "stock_code": "SKU-001",
                "recount_task_id": task_id,
            },
            headers=auth(seed.taker_a),
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation"
        assert await count_rows(db) == 0

class TestSubmissionAccess:

    async def test_missing_token_is_unauthorized(self, client, seed):
        response = await client.post(SUBMIT_URL, json={"event_id": seed.open_event.id})

        assert response.status_code == 401
        assert response.json() == {"ok": False, "error": "Unauthorized", "code": "unauthorized"}

    async def test_invalid_token_is_unauthorized(self, client, seed):
        response = await client.post(
            SUBMIT_URL,
            json={"event_id": seed.open_event.id},
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401

    async def test_unassigned_warehouse_is_forbidden(self, client, seed, auth, db):
        response = await client.post(
            SUBMIT_URL,
            json={"event_id": seed.open_event.id, "warehouse_code": "NORTH", "stock_code": "SKU-001", "units": 1},
            headers=auth(seed.taker_a),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"
        assert await count_rows(db) == 0

    async def test_admin_bypasses_warehouse_assignment(self, client, seed, auth):
        response = await client.post(
            SUBMIT_URL,
            json={"event_id": seed.open_event.id, "warehouse_code": "NORTH", "stock_code": "SKU-001", "units": 1},
            headers=auth(seed.admin),
        )

        assert response.status_code == 200
        assert response.json()["total_units"] == 1
