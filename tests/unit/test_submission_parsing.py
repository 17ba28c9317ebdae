import base64
import pytest
from app.core.exceptions import ValidationError
from app.utils.validators.validation_utils import build_count_submission

BASE = {"event_id": "3", "warehouse_code": " MAIN ", "stock_code": "SKU-001"}

class TestBuildCountSubmission:

    def test_trims_and_parses_fields(self):
        submission = build_count_submission({**BASE, "lot_number": "  ", "idempotency_key": "abc"})

        assert submission.event_id == 3
        assert submission.warehouse_code == "MAIN"
        assert submission.lot_number is None
        assert submission.idempotency_key == "abc"
        assert submission.photo is None

    def test_quantity_aliases(self):
        submission = build_count_submission({
            **BASE,
            "singlesUnits": "5",
            "singlesCases": 2,
            "pickface_layers": 1,
            "pickFaceCases": "",
            "bulkPallets": 1,
        })

        q = submission.quantities
        assert (q.singles_units, q.singles_cases, q.pick_face_layers, q.pick_face_cases, q.bulk_pallets) == (5, 2, 1, 0, 1)

    def test_units_alias_for_singles(self):
        assert build_count_submission({**BASE, "units": 9}).quantities.singles_units == 9

    def test_product_description_wins_over_description(self):
        submission = build_count_submission({**BASE, "product_description": "Override", "description": "Other"})
        assert submission.description == "Override"

        submission = build_count_submission({**BASE, "description": "Other"})
        assert submission.description == "Other"

    def test_barcode_alone_is_enough(self):
        submission = build_count_submission({"event_id": 1, "warehouse_code": "MAIN", "unit_barcode": "0001"})
        assert submission.unit_barcode == "0001"

    @pytest.mark.parametrize("payload", [
        {"warehouse_code": "MAIN", "stock_code": "X"},
        {"event_id": 1, "stock_code": "X"},
        {"event_id": 1, "warehouse_code": "MAIN"},
    ])
    def test_missing_required_fields(self, payload):
        with pytest.raises(ValidationError):
            build_count_submission(payload)

    def test_non_integer_event_id(self):
        with pytest.raises(ValidationError):
            build_count_submission({**BASE, "event_id": "three"})

    def test_photo_data_url_decoded(self, png_bytes):
        encoded = base64.b64encode(png_bytes).decode()
        submission = build_count_submission({**BASE, "photo_base64": f"data:image/png;base64,{encoded}"})

        assert submission.photo.data == png_bytes
        assert submission.photo.content_type == "image/png"
        assert submission.photo.filename == "upload.png"

    def test_bare_base64_photo_defaults_to_jpeg(self, jpeg_bytes):
        submission = build_count_submission({**BASE, "photo_base64": base64.b64encode(jpeg_bytes).decode()})

        assert submission.photo.data == jpeg_bytes
        assert submission.photo.content_type == "image/jpeg"
        assert submission.photo.filename == "upload.jpg"

    def test_invalid_base64_photo(self):
        with pytest.raises(ValidationError):
            build_count_submission({**BASE, "photo_base64": "data:image/png;base64,@@@"})
