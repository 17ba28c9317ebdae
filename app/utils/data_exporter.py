import csv
import re
from io import StringIO
from typing import Any, Dict, Iterable, List, Sequence
from fastapi.responses import StreamingResponse
import logging

from app.models.shared.enums import UNSPECIFIED_LOT
from app.schemas.inventory.count_total_schema import CountExportRow

logger = logging.getLogger(__name__)

COUNT_EXPORT_FIELDS = ["stock_code", "description", "lot_number", "counted_units"]

def safe_filename_part(value: str) -> str:
    """Anything outside [A-Za-z0-9_-] becomes an underscore"""
    return re.sub(r"[^A-Za-z0-9_-]", "_", str(value)) or "_"

class DataExportService:
    def prepare_count_rows(self, totals: Iterable[Any]) -> List[CountExportRow]:
        """Map CountTotal rows to export rows; the lot sentinel renders empty"""
        return [
            CountExportRow(
                stock_code=t.stock_code,
                description=t.product_description or "",
                lot_number="" if t.lot_number == UNSPECIFIED_LOT else t.lot_number,
                counted_units=t.counted_units,
            )
            for t in totals
        ]

    def render_csv(self, data: Sequence[Dict[str, Any]], fieldnames: Sequence[str]) -> str:
        """Fields holding a comma, quote or newline are quoted, quotes doubled"""
        output = StringIO()
        writer = csv.DictWriter(output, fieldnames=list(fieldnames), lineterminator="\n")
        writer.writeheader()
        writer.writerows(data)
        return output.getvalue()

    def export_to_csv(self, data: Sequence[Dict[str, Any]], fieldnames: Sequence[str], filename: str) -> StreamingResponse:
        """Export data to CSV format"""
        content = self.render_csv(data, fieldnames)
        logger.info(f"📤 Exporting {len(data)} rows to {filename}.csv")
        return StreamingResponse(
            iter([content]),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}.csv"'}
        )

    def export_counts(self, totals: Iterable[Any], event_id: int, warehouse_code: str) -> StreamingResponse:
        rows = [row.model_dump() for row in self.prepare_count_rows(totals)]
        return self.export_to_csv(rows, COUNT_EXPORT_FIELDS, f"counts-{event_id}-{safe_filename_part(warehouse_code)}")
