import csv
import io
from datetime import date
from typing import Iterable, Optional

from sync_manager.models.sync import LogEntry

CSV_HEADER = [
    "ID",
    "Timestamp",
    "Operation",
    "Product SKU",
    "Product Name",
    "Platform",
    "Status",
    "Details",
]
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def export_filename(day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"sync_logs_{day.isoformat()}.csv"


def logs_to_csv(entries: Iterable[LogEntry]) -> str:
    """CSV du journal (la vue filtrée, dans l'ordre affiché)."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for e in entries:
        writer.writerow(
            [
                e.id,
                e.timestamp.strftime(TIMESTAMP_FORMAT),
                e.operation.value,
                e.product_sku,
                e.product_name,
                e.platform_label,
                e.status.value,
                e.details or "",
            ]
        )
    return buf.getvalue()
