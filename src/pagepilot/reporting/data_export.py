"""JSON / CSV export of intercepted requests."""

from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import Path
from typing import Sequence

from pagepilot.models import RequestRecord

logger = logging.getLogger(__name__)

_CSV_COLUMNS = ["url", "method", "status", "resource_type", "observed_at", "response_bytes"]


def records_to_json(records: Sequence[RequestRecord]) -> str:
    return json.dumps([r.to_dict() for r in records], indent=2)


def records_to_csv(records: Sequence[RequestRecord]) -> str:
    """Flat CSV of the request line and status; headers are JSON only."""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_CSV_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for record in records:
        writer.writerow(record.to_dict())
    return buf.getvalue()


def export_to_file(
    records: Sequence[RequestRecord],
    output_dir: str | Path,
    fmt: str = "json",
) -> Path:
    """Write an export file and return its path.

    *fmt* is ``"json"`` or ``"csv"``.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    if fmt == "csv":
        content = records_to_csv(records)
        suffix = ".csv"
    else:
        content = records_to_json(records)
        suffix = ".json"

    dest = output_dir / f"requests_export{suffix}"
    dest.write_text(content, encoding="utf-8")
    logger.info("Exported %d request(s) as %s to %s.", len(records), fmt.upper(), dest)
    return dest
