"""Load a raw reading snapshot from an exported JSON or CSV file.

JSON exports hold the same list the data API returns. CSV exports have one
row per record with the same column names, e.g.:

    Timestamp,Appliance,Energy Usage (kWh)
    2024-03-04T10:00:00,TV,1.0
"""

import csv
import json
import logging
from pathlib import Path

from .dashboard_api import DataSourceError, extract_records

logger = logging.getLogger(__name__)


def parse_json(path: Path) -> list[dict]:
    with open(path) as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as e:
            raise DataSourceError(f"Invalid JSON in {path}: {e}") from e
    return extract_records(payload)


def parse_csv(path: Path) -> list[dict]:
    with open(path, newline="") as f:
        return list(csv.DictReader(f))


def load_records(path: Path) -> list[dict]:
    """Load raw records from a .json or .csv export."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        records = parse_json(path)
    elif suffix == ".csv":
        records = parse_csv(path)
    else:
        raise DataSourceError(f"Unsupported export format: {path.suffix or path.name}")

    logger.info("Loaded %s records from %s", len(records), path)
    return records
