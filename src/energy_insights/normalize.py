"""Normalize raw data-source records into clean readings.

Records arrive as loosely-typed mappings, e.g.:

    {"Timestamp": "2024-03-04T10:00:00", "Appliance": "TV", "Energy Usage (kWh)": "1.2"}

Bad timestamps drop the record, bad energy values become 0. Nothing here raises
on malformed data.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, Mapping

from .models import Reading

logger = logging.getLogger(__name__)

# Devices that never reported send an epoch timestamp; anything before the
# end of the first epoch day is treated as that sentinel.
SENTINEL_CUTOFF = datetime(1970, 1, 2)


@dataclass(frozen=True)
class RecordFields:
    """Names of the fields carried by each raw record."""

    timestamp: str = "Timestamp"
    appliance: str = "Appliance"
    energy: str = "Energy Usage (kWh)"


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a raw timestamp to naive wall-clock time, or None if unusable."""
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, date):
            parsed = datetime.combine(value, time.min)
        elif isinstance(value, (int, float)):
            # Epoch numbers are milliseconds
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        elif isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        else:
            return None
    except (ValueError, TypeError, OverflowError, OSError):
        return None

    # Keep the reported wall-clock time, drop any offset
    return parsed.replace(tzinfo=None)


def parse_energy(value: Any) -> float:
    """Parse a raw energy value in kWh, falling back to 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        kwh = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, TypeError):
        return 0.0
    if math.isnan(kwh) or math.isinf(kwh) or kwh < 0:
        return 0.0
    return kwh


def parse_appliance(value: Any) -> str | None:
    if value is None:
        return None
    name = str(value).strip()
    return name or None


def normalize_record(record: Mapping[str, Any], fields: RecordFields = RecordFields()) -> Reading | None:
    """Convert one raw record, or return None if it must be discarded."""
    timestamp = parse_timestamp(record.get(fields.timestamp))
    if timestamp is None or timestamp < SENTINEL_CUTOFF:
        return None

    return Reading(
        timestamp=timestamp,
        appliance=parse_appliance(record.get(fields.appliance)),
        energy_kwh=parse_energy(record.get(fields.energy)),
    )


def normalize_readings(
    records: Iterable[Any] | None, fields: RecordFields = RecordFields()
) -> list[Reading]:
    """Normalize a raw record collection.

    Records without an appliance name are kept so the list stays complete for
    period enumeration; aggregation skips them.
    """
    if not records or isinstance(records, (str, bytes, Mapping)):
        return []
    try:
        records = iter(records)
    except TypeError:
        return []

    readings = []
    dropped = 0
    for record in records:
        if not isinstance(record, Mapping):
            dropped += 1
            continue
        reading = normalize_record(record, fields)
        if reading is None:
            dropped += 1
            continue
        readings.append(reading)

    if dropped:
        logger.debug("Dropped %s of %s raw records", dropped, dropped + len(readings))
    return readings
