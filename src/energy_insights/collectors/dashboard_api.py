"""Dashboard data API collector.

Fetches the raw reading collection from the monitoring backend's JSON
endpoint. The endpoint returns a list of records:

    [{"Timestamp": "...", "Appliance": "TV", "Energy Usage (kWh)": 0.12}, ...]

Some deployments wrap the list as {"data": [...]}.
"""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

# Tunnelled backends show an interstitial page unless this header is sent
DEFAULT_HEADERS = {"ngrok-skip-browser-warning": "true"}


class DataSourceError(Exception):
    """Base exception for data source errors."""

    pass


def extract_records(payload: Any) -> list[dict]:
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        payload = payload["data"]
    if not isinstance(payload, list):
        raise DataSourceError(f"Expected a list of records, got {type(payload).__name__}")
    return payload


def fetch_records(
    url: str,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    client: httpx.Client | None = None,
) -> list[dict]:
    """Fetch the raw reading snapshot from the data API.

    Args:
        url: Full URL of the data endpoint
        headers: Extra request headers (e.g. auth)
        timeout: Request timeout in seconds
        client: Optional preconfigured httpx client

    Returns:
        The raw records, unvalidated
    """
    if not url:
        raise DataSourceError("No data source URL configured")

    request_headers = {**DEFAULT_HEADERS, **(headers or {})}
    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=timeout)

    try:
        response = client.get(url, headers=request_headers)
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as e:
        raise DataSourceError(
            f"HTTP error from data source: {e.response.status_code} {e.response.reason_phrase}"
        ) from e
    except httpx.RequestError as e:
        raise DataSourceError(f"Network error connecting to data source: {e}") from e
    except ValueError as e:
        raise DataSourceError(f"Data source returned invalid JSON: {e}") from e
    finally:
        if owns_client:
            client.close()

    records = extract_records(payload)
    logger.info("Fetched %s records from %s", len(records), url)
    return records
