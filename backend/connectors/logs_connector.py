# backend/connectors/logs_connector.py
import os
import time
import datetime
from typing import Any, Dict, Optional, Tuple

import requests

from backend import monitoring

LOGS_API_URL = os.getenv("LOGS_API_URL", "https://hrfde-2.fly.dev/api/logs")
LOGS_FETCH_RETRIES = int(os.getenv("LOGS_FETCH_RETRIES", "3"))
LOGS_FETCH_TIMEOUT = float(os.getenv("LOGS_FETCH_TIMEOUT", "10"))
LOGS_FETCH_BACKOFF = float(os.getenv("LOGS_FETCH_BACKOFF", "1.0"))
MAX_BACKOFF_SECONDS = 30.0

PROXY_FAILURE_STATUS = 500
PROXY_FAILURE_MESSAGE = "Failed to fetch data from external API"


class SourceUnavailable(RuntimeError):
    """The logs API could not be reached or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None, attempts: int = 1):
        super().__init__(message)
        self.status_code = status_code
        self.attempts = attempts


def _get(url: str, timeout: float) -> requests.Response:
    return requests.get(url, timeout=timeout, headers={"Accept": "application/json"})


def _is_success(resp: requests.Response) -> bool:
    return 200 <= resp.status_code < 300


def fetch_logs(
    url: Optional[str] = None,
    retries: Optional[int] = None,
    timeout: Optional[float] = None,
    backoff: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Fetch the raw negotiation-log batch from the logs API.

    Failed attempts (network error, any non-2xx status including 3xx, body that
    is not JSON) are retried `retries` more times with exponential backoff.

    Returns:
        {
            "records": <decoded JSON body>,
            "metadata": {"source": "logs-api", "url": str, "fetched_at": ISO,
                         "http_status": int, "attempts": int}
        }
    Raises SourceUnavailable once every attempt has failed.
    """
    url = url or LOGS_API_URL
    retries = LOGS_FETCH_RETRIES if retries is None else max(0, retries)
    timeout = LOGS_FETCH_TIMEOUT if timeout is None else timeout
    backoff = LOGS_FETCH_BACKOFF if backoff is None else backoff

    last_status: Optional[int] = None
    last_message = ""
    attempts = 0
    for attempt in range(retries + 1):
        attempts = attempt + 1
        try:
            resp = _get(url, timeout)
            last_status = resp.status_code
            if _is_success(resp):
                payload = resp.json()
                monitoring.inc_upstream_fetch("success")
                return {
                    "records": payload,
                    "metadata": {
                        "source": "logs-api",
                        "url": url,
                        "fetched_at": datetime.datetime.utcnow().isoformat() + "Z",
                        "http_status": resp.status_code,
                        "attempts": attempts,
                    },
                }
            last_message = f"Failed to fetch logs: {resp.status_code} {resp.reason or ''}".rstrip()
            monitoring.inc_upstream_fetch("http_error")
        except ValueError as e:
            # requests raises a ValueError subclass for undecodable JSON
            last_message = f"Failed to fetch logs: invalid JSON body ({e})"
            monitoring.inc_upstream_fetch("bad_body")
        except requests.RequestException as e:
            last_status = None
            last_message = f"Failed to fetch logs: {e}"
            monitoring.inc_upstream_fetch("network_error")

        monitoring.logger.warning(
            "Logs API fetch attempt failed",
            extra={"attempt": attempts, "status": last_status, "url": url},
        )
        if attempt < retries and backoff > 0:
            time.sleep(min(backoff * (2 ** attempt), MAX_BACKOFF_SECONDS))

    raise SourceUnavailable(last_message, status_code=last_status, attempts=attempts)


def proxy_logs(url: Optional[str] = None, timeout: Optional[float] = None) -> Tuple[int, Any]:
    """
    Single upstream call for the pass-through endpoint. Returns (status_code, payload).

    Non-2xx statuses are relayed with an error message; network or decoding
    failures become a 500 with a generic message.
    """
    url = url or LOGS_API_URL
    timeout = LOGS_FETCH_TIMEOUT if timeout is None else timeout
    try:
        resp = _get(url, timeout)
        if not _is_success(resp):
            monitoring.inc_upstream_fetch("http_error")
            return resp.status_code, {
                "message": f"External API error: {resp.status_code} {resp.reason or ''}".rstrip()
            }
        payload = resp.json()
        monitoring.inc_upstream_fetch("success")
        return resp.status_code, payload
    except (requests.RequestException, ValueError):
        monitoring.inc_upstream_fetch("network_error")
        monitoring.logger.exception("Error fetching from external API", extra={"url": url})
        return PROXY_FAILURE_STATUS, {"message": PROXY_FAILURE_MESSAGE}
