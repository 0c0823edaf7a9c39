# backend/monitoring.py
"""
Centralized monitoring: Prometheus metrics, structured JSON logging, optional Sentry.

Env vars:
- PROMETHEUS_ENABLED (default: true)
- SENTRY_DSN (optional)
- LOG_AS_JSON (default: true)
- LOG_LEVEL (default: INFO)
- ENVIRONMENT (default: development)
"""

import os
import logging
import time
from typing import Tuple

import sentry_sdk
from pythonjsonlogger import jsonlogger
from prometheus_client import (
    Counter, Histogram, Gauge,
    generate_latest, CONTENT_TYPE_LATEST, REGISTRY,
)

# --- ENV flags
PROMETHEUS_ENABLED = os.getenv("PROMETHEUS_ENABLED", "true").lower() in ("1", "true", "yes")
SENTRY_DSN = os.getenv("SENTRY_DSN", None)
LOG_AS_JSON = os.getenv("LOG_AS_JSON", "true").lower() in ("1", "true", "yes")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


# --- Logger setup
def setup_logger(name: str = "negotiation-dashboard", level: int = None) -> logging.Logger:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO")) if level is None else level
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        if LOG_AS_JSON:
            fmt = jsonlogger.JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s"
            )
            handler.setFormatter(fmt)
        logger.addHandler(handler)
    return logger


logger = setup_logger()

# --- Sentry (optional)
if SENTRY_DSN:
    sentry_sdk.init(dsn=SENTRY_DSN, environment=ENVIRONMENT)
    logger.info("Sentry initialized")


# --- Prometheus metrics
REQUEST_COUNT = Counter(
    "dashboard_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "dashboard_request_latency_seconds",
    "Request latency in seconds",
    ["endpoint"],
)

UPSTREAM_FETCH_COUNTER = Counter(
    "dashboard_upstream_fetch_total",
    "Upstream logs API fetch attempts",
    ["outcome"],
)

MALFORMED_RECORDS = Counter(
    "dashboard_malformed_records_total",
    "Malformed upstream log record fields",
    ["field"],
)

BUILD_LATENCY = Histogram(
    "dashboard_build_latency_seconds",
    "Aggregation pipeline latency",
)

LAST_DATASET_ROWS = Gauge(
    "dashboard_last_dataset_rows",
    "Records in last decoded upstream batch",
)


# --- Helper wrappers (never crash the app)
def observe_request(start_ts: float, endpoint: str, method: str, status: str):
    try:
        REQUEST_LATENCY.labels(endpoint=endpoint).observe(time.time() - start_ts)
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=status).inc()
    except Exception:
        pass


def inc_upstream_fetch(outcome: str):
    try:
        UPSTREAM_FETCH_COUNTER.labels(outcome=outcome).inc()
    except Exception:
        pass


def inc_malformed_record(field: str):
    try:
        MALFORMED_RECORDS.labels(field=field[:80]).inc()
    except Exception:
        pass


def observe_build(start_ts: float):
    try:
        BUILD_LATENCY.observe(time.time() - start_ts)
    except Exception:
        pass


def set_last_dataset_rows(n: int):
    try:
        LAST_DATASET_ROWS.set(n)
    except Exception:
        pass


def prometheus_metrics_response() -> Tuple[bytes, str]:
    """Return (body_bytes, content_type) for Prometheus scrape."""
    try:
        return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
    except Exception:
        return b"", CONTENT_TYPE_LATEST
