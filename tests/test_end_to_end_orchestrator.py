# tests/test_end_to_end_orchestrator.py
import pytest
from datetime import datetime

from backend.orchestrator import (
    DashboardOrchestrator,
    E_SOURCE_UNAVAILABLE,
    E_MALFORMED_RECORD,
)

# Monkeypatch the connector by patching the module the orchestrator imports
import backend.connectors.logs_connector as lconn

SAMPLE_BATCH = [
    {"id": "1", "mc_number": "MC123", "load_id": "L-1001", "final_rate": 100, "outcome": "accepted",
     "sentiment": "negative", "rounds": 1, "notes": "", "created_at": "2025-01-01T10:00:00Z"},
    {"id": "2", "mc_number": "MC456", "load_id": "L-1002", "final_rate": 200, "outcome": "accepted",
     "sentiment": "positive", "rounds": 2, "notes": "", "created_at": "2025-01-02T10:00:00Z"},
    {"id": "3", "mc_number": "MC789", "load_id": "L-1003", "final_rate": 300, "outcome": "declined",
     "sentiment": "neutral", "rounds": 3, "notes": "", "created_at": "2025-01-02T18:00:00Z"},
]


def fake_fetch(batch):
    def _fetch(url=None, retries=None, timeout=None, backoff=None):
        return {
            "records": batch,
            "metadata": {"source": "mock-logs-api", "url": "http://mock", "fetched_at": datetime.utcnow().isoformat() + "Z",
                         "http_status": 200, "attempts": 1},
        }
    return _fetch


def test_orchestrator_success(monkeypatch):
    monkeypatch.setattr(lconn, "fetch_logs", fake_fetch(SAMPLE_BATCH))
    orch = DashboardOrchestrator()
    resp = orch.handle_request("")
    assert resp["status"] == "success"
    assert resp["request_id"]
    assert resp["total_count"] == 3
    assert resp["result_count"] == 3
    assert resp["empty_message"] is None
    assert resp["stats"] == {"accepted_count": 2, "declined_count": 1, "avg_final_rate": 200.0, "avg_rounds": 2.0}
    assert resp["stats_display"]["avg_final_rate"] == "$200"
    assert resp["stats_display"]["avg_rounds"] == "2.0"
    assert [e["label"] for e in resp["charts"]["outcome"]] == ["accepted", "declined"]
    assert resp["charts"]["trend"] == [
        {"date": "2025-01-01", "avg_rate": 100.0},
        {"date": "2025-01-02", "avg_rate": 250.0},
    ]
    assert resp["source"]["source"] == "mock-logs-api"
    assert resp["warnings"] == []


def test_orchestrator_search_filters_table_only(monkeypatch):
    monkeypatch.setattr(lconn, "fetch_logs", fake_fetch(SAMPLE_BATCH))
    resp = DashboardOrchestrator().handle_request("mc123")
    assert resp["search_term"] == "mc123"
    assert [r["id"] for r in resp["logs"]] == ["1"]
    assert resp["logs"][0]["created_at"].startswith("2025-01-01T10:00:00")
    assert resp["stats"]["accepted_count"] == 2
    assert sum(e["count"] for e in resp["charts"]["sentiment"]) == 3


def test_orchestrator_search_term_is_not_trimmed(monkeypatch):
    monkeypatch.setattr(lconn, "fetch_logs", fake_fetch(SAMPLE_BATCH))
    resp = DashboardOrchestrator().handle_request(" mc1")
    assert resp["search_term"] == " mc1"
    assert resp["logs"] == []
    assert resp["empty_message"] == "No logs found matching your search."


def test_orchestrator_search_without_matches(monkeypatch):
    monkeypatch.setattr(lconn, "fetch_logs", fake_fetch(SAMPLE_BATCH))
    resp = DashboardOrchestrator().handle_request("zzz")
    assert resp["logs"] == []
    assert resp["empty_message"] == "No logs found matching your search."


def test_orchestrator_empty_dataset(monkeypatch):
    monkeypatch.setattr(lconn, "fetch_logs", fake_fetch([]))
    resp = DashboardOrchestrator().handle_request(None)
    assert resp["status"] == "success"
    assert resp["empty_message"] == "No logs available."
    assert resp["stats"]["avg_final_rate"] == 0
    assert resp["charts"] == {"outcome": [], "sentiment": [], "trend": []}


def test_orchestrator_source_unavailable(monkeypatch):
    def failing(url=None, retries=None, timeout=None, backoff=None):
        raise lconn.SourceUnavailable("Failed to fetch logs: 503 Service Unavailable", status_code=503, attempts=4)

    monkeypatch.setattr(lconn, "fetch_logs", failing)
    resp = DashboardOrchestrator().handle_request("")
    assert resp["status"] == "error"
    assert resp["error_code"] == E_SOURCE_UNAVAILABLE
    assert resp["details"] == {"upstream_status": 503, "attempts": 4}


def test_orchestrator_malformed_batch_rejected(monkeypatch):
    batch = SAMPLE_BATCH + [dict(SAMPLE_BATCH[0], id="4", outcome="pending")]
    monkeypatch.setattr(lconn, "fetch_logs", fake_fetch(batch))
    resp = DashboardOrchestrator(malformed_policy="reject").handle_request("")
    assert resp["status"] == "error"
    assert resp["error_code"] == E_MALFORMED_RECORD
    assert resp["details"]["issues"][0]["index"] == 3


def test_orchestrator_malformed_record_skipped(monkeypatch):
    batch = SAMPLE_BATCH + [dict(SAMPLE_BATCH[0], id="4", rounds="many")]
    monkeypatch.setattr(lconn, "fetch_logs", fake_fetch(batch))
    resp = DashboardOrchestrator(malformed_policy="skip").handle_request("")
    assert resp["status"] == "success"
    assert resp["total_count"] == 3
    assert resp["warnings"][0]["id"] == "4"
    assert resp["warnings"][0]["field"] == "rounds"


def test_orchestrator_non_array_payload(monkeypatch):
    monkeypatch.setattr(lconn, "fetch_logs", fake_fetch({"message": "oops"}))
    resp = DashboardOrchestrator(malformed_policy="skip").handle_request("")
    assert resp["error_code"] == E_MALFORMED_RECORD
