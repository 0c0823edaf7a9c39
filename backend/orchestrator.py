# backend/orchestrator.py
import uuid
import time
import datetime
from typing import Dict, Any, Optional

# Import modules (not bare functions) so monkeypatching in tests works correctly
import backend.connectors.logs_connector as _logs_connector
import backend.processors.aggregation as _aggregation
import backend.processors.formatting as _formatting
import backend.validator as _validator
from backend import monitoring

E_SOURCE_UNAVAILABLE = "E_SOURCE_UNAVAILABLE"
E_MALFORMED_RECORD = "E_MALFORMED_RECORD"
E_INTERNAL = "E_INTERNAL"


class DashboardOrchestrator:
    def __init__(self, trend_window: Optional[int] = None, malformed_policy: Optional[str] = None):
        self.trend_window = trend_window
        self.malformed_policy = malformed_policy

    def _make_request_id(self) -> str:
        return str(uuid.uuid4())

    def _now_iso(self) -> str:
        return datetime.datetime.utcnow().isoformat() + "Z"

    def _error(self, request_id: str, code: str, message: str,
               details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return {
            "request_id": request_id,
            "status": "error",
            "error_code": code,
            "message": message,
            "details": details or {},
        }

    def handle_request(self, search_term: Optional[str] = None) -> Dict[str, Any]:
        """
        Full synchronous flow:
        1. Fetch the raw batch (connector, bounded retry)
        2. Decode records at the boundary (validator, malformed-record policy)
        3. Aggregate (filter, summary stats, charts)
        4. Attach display strings
        Returns the response dict with status success|error.
        """
        request_id = self._make_request_id()
        search_term = search_term or ""

        try:
            conn = _logs_connector.fetch_logs()
        except _logs_connector.SourceUnavailable as e:
            monitoring.logger.warning("Logs API unavailable", extra={"request_id": request_id, "status": e.status_code})
            return self._error(request_id, E_SOURCE_UNAVAILABLE, str(e), {
                "upstream_status": e.status_code,
                "attempts": e.attempts,
            })

        try:
            records, issues = _validator.decode_records(conn.get("records"), policy=self.malformed_policy)
        except _validator.MalformedRecordError as e:
            monitoring.logger.warning("Rejected malformed log batch", extra={"request_id": request_id, "issues": len(e.issues)})
            return self._error(request_id, E_MALFORMED_RECORD, str(e), e.details())

        monitoring.set_last_dataset_rows(len(records))

        start = time.time()
        dashboard = _aggregation.build_dashboard(records, search_term, trend_window=self.trend_window)
        monitoring.observe_build(start)

        result_count = len(dashboard.logs)
        return {
            "request_id": request_id,
            "status": "success",
            "generated_at": self._now_iso(),
            "search_term": search_term,
            "logs": [r.model_dump(mode="json") for r in dashboard.logs],
            "result_count": result_count,
            "total_count": len(records),
            "empty_message": _formatting.empty_message(result_count, len(records), search_term),
            "stats": dashboard.stats.model_dump(),
            "stats_display": _formatting.format_stats(dashboard.stats),
            "charts": dashboard.charts.model_dump(mode="json"),
            "warnings": [i.model_dump() for i in issues],
            "source": conn.get("metadata", {}),
        }
