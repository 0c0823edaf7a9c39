# backend/app.py
import time
from typing import Optional

# Load .env BEFORE any backend imports (they read env vars at import time)
from dotenv import load_dotenv
load_dotenv(override=True)

from fastapi import FastAPI, Request, Query
from fastapi.responses import JSONResponse, Response, PlainTextResponse

from backend.orchestrator import DashboardOrchestrator, E_SOURCE_UNAVAILABLE, E_MALFORMED_RECORD, E_INTERNAL
from backend.connectors import logs_connector
from backend import monitoring

app = FastAPI(title="Negotiation Log Analytics API")

# instantiate orchestrator once
orchestrator = DashboardOrchestrator()

ERROR_STATUS = {
    E_SOURCE_UNAVAILABLE: 502,
    E_MALFORMED_RECORD: 422,
    E_INTERNAL: 500,
}


# ---------------------------------------------------------------------------
# Metrics middleware
# ---------------------------------------------------------------------------
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.time()
    endpoint = request.url.path
    method = request.method
    status = "500"
    try:
        response = await call_next(request)
        status = str(response.status_code)
        return response
    except Exception:
        monitoring.logger.exception("Unhandled exception in request", extra={"path": endpoint})
        raise
    finally:
        monitoring.observe_request(start, endpoint, method, status)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@app.get("/api/logs")
def get_logs():
    """
    GET /api/logs
    Pass-through to the logs API: upstream status and JSON body are relayed.
    """
    status_code, payload = logs_connector.proxy_logs()
    return JSONResponse(status_code=status_code, content=payload)


@app.get("/api/dashboard")
def get_dashboard(search: Optional[str] = Query(None, description="Free-text filter for the log table")):
    """
    GET /api/dashboard?search=...
    Fetches a fresh batch and returns the filtered table, summary stats and chart tables.
    """
    monitoring.logger.info("Received /api/dashboard request", extra={"search": (search[:200] if search else "")})
    try:
        resp = orchestrator.handle_request(search)
        status_code = 200 if resp.get("status") == "success" else ERROR_STATUS.get(resp.get("error_code"), 500)
        return JSONResponse(status_code=status_code, content=resp)
    except Exception as e:
        monitoring.logger.exception("Unexpected error in /api/dashboard handler")
        return JSONResponse(
            status_code=500,
            content={
                "request_id": None,
                "status": "error",
                "error_code": E_INTERNAL,
                "message": "Internal server error",
                "details": {"exception": str(e)},
            },
        )


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/metrics")
async def metrics():
    if not monitoring.PROMETHEUS_ENABLED:
        return PlainTextResponse("Prometheus disabled", status_code=404)
    payload, content_type = monitoring.prometheus_metrics_response()
    return Response(content=payload, media_type=content_type)
