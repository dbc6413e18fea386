"""
Health check endpoints with collaborator monitoring.
"""

import time

from fastapi import APIRouter, Request

from app.config import settings

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "pipeline-board"}


@router.get("/readyz")
async def readyz(request: Request):
    """
    Readiness check: collaborator reachability plus board state.
    """
    checks = {}
    overall_ok = True

    # 1) Collaborator action surface
    client = getattr(request.app.state, "pipeline_client", None)
    t0 = time.time()
    if client is None:
        checks["pipeline_api"] = {"ok": False, "error": "Pipeline API client not initialized"}
        overall_ok = False
    else:
        try:
            api_ok = await client.ping()
            checks["pipeline_api"] = {
                "ok": bool(api_ok),
                "latency_ms": round((time.time() - t0) * 1000, 1),
                "base_url": settings.PIPELINE_API_BASE_URL,
            }
            overall_ok = overall_ok and bool(api_ok)
        except Exception as e:
            checks["pipeline_api"] = {
                "ok": False,
                "error": f"{type(e).__name__}: {e}",
                "latency_ms": round((time.time() - t0) * 1000, 1),
            }
            overall_ok = False

    # 2) Board session
    session = getattr(request.app.state, "pipeline_session", None)
    if session is None:
        checks["board"] = {"ok": False, "error": "Pipeline session not initialized"}
        overall_ok = False
    else:
        checks["board"] = {
            "ok": True,
            "stages": len(session.graph),
            "applications": len(session.store),
            "selected": len(session.selection),
        }

    checks["configuration"] = {
        "ok": True,
        "environment": settings.environment,
        "bulk_concurrency_limit": settings.bulk_concurrency_limit(),
    }

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
