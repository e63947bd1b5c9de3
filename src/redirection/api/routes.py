"""API route handlers for the database upgrader."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from redirection.api.models import DatabaseUpgradeRequest, StatusPayload
from redirection.services.option_store import OptionStore
from redirection.services.stage_runner import StageRunner

router = APIRouter(prefix="/api/v1.0")

# Endpoints the admin UI uses to drive the upgrade
API_DESCRIPTOR = {
    "status": "/api/v1.0/database/status",
    "upgrade": "/api/v1.0/database/upgrade",
}


@router.get("/database/status", response_model=StatusPayload)
def get_database_status():
    """GET /api/v1.0/database/status - Poll the upgrade status.

    Read-only; any number of pollers may call it while a run is active.

    Response format (stage in progress):
        {
            "status": "need-update",
            "inProgress": true,
            "current": "1.0",
            "next": "2.4",
            "time": 1700000000.123,
            "complete": 8.3
        }

    Response format (nothing to do):
        {
            "status": "ok",
            "inProgress": false
        }
    """
    runner = StageRunner(OptionStore(), api=API_DESCRIPTOR)
    return JSONResponse(status_code=200, content=runner.new_status().get_json())


@router.post("/database/upgrade", response_model=StatusPayload)
def post_database_upgrade(request: DatabaseUpgradeRequest):
    """POST /api/v1.0/database/upgrade - Apply the next upgrade stage.

    The admin UI calls this repeatedly, waiting for each response before
    sending the next request, until the status becomes finish-*.

    Args:
        request: DatabaseUpgradeRequest with optional stop/skip/retry action

    Returns:
        Status payload after the stage; stage failures are reported in
        result/reason/debug rather than as an HTTP error
    """
    runner = StageRunner(OptionStore(), api=API_DESCRIPTOR)
    return JSONResponse(status_code=200, content=runner.run(request.upgrade))
